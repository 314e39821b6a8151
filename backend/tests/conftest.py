"""Shared test fixtures for the quoting engine and CRM services."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from quote_engine.sizing import KitValueMethod, SizingInput
from solarcrm.core.permissions import Actor, Role
from solarcrm.schemas.budget import (
    ClientInfo,
    ServiceBudgetCreate,
    ServiceItemInput,
    SolarBudgetCreate,
    SolarCalculationsInput,
    SolarDataInput,
    SolarProductionInput,
    SolarSystemInput,
)
from solarcrm.services.email_service import EmailService

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


# ======================================================================
# Calculator fixtures
# ======================================================================

@pytest.fixture
def canonical_input() -> SizingInput:
    """10 kW desired, 610 W panels, R$ 1.40/Wp kit, 25% margin, no commission."""
    return SizingInput(
        desired_power_kw=10,
        panel_power_w=610,
        magic_number=107,
        kit_value_method=KitValueMethod.PER_KWP,
        value_per_kwp=1.4,
        material_value=2000,
        labor_per_kwp=350,
        profit_margin_pct=25,
        commission_enabled=False,
        tariff_per_kwh=0.86,
    )


@pytest.fixture
def solar_data_input() -> SolarDataInput:
    """Residential system sized from 1000 kW desired (16 panels, 9.76 kWp)."""
    return SolarDataInput(
        system=SolarSystemInput(desired_power_kw=1000, panel_power_w=610, magic_number=107),
        calculations=SolarCalculationsInput(
            kit_value_method=KitValueMethod.PER_KWP,
            value_per_kwp=1.4,
            material_value=2000,
            labor_per_kwp=350,
            profit_margin_pct=25,
        ),
        production=SolarProductionInput(tariff_per_kwh=0.86),
    )


# ======================================================================
# People
# ======================================================================

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def admin() -> Actor:
    return Actor(id="u-admin", email="admin@solar.test", name="Admin", role=Role.ADMIN)


@pytest.fixture
def salesperson() -> Actor:
    return Actor(id="u-sales", email="vendas@solar.test", name="Vendedor", role=Role.SALESPERSON)


@pytest.fixture
def other_salesperson() -> Actor:
    return Actor(id="u-other", email="outro@solar.test", name="Outro", role=Role.SALESPERSON)


@pytest.fixture
def client(salesperson) -> ClientInfo:
    return ClientInfo(
        id="c-1",
        name="Maria Silva",
        email="maria@example.com",
        phone="(92) 98888-7777",
        address="Rua das Flores, 100",
        city="Manaus",
        state="AM",
        created_by=salesperson.id,
    )


# ======================================================================
# Budgets
# ======================================================================

@pytest.fixture
def solar_budget(salesperson, client, solar_data_input, now):
    from solarcrm.services.budget_service import create_solar_budget

    payload = SolarBudgetCreate(client_id=client.id, solar_data=solar_data_input)
    return create_solar_budget(salesperson, client, payload, count_this_year=0, now=now)


@pytest.fixture
def service_budget(salesperson, client, now):
    from solarcrm.services.budget_service import create_service_budget

    payload = ServiceBudgetCreate(
        client_id=client.id,
        items=[
            ServiceItemInput(description="Limpeza de painéis", quantity=16, unit_price=25.0),
            ServiceItemInput(description="Visita técnica", quantity=1, unit_price=150.0),
        ],
    )
    return create_service_budget(salesperson, client, payload, count_this_year=4, now=now)


# ======================================================================
# E-mail
# ======================================================================

class RecordingEmailService(EmailService):
    """Captures messages instead of talking to an SMTP server."""

    def __init__(self, deliver: bool = True):
        super().__init__()
        self.deliver = deliver
        self.sent: list[dict] = []

    def _send_email(self, to_email, subject, html_content):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return self.deliver and bool(to_email)


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def failing_email_service() -> RecordingEmailService:
    return RecordingEmailService(deliver=False)
