"""Tests for solarcrm.services.budget_service."""

import logging
from datetime import timedelta

import pytest

from quote_engine.constants import CalculatorConstants
from solarcrm.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from solarcrm.schemas.budget import (
    BudgetStatus,
    BudgetType,
    BudgetUpdate,
    ServiceBudgetCreate,
    ServiceItemInput,
    SolarBudgetCreate,
    SolarCalculationsInput,
    SolarDataInput,
    SolarSystemInput,
)
from solarcrm.schemas.proposal import ProposalRecord
from solarcrm.services.budget_service import (
    DEFAULT_MATERIALS,
    budget_number,
    build_solar_data,
    create_service_budget,
    create_solar_budget,
    duplicate_budget,
    economy_projection,
    ensure_can_view,
    is_expired,
    merge_settings,
    proposal_number,
    soft_delete_budget,
    update_budget,
)


class TestNumbering:
    def test_budget_number(self, now):
        assert budget_number(now, 0) == "ORC-202503-0001"
        assert budget_number(now, 41) == "ORC-202503-0042"

    def test_proposal_number(self, now):
        assert proposal_number(now, 9) == "PROP-202503-0010"


class TestBuildSolarData:
    def test_layout(self, solar_data_input, now):
        data = build_solar_data(solar_data_input, computed_at=now)
        assert data["system"]["panel_quantity"] == 16
        assert data["system"]["system_power_kwp"] == pytest.approx(9.76)
        assert data["system"]["inverter"]["nominal_kw"] == 7.5
        assert data["system"]["inverter"]["undersized"] is False
        assert data["calculations"]["kit_value"] == pytest.approx(13664.0)
        assert data["calculations"]["labor_value"] == pytest.approx(3416.0)
        assert data["calculations"]["tax_value"] == pytest.approx(324.96)
        assert data["calculations"]["total_value"] == pytest.approx(24256.2)
        assert len(data["production"]["monthly_kwh"]) == 12
        assert data["computed_at"] == now.isoformat()

    def test_engine_error_becomes_validation_error(self):
        bad = SolarDataInput(
            system=SolarSystemInput(desired_power_kw=0),
            calculations=SolarCalculationsInput(value_per_kwp=1.4),
        )
        with pytest.raises(ValidationError) as exc:
            build_solar_data(bad)
        assert exc.value.field == "desired_power_kw"
        assert exc.value.message == "Desired power must be greater than zero"
        assert exc.value.status_code == 400

    def test_custom_constants(self, solar_data_input):
        data = build_solar_data(solar_data_input, CalculatorConstants(tax_rate=0.0))
        assert data["calculations"]["tax_value"] == 0.0


class TestCreateSolarBudget:
    def test_record(self, solar_budget, salesperson, client, now):
        assert solar_budget.budget_number == "ORC-202503-0001"
        assert solar_budget.type == BudgetType.SOLAR
        assert solar_budget.status == BudgetStatus.DRAFT
        assert solar_budget.created_by == salesperson.id
        assert solar_budget.client_id == client.id
        assert solar_budget.valid_until == now + timedelta(days=15)
        assert solar_budget.materials == DEFAULT_MATERIALS
        assert solar_budget.total == pytest.approx(24256.2)
        assert solar_budget.financial.payment_conditions["max_installments"] == 18

    def test_settings_override_validity(self, salesperson, client, solar_data_input, now):
        payload = SolarBudgetCreate(
            client_id=client.id, solar_data=solar_data_input, settings={"validity_days": 30},
        )
        budget = create_solar_budget(salesperson, client, payload, now=now)
        assert budget.settings.validity_days == 30
        assert budget.valid_until == now + timedelta(days=30)

    def test_invalid_setting(self, salesperson, client, solar_data_input, now):
        payload = SolarBudgetCreate(
            client_id=client.id, solar_data=solar_data_input, settings={"validity_days": 0},
        )
        with pytest.raises(ValidationError) as exc:
            create_solar_budget(salesperson, client, payload, now=now)
        assert exc.value.field == "validity_days"

    def test_wrong_client(self, salesperson, client, solar_data_input):
        payload = SolarBudgetCreate(client_id="c-404", solar_data=solar_data_input)
        with pytest.raises(NotFoundError):
            create_solar_budget(salesperson, client, payload)

    def test_other_salespersons_client(self, other_salesperson, client, solar_data_input):
        payload = SolarBudgetCreate(client_id=client.id, solar_data=solar_data_input)
        with pytest.raises(PermissionDeniedError):
            create_solar_budget(other_salesperson, client, payload)

    def test_admin_may_quote_any_client(self, admin, client, solar_data_input, now):
        payload = SolarBudgetCreate(client_id=client.id, solar_data=solar_data_input)
        assert create_solar_budget(admin, client, payload, now=now).created_by == admin.id

    def test_saturated_inverter_logs_warning(self, salesperson, client, now, caplog):
        payload = SolarBudgetCreate(
            client_id=client.id,
            solar_data=SolarDataInput(
                system=SolarSystemInput(desired_power_kw=20000),
                calculations=SolarCalculationsInput(value_per_kwp=1.4),
            ),
        )
        with caplog.at_level(logging.WARNING, logger="solarcrm.services.budget_service"):
            budget = create_solar_budget(salesperson, client, payload, now=now)
        assert budget.solar_data["system"]["inverter"]["undersized"] is True
        assert "Inverter saturated" in caplog.text


class TestCreateServiceBudget:
    def test_record(self, service_budget):
        assert service_budget.budget_number == "ORC-202503-0005"
        assert service_budget.type == BudgetType.SERVICE
        assert service_budget.total == pytest.approx(550.0)
        assert service_budget.service_data == {"total": 550.0, "item_count": 2}
        assert [row["order"] for row in service_budget.items] == [0, 1]
        assert service_budget.items[0]["total_price"] == pytest.approx(400.0)
        assert service_budget.materials == []
        assert service_budget.financial.payment_conditions["max_installments"] == 12

    def test_negative_price(self, salesperson, client):
        payload = ServiceBudgetCreate(
            client_id=client.id,
            items=[
                ServiceItemInput(description="Ok", unit_price=10),
                ServiceItemInput(description="Bad", unit_price=-5),
            ],
        )
        with pytest.raises(ValidationError) as exc:
            create_service_budget(salesperson, client, payload)
        assert exc.value.message == "Item 2 unit price must be zero or greater"


class TestUpdateBudget:
    def test_recalculates_solar(self, solar_budget, salesperson, now):
        later = now + timedelta(hours=1)
        payload = BudgetUpdate(solar_data=SolarDataInput(
            system=SolarSystemInput(desired_power_kw=10),
            calculations=SolarCalculationsInput(value_per_kwp=1.4, material_value=2000),
        ))
        updated = update_budget(salesperson, solar_budget, payload, now=later)
        assert updated.solar_data["system"]["panel_quantity"] == 1
        assert updated.total == pytest.approx(4000.3875)
        assert updated.updated_at == later
        assert solar_budget.solar_data["system"]["panel_quantity"] == 16

    def test_replaces_service_items(self, service_budget, salesperson, now):
        payload = BudgetUpdate(items=[ServiceItemInput(description="Inspeção", unit_price=300)])
        updated = update_budget(salesperson, service_budget, payload, now=now)
        assert updated.total == pytest.approx(300.0)
        assert updated.service_data["item_count"] == 1

    def test_percentage_discount_lowers_total(self, solar_budget, salesperson, now):
        updated = update_budget(salesperson, solar_budget, BudgetUpdate(discount=10), now=now)
        assert updated.financial.discount == 10
        assert updated.total == pytest.approx(24256.2 * 0.9)
        assert updated.solar_data == solar_budget.solar_data

    def test_discount_survives_recalculation(self, solar_budget, salesperson, now):
        discounted = update_budget(
            salesperson, solar_budget, BudgetUpdate(discount=500, discount_type="fixed"), now=now,
        )
        payload = BudgetUpdate(solar_data=SolarDataInput(
            system=SolarSystemInput(desired_power_kw=10),
            calculations=SolarCalculationsInput(value_per_kwp=1.4, material_value=2000),
        ))
        updated = update_budget(salesperson, discounted, payload, now=now)
        assert updated.financial.discount_type == "fixed"
        assert updated.total == pytest.approx(4000.3875 - 500)

    def test_fixed_discount_on_service(self, service_budget, salesperson, now):
        payload = BudgetUpdate(discount=50, discount_type="fixed")
        updated = update_budget(salesperson, service_budget, payload, now=now)
        assert updated.financial.subtotal == pytest.approx(550.0)
        assert updated.total == pytest.approx(500.0)

    def test_invalid_discount(self, solar_budget, salesperson, now):
        with pytest.raises(ValidationError) as exc:
            update_budget(salesperson, solar_budget, BudgetUpdate(discount=150), now=now)
        assert exc.value.field == "discount"
        assert exc.value.message == "Discount must be between 0 and 100"

    def test_validity_change_moves_expiry(self, solar_budget, salesperson, now):
        updated = update_budget(
            salesperson, solar_budget, BudgetUpdate(settings={"validity_days": 7}), now=now,
        )
        assert updated.valid_until == now + timedelta(days=7)
        assert updated.settings.show_economy_projection is True

    def test_sent_budget_is_frozen(self, solar_budget, salesperson, now):
        sent = solar_budget.model_copy(update={"status": BudgetStatus.SENT})
        with pytest.raises(ValidationError) as exc:
            update_budget(salesperson, sent, BudgetUpdate(observations="x"), now=now)
        assert exc.value.field == "status"

    def test_items_on_solar_budget(self, solar_budget, salesperson, now):
        payload = BudgetUpdate(items=[ServiceItemInput(description="x", unit_price=1)])
        with pytest.raises(ValidationError):
            update_budget(salesperson, solar_budget, payload, now=now)

    def test_other_salesperson(self, solar_budget, other_salesperson, now):
        with pytest.raises(PermissionDeniedError):
            update_budget(other_salesperson, solar_budget, BudgetUpdate(observations="x"), now=now)


class TestDuplicate:
    def test_new_version(self, solar_budget, salesperson, now):
        later = now + timedelta(days=2)
        copy = duplicate_budget(salesperson, solar_budget, count_this_year=7, now=later)
        assert copy.id != solar_budget.id
        assert copy.budget_number == "ORC-202503-0008"
        assert copy.version == 2
        assert copy.parent_budget_id == solar_budget.id
        assert copy.status == BudgetStatus.DRAFT
        assert copy.documents == {}
        assert copy.valid_until == later + timedelta(days=15)
        assert copy.solar_data == solar_budget.solar_data


class TestSoftDelete:
    def test_admin_deletes(self, solar_budget, admin, now):
        deleted = soft_delete_budget(admin, solar_budget, now=now)
        assert deleted.deleted_at == now
        with pytest.raises(NotFoundError):
            ensure_can_view(admin, deleted)

    def test_salesperson_cannot_delete(self, solar_budget, salesperson):
        with pytest.raises(PermissionDeniedError):
            soft_delete_budget(salesperson, solar_budget)

    def test_twice(self, solar_budget, admin, now):
        deleted = soft_delete_budget(admin, solar_budget, now=now)
        with pytest.raises(NotFoundError):
            soft_delete_budget(admin, deleted, now=now)

    def test_accepted_proposal_blocks_delete(self, solar_budget, admin, now):
        proposal = ProposalRecord(
            id="p-1",
            proposal_number="PROP-202503-0001",
            budget_id=solar_budget.id,
            unique_link="abc",
            status="accepted",
            created_at=now,
            updated_at=now,
        )
        with pytest.raises(ConflictError):
            soft_delete_budget(admin, solar_budget, proposal, now=now)


class TestProjectionAndExpiry:
    def test_economy_projection(self, solar_budget):
        rows = economy_projection(solar_budget)
        assert len(rows) == 25
        production = solar_budget.solar_data["production"]
        assert rows[0].yearly_economy == pytest.approx(production["yearly_total_kwh"] * 0.86 * 1.07)

    def test_projection_needs_solar(self, service_budget):
        with pytest.raises(ValidationError):
            economy_projection(service_budget)

    def test_is_expired(self, solar_budget, now):
        assert not is_expired(solar_budget, now + timedelta(days=15))
        assert is_expired(solar_budget, now + timedelta(days=16))


class TestMergeSettings:
    def test_defaults(self):
        merged = merge_settings(None, None)
        assert merged.validity_days == 15
        assert merged.include_installation is True

    def test_extra_keys_kept(self):
        merged = merge_settings(None, {"notes_color": "orange"})
        assert merged.model_dump()["notes_color"] == "orange"
