"""Budget documents written to disk for download and e-mail."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from quote_engine import reporting
from quote_engine.reporting import format_number

from ..config import settings
from ..schemas.budget import BudgetRecord, BudgetType, ClientInfo
from .budget_service import DEFAULT_MATERIALS, economy_projection

logger = logging.getLogger(__name__)

MONTHS_PT = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]


@dataclass(frozen=True)
class GeneratedDocument:
    filename: str
    path: Path
    url: str


def format_currency(value: float | None) -> str:
    return reporting.format_currency(value, settings.currency_symbol)


def _long_date(value: datetime) -> str:
    return f"{value.day} de {MONTHS_PT[value.month - 1]} de {value.year}"


def prepare_template_data(
    budget: BudgetRecord,
    client: ClientInfo,
    responsible_name: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Flat, pre-formatted fields for document and message templates."""
    now = now or datetime.now(timezone.utc)
    total = budget.financial.total
    data = {
        "company_name": settings.company_name,
        "company_phone": settings.company_phone,
        "company_email": settings.company_email,
        "company_address": settings.company_address,
        "company_city": settings.company_city,
        "client_name": client.name,
        "client_phone": client.phone or "",
        "client_email": client.email or "",
        "client_address": client.full_address(),
        "budget_number": budget.budget_number,
        "budget_date": _long_date(budget.created_at),
        "valid_until": f"{budget.valid_until:%d/%m/%Y}",
        "responsible_name": responsible_name or f"Consultor {settings.company_name}",
        "current_date": _long_date(now),
        "total": format_currency(total),
        "observations": budget.observations or "",
    }

    if budget.type == BudgetType.SOLAR and budget.solar_data:
        system = budget.solar_data["system"]
        production = budget.solar_data["production"]
        data.update({
            "panel_quantity": system["panel_quantity"],
            "panel_power_w": system["panel_power_w"],
            "panel_brand": system.get("panel_brand") or "",
            "inverter_brand": system.get("inverter_brand") or "",
            "inverter_model": f"{format_number(system['inverter']['nominal_kw'], 1)} kW",
            "system_power": format_number(system["system_power_kwp"]),
            "cash_price": format_currency(total * 0.9),
            "cash_discount": format_currency(total * 0.1),
            "monthly_generation": round(production["monthly_average_kwh"]),
            "monthly_economy": format_currency(production["monthly_economy"]),
            "yearly_economy": format_currency(production["yearly_economy"]),
            "tariff": format_number(production["tariff_per_kwh"]),
            "materials": budget.materials or list(DEFAULT_MATERIALS),
        })

    if budget.type == BudgetType.SERVICE:
        data["services"] = [
            {
                "description": item["description"],
                "quantity": item["quantity"],
                "unit_price": format_currency(item["unit_price"]),
                "total_price": format_currency(item["total_price"]),
            }
            for item in budget.items
        ]

    return data


def _safe_name(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", text).strip("_") or "cliente"


def generate_documents(
    budget: BudgetRecord,
    client: ClientInfo,
    output_dir: str | Path | None = None,
    now: datetime | None = None,
) -> GeneratedDocument:
    """Render the budget PDF and write it under ``output_dir``."""
    start = time.perf_counter()
    now = now or datetime.now(timezone.utc)
    target = Path(output_dir or settings.output_dir)
    target.mkdir(parents=True, exist_ok=True)

    projection = None
    if budget.type == BudgetType.SOLAR and budget.settings.show_economy_projection:
        projection = economy_projection(budget)

    budget_data = budget.model_dump()
    budget_data["type"] = budget.type.value
    budget_data["generated_at"] = now
    client_data = {"name": client.name, "address": client.full_address()}

    buffer = reporting.generate_budget_pdf(
        budget_data,
        client_data,
        company=settings.company,
        projection=projection,
        currency_symbol=settings.currency_symbol,
    )

    filename = f"Proposta_{budget.budget_number}_{_safe_name(client.name)}_{now:%Y%m%d%H%M%S}.pdf"
    path = target / filename
    path.write_bytes(buffer.getvalue())

    duration_ms = round((time.perf_counter() - start) * 1000, 1)
    logger.info(
        "Document generated: %s (%.1fms)", filename, duration_ms,
        extra={"budget_number": budget.budget_number, "duration_ms": duration_ms},
    )
    return GeneratedDocument(
        filename=filename,
        path=path,
        url=f"{settings.api_url.rstrip('/')}/generated/{filename}",
    )
