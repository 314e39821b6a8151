"""Budget creation, editing, duplication and deletion.

Every function takes the current record(s) and returns a new record; the
caller owns persistence.  Solar budgets are sized through one shared path,
``build_solar_data``, so creation and editing can never disagree.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

import pydantic

from quote_engine import compute
from quote_engine.constants import CalculatorConstants
from quote_engine.economics import (
    SERVICE_PAYMENT_CONDITIONS,
    SOLAR_PAYMENT_CONDITIONS,
    ROIRow,
    apply_discount,
    financial_total,
    project_economy,
    service_total,
)
from quote_engine.errors import InvalidInputError
from quote_engine.proposal import ProposalStatus

from ..config import settings
from ..core.errors import ConflictError, NotFoundError, ValidationError, validation_error_from
from ..core.permissions import Actor, ensure_admin, ensure_owner_or_admin
from ..schemas.budget import (
    BudgetRecord,
    BudgetSettings,
    BudgetStatus,
    BudgetType,
    BudgetUpdate,
    ClientInfo,
    FinancialSummary,
    ServiceBudgetCreate,
    ServiceItemInput,
    SolarBudgetCreate,
    SolarDataInput,
)
from ..schemas.proposal import ProposalRecord

logger = logging.getLogger(__name__)

DEFAULT_MATERIALS = [
    "Painéis Solares Fotovoltaicos",
    "Inversor de Frequência",
    "Cabos Solares CC/CA",
    "Estrutura de Fixação para Telhado",
    "Stringbox DC e CA",
    "Conectores MC4",
    "Disjuntores DC e AC",
    "DPS - Dispositivo de Proteção contra Surtos",
    "Parafusos e Acessórios para Fixação",
    "Sistema de Aterramento",
    "Etiquetas de Identificação e Sinalização",
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ======================================================================
# Numbering
# ======================================================================

def sequence_number(prefix: str, now: datetime, count_this_year: int) -> str:
    """``{prefix}-YYYYMM-NNNN`` where NNNN continues the yearly count."""
    return f"{prefix}-{now:%Y%m}-{count_this_year + 1:04d}"


def budget_number(now: datetime, count_this_year: int) -> str:
    return sequence_number("ORC", now, count_this_year)


def proposal_number(now: datetime, count_this_year: int) -> str:
    return sequence_number("PROP", now, count_this_year)


# ======================================================================
# Building blocks
# ======================================================================

def build_solar_data(
    solar_input: SolarDataInput,
    constants: CalculatorConstants | None = None,
    computed_at: datetime | None = None,
) -> dict:
    """Size and price a solar system and lay it out as stored ``solar_data``.

    Raises ``ValidationError`` naming the offending field when the
    calculator rejects the input.
    """
    constants = constants or settings.calculator_constants()
    try:
        out = compute(solar_input.to_sizing_input(), constants)
    except InvalidInputError as exc:
        raise validation_error_from(exc) from exc

    calc = solar_input.calculations
    return {
        "system": {
            "desired_power_kw": solar_input.system.desired_power_kw,
            "panel_power_w": solar_input.system.panel_power_w,
            "magic_number": solar_input.system.magic_number,
            "panel_brand": solar_input.system.panel_brand,
            "inverter_brand": solar_input.system.inverter_brand,
            "panel_quantity": out.panel_quantity,
            "system_power_kwp": out.system_power_kwp,
            "inverter": {
                "nominal_kw": out.selected_inverter_kw,
                "maximum_kwp": out.inverter_max_kwp,
                "min_required_kw": out.min_required_inverter_kw,
                "undersized": out.inverter_undersized,
            },
        },
        "calculations": {
            "kit_value_method": calc.kit_value_method.value,
            "value_per_kwp": calc.value_per_kwp,
            "total_kit_value": calc.total_kit_value,
            "kit_value": out.kit_value,
            "material_value": out.material_value,
            "labor_per_kwp": calc.labor_per_kwp,
            "labor_value": out.labor_value,
            "tax_value": out.tax_value,
            "subtotal": out.subtotal,
            "profit_margin_pct": calc.profit_margin_pct,
            "profit_value": out.profit_value,
            "commission_enabled": calc.commission_enabled,
            "commission_pct": calc.commission_pct,
            "commission_value": out.commission_value,
            "total_value": out.total_value,
        },
        "production": {
            "tariff_per_kwh": out.tariff_per_kwh,
            "monthly_kwh": list(out.monthly_production_kwh),
            "monthly_average_kwh": out.monthly_average_kwh,
            "yearly_total_kwh": out.yearly_total_kwh,
            "monthly_economy": out.monthly_economy,
            "yearly_economy": out.yearly_economy,
        },
        "computed_at": (computed_at or _now()).isoformat(),
    }


def _warn_if_undersized(solar_data: dict, number: str, actor: Actor) -> None:
    inverter = solar_data["system"]["inverter"]
    if inverter["undersized"]:
        logger.warning(
            "Inverter saturated for %s: needs %.2f kW, largest tier is %.1f kW",
            number, inverter["min_required_kw"], inverter["nominal_kw"],
            extra={"budget_number": number, "actor": actor.email},
        )


def _solar_financial(solar_data: dict, discount: float = 0.0, discount_type: str = "percentage") -> FinancialSummary:
    calc = solar_data["calculations"]
    try:
        total = apply_discount(calc["total_value"], discount, discount_type)
    except InvalidInputError as exc:
        raise validation_error_from(exc) from exc
    return FinancialSummary(
        subtotal=calc["subtotal"],
        discount=discount,
        discount_type=discount_type,
        tax=calc["tax_value"],
        total=total,
        payment_conditions=SOLAR_PAYMENT_CONDITIONS.to_dict(),
    )


def _service_lines(items: list[ServiceItemInput]) -> tuple[list[dict], float]:
    line_items = [item.to_line_item() for item in items]
    try:
        total = service_total(line_items)
    except InvalidInputError as exc:
        raise validation_error_from(exc) from exc

    rows = []
    for order, (item, line) in enumerate(zip(items, line_items)):
        rows.append({
            "order": order,
            "type": "service",
            "description": item.description,
            "quantity": item.quantity,
            "unit": item.unit,
            "unit_price": item.unit_price,
            "discount_pct": item.discount_pct,
            "tax_pct": item.tax_pct,
            "total_price": line.total_price,
        })
    return rows, total


def _service_financial(subtotal: float, discount: float = 0.0, discount_type: str = "percentage") -> FinancialSummary:
    try:
        total = financial_total(subtotal, discount=discount, discount_type=discount_type)
    except InvalidInputError as exc:
        raise validation_error_from(exc) from exc
    return FinancialSummary(
        subtotal=subtotal,
        discount=discount,
        discount_type=discount_type,
        total=total,
        payment_conditions=SERVICE_PAYMENT_CONDITIONS.to_dict(),
    )


def merge_settings(base: BudgetSettings | None, overrides: dict | None) -> BudgetSettings:
    """Overlay request settings on the stored (or default) ones."""
    if base is None:
        base = BudgetSettings(validity_days=settings.default_validity_days)
    merged = {**base.model_dump(), **(overrides or {})}
    try:
        return BudgetSettings(**merged)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise ValidationError(f"Invalid setting {field}: {first['msg']}", field=field) from exc


def _check_client(actor: Actor, client: ClientInfo, client_id: str) -> None:
    if client.id != client_id:
        raise NotFoundError("Client not found")
    ensure_owner_or_admin(actor, client.created_by, "create budgets for this client")


# ======================================================================
# Operations
# ======================================================================

def create_solar_budget(
    actor: Actor,
    client: ClientInfo,
    payload: SolarBudgetCreate,
    count_this_year: int = 0,
    now: datetime | None = None,
    constants: CalculatorConstants | None = None,
) -> BudgetRecord:
    _check_client(actor, client, payload.client_id)
    now = now or _now()

    solar_data = build_solar_data(payload.solar_data, constants, computed_at=now)
    budget_settings = merge_settings(None, payload.settings)
    number = budget_number(now, count_this_year)
    _warn_if_undersized(solar_data, number, actor)

    budget = BudgetRecord(
        id=str(uuid.uuid4()),
        budget_number=number,
        client_id=client.id,
        created_by=actor.id,
        type=BudgetType.SOLAR,
        status=BudgetStatus.DRAFT,
        solar_data=solar_data,
        financial=_solar_financial(solar_data),
        settings=budget_settings,
        materials=payload.materials if payload.materials is not None else list(DEFAULT_MATERIALS),
        observations=payload.observations,
        valid_until=now + timedelta(days=budget_settings.validity_days),
        created_at=now,
        updated_at=now,
    )
    logger.info(
        "Solar budget created: %s by %s", number, actor.email,
        extra={"budget_number": number, "actor": actor.email},
    )
    return budget


def create_service_budget(
    actor: Actor,
    client: ClientInfo,
    payload: ServiceBudgetCreate,
    count_this_year: int = 0,
    now: datetime | None = None,
) -> BudgetRecord:
    _check_client(actor, client, payload.client_id)
    now = now or _now()

    rows, total = _service_lines(payload.items)
    budget_settings = merge_settings(None, payload.settings)
    number = budget_number(now, count_this_year)

    budget = BudgetRecord(
        id=str(uuid.uuid4()),
        budget_number=number,
        client_id=client.id,
        created_by=actor.id,
        type=BudgetType.SERVICE,
        status=BudgetStatus.DRAFT,
        service_data={"total": total, "item_count": len(rows)},
        items=rows,
        financial=_service_financial(total),
        settings=budget_settings,
        materials=payload.materials or [],
        observations=payload.observations,
        valid_until=now + timedelta(days=budget_settings.validity_days),
        created_at=now,
        updated_at=now,
    )
    logger.info(
        "Service budget created: %s by %s (%d items)", number, actor.email, len(rows),
        extra={"budget_number": number, "actor": actor.email},
    )
    return budget


def ensure_can_view(actor: Actor, budget: BudgetRecord) -> None:
    if budget.deleted_at is not None:
        raise NotFoundError("Budget not found")
    ensure_owner_or_admin(actor, budget.created_by, "access this budget")


def update_budget(
    actor: Actor,
    budget: BudgetRecord,
    payload: BudgetUpdate,
    now: datetime | None = None,
    constants: CalculatorConstants | None = None,
) -> BudgetRecord:
    """Apply an edit to a draft budget and return the recalculated record."""
    ensure_can_view(actor, budget)
    ensure_owner_or_admin(actor, budget.created_by, "edit this budget")
    if budget.status != BudgetStatus.DRAFT:
        raise ValidationError("Only draft budgets can be edited", field="status")
    now = now or _now()

    changes: dict = {"updated_at": now}
    discount = budget.financial.discount if payload.discount is None else payload.discount
    discount_type = payload.discount_type or budget.financial.discount_type
    repriced = payload.discount is not None or payload.discount_type is not None
    solar_data = budget.solar_data
    subtotal = budget.financial.subtotal

    if payload.solar_data is not None:
        if budget.type != BudgetType.SOLAR:
            raise ValidationError("solar_data only applies to solar budgets", field="solar_data")
        solar_data = build_solar_data(payload.solar_data, constants, computed_at=now)
        _warn_if_undersized(solar_data, budget.budget_number, actor)
        changes["solar_data"] = solar_data
        repriced = True

    if payload.items is not None:
        if budget.type != BudgetType.SERVICE:
            raise ValidationError("items only apply to service budgets", field="items")
        rows, subtotal = _service_lines(payload.items)
        changes["items"] = rows
        changes["service_data"] = {"total": subtotal, "item_count": len(rows)}
        repriced = True

    if repriced:
        if budget.type == BudgetType.SOLAR:
            changes["financial"] = _solar_financial(solar_data, discount, discount_type)
        else:
            changes["financial"] = _service_financial(subtotal, discount, discount_type)

    if payload.materials is not None:
        changes["materials"] = payload.materials
    if payload.observations is not None:
        changes["observations"] = payload.observations
    if payload.settings:
        changes["settings"] = merge_settings(budget.settings, payload.settings)
        if payload.settings.get("validity_days"):
            changes["valid_until"] = now + timedelta(days=changes["settings"].validity_days)

    updated = budget.model_copy(update=changes, deep=True)
    logger.info(
        "Budget updated: %s by %s", budget.budget_number, actor.email,
        extra={"budget_number": budget.budget_number, "actor": actor.email},
    )
    return updated


def duplicate_budget(
    actor: Actor,
    budget: BudgetRecord,
    count_this_year: int = 0,
    now: datetime | None = None,
) -> BudgetRecord:
    ensure_can_view(actor, budget)
    now = now or _now()
    number = budget_number(now, count_this_year)

    copy = budget.model_copy(deep=True, update={
        "id": str(uuid.uuid4()),
        "budget_number": number,
        "created_by": actor.id,
        "status": BudgetStatus.DRAFT,
        "documents": {},
        "version": budget.version + 1,
        "parent_budget_id": budget.id,
        "valid_until": now + timedelta(days=budget.settings.validity_days),
        "created_at": now,
        "updated_at": now,
        "deleted_at": None,
    })
    logger.info(
        "Budget duplicated: %s -> %s", budget.budget_number, number,
        extra={"budget_number": number, "actor": actor.email},
    )
    return copy


def soft_delete_budget(
    actor: Actor,
    budget: BudgetRecord,
    proposal: ProposalRecord | None = None,
    now: datetime | None = None,
) -> BudgetRecord:
    ensure_admin(actor, "delete budgets")
    if budget.deleted_at is not None:
        raise NotFoundError("Budget not found")
    if proposal is not None and proposal.status == ProposalStatus.ACCEPTED:
        raise ConflictError("Cannot delete a budget whose proposal was accepted")

    now = now or _now()
    logger.info(
        "Budget deleted: %s by %s", budget.budget_number, actor.email,
        extra={"budget_number": budget.budget_number, "actor": actor.email},
    )
    return budget.model_copy(update={"deleted_at": now, "updated_at": now})


def economy_projection(
    budget: BudgetRecord,
    constants: CalculatorConstants | None = None,
) -> list[ROIRow]:
    """Year-by-year economy and ROI for a solar budget."""
    if budget.type != BudgetType.SOLAR or not budget.solar_data:
        raise ValidationError("Economy projection is only available for solar budgets", field="type")
    constants = constants or settings.calculator_constants()
    production = budget.solar_data["production"]
    try:
        return project_economy(
            production["yearly_total_kwh"],
            production["tariff_per_kwh"],
            budget.solar_data["calculations"]["total_value"],
            years=constants.projection_years,
            inflation_rate=constants.tariff_inflation_rate,
        )
    except InvalidInputError as exc:
        raise validation_error_from(exc) from exc


def is_expired(budget: BudgetRecord, now: datetime | None = None) -> bool:
    return (now or _now()) > budget.valid_until
