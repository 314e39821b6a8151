"""Budget request and record schemas.

``solar_data`` keeps the stored layout used by the documents and the
public portal: ``system`` (array and inverter), ``calculations`` (money)
and ``production`` (energy and economy).
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from quote_engine.economics import LineItem
from quote_engine.sizing import KitValueMethod, SizingInput


class BudgetType(str, Enum):
    SOLAR = "solar"
    SERVICE = "service"


class BudgetStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


# ── Solar input ──────────────────────────────────────────────────────

class SolarSystemInput(BaseModel):
    desired_power_kw: float = Field(description="Target contracted power (kW)")
    panel_power_w: float = Field(default=610, description="Single panel rating (W)")
    magic_number: float = Field(default=107, description="Site yield divisor")
    panel_brand: str | None = None
    inverter_brand: str | None = None


class SolarCalculationsInput(BaseModel):
    kit_value_method: KitValueMethod = KitValueMethod.PER_KWP
    value_per_kwp: float | None = Field(default=None, description="Kit price per Wp")
    total_kit_value: float | None = None
    material_value: float = 0.0
    labor_per_kwp: float = 350.0
    profit_margin_pct: float = 25.0
    commission_enabled: bool = False
    commission_pct: float = 5.0


class SolarProductionInput(BaseModel):
    tariff_per_kwh: float = 0.86


class SolarDataInput(BaseModel):
    system: SolarSystemInput
    calculations: SolarCalculationsInput = Field(default_factory=SolarCalculationsInput)
    production: SolarProductionInput = Field(default_factory=SolarProductionInput)

    def to_sizing_input(self) -> SizingInput:
        return SizingInput(
            desired_power_kw=self.system.desired_power_kw,
            panel_power_w=self.system.panel_power_w,
            magic_number=self.system.magic_number,
            kit_value_method=self.calculations.kit_value_method,
            value_per_kwp=self.calculations.value_per_kwp,
            total_kit_value=self.calculations.total_kit_value,
            material_value=self.calculations.material_value,
            labor_per_kwp=self.calculations.labor_per_kwp,
            profit_margin_pct=self.calculations.profit_margin_pct,
            commission_enabled=self.calculations.commission_enabled,
            commission_pct=self.calculations.commission_pct,
            tariff_per_kwh=self.production.tariff_per_kwh,
        )


# ── Service input ────────────────────────────────────────────────────

class ServiceItemInput(BaseModel):
    description: str = Field(max_length=500)
    quantity: float = 1.0
    unit_price: float
    unit: str = "un"
    discount_pct: float = Field(default=0.0, ge=0, le=100)
    tax_pct: float = Field(default=0.0, ge=0, le=100)

    def to_line_item(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount_pct=self.discount_pct,
            tax_pct=self.tax_pct,
            unit=self.unit,
        )


# ── Settings and requests ────────────────────────────────────────────

class BudgetSettings(BaseModel):
    include_installation: bool = True
    include_homologation: bool = True
    warranty_years: int = Field(default=1, ge=0)
    validity_days: int = Field(default=15, ge=1, le=365)
    show_economy_projection: bool = True
    show_financing_options: bool = True

    model_config = {"extra": "allow"}


class SolarBudgetCreate(BaseModel):
    client_id: str
    solar_data: SolarDataInput
    settings: dict | None = None
    materials: list[str] | None = None
    observations: str | None = Field(default=None, max_length=5000)


class ServiceBudgetCreate(BaseModel):
    client_id: str
    items: list[ServiceItemInput] = Field(min_length=1)
    settings: dict | None = None
    materials: list[str] | None = None
    observations: str | None = Field(default=None, max_length=5000)


class BudgetUpdate(BaseModel):
    solar_data: SolarDataInput | None = None
    items: list[ServiceItemInput] | None = None
    discount: float | None = Field(default=None, description="Percentage or currency amount, per discount_type")
    discount_type: str | None = Field(default=None, description="'percentage' or 'fixed'")
    settings: dict | None = None
    materials: list[str] | None = None
    observations: str | None = Field(default=None, max_length=5000)


# ── Records ──────────────────────────────────────────────────────────

class FinancialSummary(BaseModel):
    subtotal: float
    discount: float = 0.0
    discount_type: str = "percentage"
    tax: float = 0.0
    total: float
    payment_conditions: dict = Field(default_factory=dict)


class ClientInfo(BaseModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    whatsapp: str | None = None
    address: str | None = None
    city: str | None = "Manaus"
    state: str | None = "AM"
    zip_code: str | None = None
    energy_tariff: float = 0.86
    created_by: str | None = None

    def full_address(self) -> str:
        parts = [self.address, self.city, self.state]
        text = ", ".join(p for p in parts if p)
        if self.zip_code:
            text = f"{text} - CEP {self.zip_code}" if text else f"CEP {self.zip_code}"
        return text

    @property
    def contact_phone(self) -> str | None:
        return self.whatsapp or self.phone


class BudgetRecord(BaseModel):
    id: str
    budget_number: str
    client_id: str
    created_by: str
    type: BudgetType
    status: BudgetStatus = BudgetStatus.DRAFT
    solar_data: dict | None = None
    service_data: dict | None = None
    items: list[dict] = Field(default_factory=list)
    financial: FinancialSummary
    settings: BudgetSettings = Field(default_factory=BudgetSettings)
    materials: list[str] = Field(default_factory=list)
    observations: str | None = None
    documents: dict[str, str] = Field(default_factory=dict)
    valid_until: datetime
    version: int = 1
    parent_budget_id: str | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def total(self) -> float:
        return self.financial.total
