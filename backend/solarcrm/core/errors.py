"""Application errors carrying the HTTP status the web layer should answer with."""

from __future__ import annotations

from quote_engine.errors import InvalidInputError


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class PermissionDeniedError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class GoneError(AppError):
    status_code = 410


FIELD_LABELS = {
    "desired_power_kw": "Desired power",
    "panel_power_w": "Panel power",
    "magic_number": "Magic number",
    "kit_value_method": "Kit value method",
    "value_per_kwp": "Value per kWp",
    "total_kit_value": "Total kit value",
    "material_value": "Material value",
    "labor_per_kwp": "Labor per kWp",
    "profit_margin_pct": "Profit margin",
    "commission_pct": "Commission percentage",
    "tariff_per_kwh": "Tariff",
    "total_value": "Total value",
}


def validation_error_from(exc: InvalidInputError) -> ValidationError:
    """Turn an engine input error into a message fit for the client."""
    field = exc.field
    if field.startswith("items["):
        index, _, attr = field[len("items["):].partition("].")
        label = f"Item {int(index) + 1} {attr.replace('_', ' ')}"
    else:
        label = FIELD_LABELS.get(field, field.replace("_", " ").capitalize())
    return ValidationError(f"{label} {exc.constraint}", field=field)
