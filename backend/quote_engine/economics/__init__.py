"""Economy projection, payment conditions and service totals."""

from .payment import (
    SERVICE_PAYMENT_CONDITIONS,
    SOLAR_PAYMENT_CONDITIONS,
    PaymentConditions,
    apply_discount,
    financial_total,
)
from .projection import ROIRow, payback_year, project_economy
from .service_budget import LineItem, service_total

__all__ = [
    "SERVICE_PAYMENT_CONDITIONS",
    "SOLAR_PAYMENT_CONDITIONS",
    "PaymentConditions",
    "apply_discount",
    "financial_total",
    "ROIRow",
    "payback_year",
    "project_economy",
    "LineItem",
    "service_total",
]
