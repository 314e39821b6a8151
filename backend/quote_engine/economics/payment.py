"""Payment conditions offered with a budget."""
from __future__ import annotations

from dataclasses import asdict, dataclass

from ..errors import InvalidInputError

PERCENTAGE = "percentage"
FIXED = "fixed"


@dataclass(frozen=True)
class PaymentConditions:
    cash_discount_pct: float = 10.0
    max_installments: int = 18
    installment_interest_pct: float = 0.0
    financing_available: bool = True

    def __post_init__(self):
        if not 0 <= self.cash_discount_pct <= 100:
            raise InvalidInputError("cash_discount_pct", "must be between 0 and 100", self.cash_discount_pct)
        if self.max_installments < 1:
            raise InvalidInputError("max_installments", "must be at least 1", self.max_installments)
        if self.installment_interest_pct < 0:
            raise InvalidInputError(
                "installment_interest_pct", "must be zero or greater", self.installment_interest_pct
            )

    def cash_discount(self, total: float) -> float:
        return total * (self.cash_discount_pct / 100)

    def cash_total(self, total: float) -> float:
        return total - self.cash_discount(total)

    def installment_value(self, total: float, installments: int | None = None) -> float:
        """Monthly instalment for ``installments`` payments (default: the maximum).

        Zero interest splits the total evenly; otherwise the fixed payment
        of a French (Price) amortization schedule is returned.
        """
        n = self.max_installments if installments is None else installments
        if n < 1 or n > self.max_installments:
            raise InvalidInputError(
                "installments", f"must be between 1 and {self.max_installments}", n
            )
        r = self.installment_interest_pct / 100
        if r <= 0:
            return total / n
        return total * r * (1 + r) ** n / ((1 + r) ** n - 1)

    def to_dict(self) -> dict:
        return asdict(self)


SOLAR_PAYMENT_CONDITIONS = PaymentConditions(
    cash_discount_pct=10.0, max_installments=18, installment_interest_pct=0.0,
    financing_available=True,
)
SERVICE_PAYMENT_CONDITIONS = PaymentConditions(
    cash_discount_pct=10.0, max_installments=12, installment_interest_pct=0.0,
    financing_available=False,
)


def apply_discount(subtotal: float, discount: float = 0.0, discount_type: str = PERCENTAGE) -> float:
    if discount < 0:
        raise InvalidInputError("discount", "must be zero or greater", discount)
    if discount_type == PERCENTAGE:
        if discount > 100:
            raise InvalidInputError("discount", "must be between 0 and 100", discount)
        return subtotal - subtotal * (discount / 100)
    if discount_type == FIXED:
        return subtotal - discount
    raise InvalidInputError("discount_type", "must be 'percentage' or 'fixed'", discount_type)


def financial_total(
    subtotal: float,
    tax: float = 0.0,
    discount: float = 0.0,
    discount_type: str = PERCENTAGE,
) -> float:
    """Discounted subtotal plus tax."""
    return apply_discount(subtotal, discount, discount_type) + tax
