"""
Pricing calculator — registration type → base amount, processing fee, total.

All amounts are integer minor units (cents). Pure functions, safe to call
from any layer to preview a price before a registration is committed.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fairway.config import settings
from fairway.models.models import RegistrationType

MIN_AMOUNT = 50             # $0.50
MAX_AMOUNT = 100_000_000    # $1M


@dataclass(frozen=True)
class Pricing:
    base_amount: int
    fees:        int
    total:       int

    def to_dict(self) -> dict:
        return {"baseAmount": self.base_amount, "fees": self.fees, "total": self.total}


def calculate_fees(
    amount: int,
    processing_percent: Optional[float] = None,
    fixed_fee: Optional[int] = None,
) -> int:
    """
    Processing fee for ``amount``: round(amount × percent / 100 + fixed).

    Rounds half up so that 0.5 cent always goes to the processor,
    independent of float representation.
    """
    percent = settings.PROCESSING_FEE_PERCENT if processing_percent is None else processing_percent
    fixed   = settings.PROCESSING_FEE_FIXED if fixed_fee is None else fixed_fee

    raw = Decimal(amount) * Decimal(str(percent)) / Decimal(100) + Decimal(fixed)
    return int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_pricing(
    registration_type: str,
    processing_percent: Optional[float] = None,
    fixed_fee: Optional[int] = None,
) -> Pricing:
    """Base price for the registration type plus processing fee."""
    base = RegistrationType.BASE_PRICE.get(
        registration_type, RegistrationType.BASE_PRICE[RegistrationType.INDIVIDUAL]
    )
    fees = calculate_fees(base, processing_percent, fixed_fee)
    return Pricing(base_amount=base, fees=fees, total=base + fees)


def validate_amount(amount: int) -> Optional[str]:
    """Return an error message for an unacceptable charge amount, None if OK."""
    if amount <= 0:
        return "Amount must be greater than zero"
    if amount < MIN_AMOUNT:
        return "Amount must be at least $0.50"
    if amount > MAX_AMOUNT:
        return "Amount exceeds maximum limit"
    return None


def format_amount(amount: int, currency: Optional[str] = None) -> str:
    """
    Human-readable amount.
    Example: 15465 → "$154.65"
    """
    currency = (currency or settings.PAYMENT_CURRENCY).upper()
    value = Decimal(amount) / Decimal(100)
    if currency == "USD":
        return f"${value:,.2f}"
    return f"{value:,.2f} {currency}"
