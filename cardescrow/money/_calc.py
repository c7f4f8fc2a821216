"""
Money calculator: platform fee, buyer total and seller payout.

Pure and deterministic: the result is persisted with the transaction
and never recomputed, so identical inputs must give identical Charges.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING

from kungfu import Result, Ok, Error

from cardescrow._types import Money, CENT
from cardescrow.errors import EscrowError, EscrowErrors

DEFAULT_FEE_RATE = Decimal("0.03")
MINIMUM_ITEM_PRICE = Decimal("1")

type AmountInput = Decimal | int | str


# ═══════════════════════════════════════════════════════════════════════════════
# Charges
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Charges:
    """
    Frozen amounts of one purchase.

    Invariant: seller_payout + platform_fee == total_amount.
    """

    item_price: Money
    shipping_fee: Money
    platform_fee: Money
    total_amount: Money
    seller_payout: Money


# ═══════════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════════


def to_money(value: AmountInput, field: str = "amount") -> Result[Money, EscrowError]:
    """
    Parse a currency amount with at most two fractional digits.

    Floats are refused: 0.1 + 0.2 is not a price.
    """
    if isinstance(value, (bool, float)) or not isinstance(value, (Decimal, int, str)):
        return Error(EscrowErrors.invalid_amount(
            f"{field} must be a decimal amount, got {type(value).__name__}"
        ))

    try:
        amount = Decimal(value.strip()) if isinstance(value, str) else Decimal(value)
    except InvalidOperation:
        return Error(EscrowErrors.invalid_amount(f"{field} is not a number: {value!r}"))

    if not amount.is_finite():
        return Error(EscrowErrors.invalid_amount(f"{field} must be finite"))
    if amount < 0:
        return Error(EscrowErrors.invalid_amount(f"{field} must not be negative"))

    quantized = amount.quantize(CENT)
    if quantized != amount:
        return Error(EscrowErrors.invalid_amount(
            f"{field} has more than two decimal places: {value}"
        ))

    return Ok(quantized)


# ═══════════════════════════════════════════════════════════════════════════════
# compute()
# ═══════════════════════════════════════════════════════════════════════════════


def platform_fee(item_price: Money, fee_rate: Decimal = DEFAULT_FEE_RATE) -> Money:
    """Fee rounded up to the next cent, never under-collected."""
    return (item_price * fee_rate).quantize(CENT, rounding=ROUND_CEILING)


def compute(
    item_price: AmountInput,
    shipping_fee: AmountInput,
    fee_rate: Decimal = DEFAULT_FEE_RATE,
    minimum_item_price: Decimal = MINIMUM_ITEM_PRICE,
) -> Result[Charges, EscrowError]:
    """
    Compute the charges of a purchase.

    Example:
        compute(Decimal("8500"), Decimal("120"))
        # Ok(Charges(platform_fee=255.00, total_amount=8620.00,
        #            seller_payout=8365.00, ...))
    """
    match to_money(item_price, "item_price"):
        case Error(e):
            return Error(e)
        case Ok(price):
            pass

    match to_money(shipping_fee, "shipping_fee"):
        case Error(e):
            return Error(e)
        case Ok(shipping):
            pass

    if price < minimum_item_price:
        return Error(EscrowErrors.invalid_amount(
            f"item_price must be at least {minimum_item_price}"
        ))

    fee = platform_fee(price, fee_rate)
    return Ok(Charges(
        item_price=price,
        shipping_fee=shipping,
        platform_fee=fee,
        total_amount=price + shipping,
        seller_payout=price - fee + shipping,
    ))


__all__ = (
    "Charges",
    "AmountInput",
    "DEFAULT_FEE_RATE",
    "MINIMUM_ITEM_PRICE",
    "to_money",
    "platform_fee",
    "compute",
)
