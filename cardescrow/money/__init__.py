"""
Money: exact fee and payout computation.

    from cardescrow import money as M

    match M.compute(Decimal("1000"), Decimal("0")):
        case Ok(charges):
            charges.seller_payout  # Decimal("970.00")
"""

from cardescrow.money._calc import (
    Charges,
    AmountInput,
    DEFAULT_FEE_RATE,
    MINIMUM_ITEM_PRICE,
    to_money,
    platform_fee,
    compute,
)

__all__ = (
    "Charges",
    "AmountInput",
    "DEFAULT_FEE_RATE",
    "MINIMUM_ITEM_PRICE",
    "to_money",
    "platform_fee",
    "compute",
)
