"""
Core types for cardescrow.

Re-exports from kungfu + money and identity aliases.
"""

from __future__ import annotations

from decimal import Decimal

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Fixed-point currency amount, always quantized to CENT."""

CENT = Decimal("0.01")

# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════

type UserId = str
type ListingId = str
type TransactionId = str

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Money
    "Money",
    "CENT",
    # Identity
    "UserId",
    "ListingId",
    "TransactionId",
)
