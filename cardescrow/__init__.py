"""
cardescrow: escrow transactions for a trading-card marketplace.

    from cardescrow import escrow as X     # State machine and commands
    from cardescrow import money as M      # Fee / payout calculation
    from cardescrow import store           # SQLAlchemy ledger
    from cardescrow import dispatch        # Notification outbox delivery
    from cardescrow.api import create_app  # HTTP surface
"""

from cardescrow import money
from cardescrow import ops
from cardescrow import escrow
from cardescrow._types import (
    Result,
    Ok,
    Error,
    LazyCoroResult,
    Money,
    CENT,
    UserId,
    ListingId,
    TransactionId,
)
from cardescrow.errors import ErrorKind, Stage, EscrowError, EscrowErrors

__version__ = "0.1.0"

__all__ = (
    "money",
    "ops",
    "escrow",
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    "Money",
    "CENT",
    "UserId",
    "ListingId",
    "TransactionId",
    "ErrorKind",
    "Stage",
    "EscrowError",
    "EscrowErrors",
)
