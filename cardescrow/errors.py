"""
Error taxonomy: typed failures returned inside `Error(...)`.

Business-rule violations never raise. Handlers return
`Result[T, EscrowError]` and the caller matches on `kind`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


# ═══════════════════════════════════════════════════════════════════════════════
# Error Kind
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    """Kinds of escrow failures."""

    INVALID_AMOUNT = auto()  # Malformed money input
    FORBIDDEN = auto()  # Caller is not the required party
    INVALID_STATE = auto()  # Transaction is in the wrong stage
    LISTING_UNAVAILABLE = auto()  # Listing not active / already reserved
    DUPLICATE_ACTIVE_TRANSACTION = auto()  # Listing already has a live transaction
    SELF_PURCHASE = auto()  # Buyer owns the listing
    ACCOUNT_SUSPENDED = auto()  # Caller is banned
    INVALID_SHIPPING_OPTION = auto()  # Shipping method not offered by listing
    NOT_FOUND = auto()  # Transaction or listing does not exist


class Stage(Enum):
    """
    Where an InvalidState failure sits relative to the allowed window.

    TOO_EARLY → retry after the counterparty acts.
    TOO_LATE  → the window has closed for good.
    RESOLVED  → terminal state or open dispute.
    """

    TOO_EARLY = "too_early"
    TOO_LATE = "too_late"
    RESOLVED = "resolved"


# ═══════════════════════════════════════════════════════════════════════════════
# Escrow Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class EscrowError:
    """
    Escrow operation error.

    Note: `code` is the operation-specific name (e.g. "not_yet_shipped")
    while `kind` stays coarse enough to map onto a transport status.
    """

    kind: ErrorKind
    message: str
    code: str | None = None
    stage: Stage | None = None

    @property
    def name(self) -> str:
        return self.code or self.kind.name.lower()

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


class EscrowErrors:
    @staticmethod
    def invalid_amount(msg: str) -> EscrowError:
        return EscrowError(ErrorKind.INVALID_AMOUNT, msg)

    @staticmethod
    def forbidden(msg: str = "You are not allowed to perform this action") -> EscrowError:
        return EscrowError(ErrorKind.FORBIDDEN, msg)

    @staticmethod
    def invalid_state(code: str, stage: Stage, msg: str) -> EscrowError:
        return EscrowError(ErrorKind.INVALID_STATE, msg, code=code, stage=stage)

    @staticmethod
    def listing_unavailable(msg: str = "Listing not found or no longer active") -> EscrowError:
        return EscrowError(ErrorKind.LISTING_UNAVAILABLE, msg)

    @staticmethod
    def duplicate_active_transaction() -> EscrowError:
        return EscrowError(
            ErrorKind.DUPLICATE_ACTIVE_TRANSACTION,
            "This listing already has an active transaction",
        )

    @staticmethod
    def self_purchase() -> EscrowError:
        return EscrowError(ErrorKind.SELF_PURCHASE, "You cannot buy your own listing")

    @staticmethod
    def account_suspended() -> EscrowError:
        return EscrowError(ErrorKind.ACCOUNT_SUSPENDED, "Account suspended")

    @staticmethod
    def invalid_shipping_option(msg: str) -> EscrowError:
        return EscrowError(ErrorKind.INVALID_SHIPPING_OPTION, msg)

    @staticmethod
    def not_found(entity: str, id: str) -> EscrowError:
        return EscrowError(ErrorKind.NOT_FOUND, f"{entity} {id} not found")


__all__ = (
    "ErrorKind",
    "Stage",
    "EscrowError",
    "EscrowErrors",
)
