"""
Transaction status and the transition table.

    pending_payment → payment_submitted → in_escrow → shipped → (delivered) → completed
          ↑                  │               │           │           │
          └──── rejected ────┘               └───────────┴───────────┴──→ disputed
    pending_payment, payment_submitted ──→ cancelled

Every (status, action) pair maps to a target status or a Rejection.
The table is built at import; a status without a progress slot or a
resolved message fails the import.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from kungfu import Result, Ok, Error

from cardescrow.errors import EscrowError, EscrowErrors, Stage


# ═══════════════════════════════════════════════════════════════════════════════
# Status
# ═══════════════════════════════════════════════════════════════════════════════


class TransactionStatus(StrEnum):
    """
    Canonical transaction status.

    Note: "payment_verified" is accepted as an alias of IN_ESCROW when
    parsing; it is never written.
    """

    PENDING_PAYMENT = "pending_payment"
    PAYMENT_SUBMITTED = "payment_submitted"
    IN_ESCROW = "in_escrow"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    DISPUTED = "disputed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value: object) -> TransactionStatus | None:
        if value == PAYMENT_VERIFIED_ALIAS:
            return cls.IN_ESCROW
        return None


PAYMENT_VERIFIED_ALIAS = "payment_verified"

TERMINAL: frozenset[TransactionStatus] = frozenset({
    TransactionStatus.COMPLETED,
    TransactionStatus.CANCELLED,
    TransactionStatus.REFUNDED,
})

LIVE: frozenset[TransactionStatus] = frozenset(TransactionStatus) - TERMINAL


class Action(StrEnum):
    """State-changing operations after creation."""

    SUBMIT_PAYMENT = "submit_payment"
    APPROVE_PAYMENT = "approve_payment"
    REJECT_PAYMENT = "reject_payment"
    SHIP = "ship"
    CONFIRM_RECEIPT = "confirm_receipt"
    CANCEL = "cancel"
    DISPUTE = "dispute"


# ═══════════════════════════════════════════════════════════════════════════════
# Rules
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Rejection:
    code: str
    stage: Stage
    message: str

    def to_error(self) -> EscrowError:
        return EscrowErrors.invalid_state(self.code, self.stage, self.message)


@dataclass(frozen=True, slots=True)
class _Rule:
    sources: frozenset[TransactionStatus]
    target: TransactionStatus
    early_code: str
    early_message: str
    late_code: str
    late_message: str


def _rule(
    sources: set[TransactionStatus],
    target: TransactionStatus,
    early: tuple[str, str],
    late: tuple[str, str],
) -> _Rule:
    return _Rule(frozenset(sources), target, *early, *late)


S = TransactionStatus

_RULES: dict[Action, _Rule] = {
    Action.SUBMIT_PAYMENT: _rule(
        {S.PENDING_PAYMENT},
        S.PAYMENT_SUBMITTED,
        early=("payment_not_expected", "Transaction is not awaiting payment"),
        late=("payment_already_submitted", "Transaction is not awaiting payment"),
    ),
    Action.APPROVE_PAYMENT: _rule(
        {S.PAYMENT_SUBMITTED},
        S.IN_ESCROW,
        early=("payment_not_submitted", "No payment proof has been submitted yet"),
        late=("payment_already_resolved", "Transaction is not awaiting verification"),
    ),
    Action.REJECT_PAYMENT: _rule(
        {S.PAYMENT_SUBMITTED},
        S.PENDING_PAYMENT,
        early=("payment_not_submitted", "No payment proof has been submitted yet"),
        late=("payment_already_resolved", "Transaction is not awaiting verification"),
    ),
    Action.SHIP: _rule(
        {S.IN_ESCROW},
        S.SHIPPED,
        early=("payment_not_yet_verified", "Payment must be verified before shipping"),
        late=("already_shipped", "Item has already been shipped"),
    ),
    Action.CONFIRM_RECEIPT: _rule(
        {S.SHIPPED, S.DELIVERED},
        S.COMPLETED,
        early=("not_yet_shipped", "Item must be shipped before confirming"),
        late=("receipt_already_confirmed", "Receipt has already been confirmed"),
    ),
    Action.CANCEL: _rule(
        {S.PENDING_PAYMENT, S.PAYMENT_SUBMITTED},
        S.CANCELLED,
        early=("not_cancellable", "Transaction cannot be cancelled at this stage"),
        late=(
            "too_late_to_cancel_stage_locked",
            "Cannot cancel after payment is in escrow",
        ),
    ),
    Action.DISPUTE: _rule(
        {S.IN_ESCROW, S.SHIPPED, S.DELIVERED},
        S.DISPUTED,
        early=(
            "dispute_not_allowed_yet",
            "Disputes can only be filed after payment is verified",
        ),
        late=("dispute_window_closed", "Disputes can no longer be filed"),
    ),
}


# ═══════════════════════════════════════════════════════════════════════════════
# Progress: orders the happy path, None for resolved states
# ═══════════════════════════════════════════════════════════════════════════════


def _progress(status: TransactionStatus) -> int | None:
    match status:
        case S.PENDING_PAYMENT:
            return 0
        case S.PAYMENT_SUBMITTED:
            return 1
        case S.IN_ESCROW:
            return 2
        case S.SHIPPED:
            return 3
        case S.DELIVERED:
            return 4
        case S.COMPLETED | S.DISPUTED | S.REFUNDED | S.CANCELLED:
            return None
        case _:
            assert_never(status)


_RESOLVED_MESSAGES: dict[TransactionStatus, str] = {
    S.COMPLETED: "Transaction is already completed",
    S.DISPUTED: "Transaction is under dispute review",
    S.REFUNDED: "Transaction was refunded",
    S.CANCELLED: "Transaction was cancelled",
}


def _decide(status: TransactionStatus, rule: _Rule) -> TransactionStatus | Rejection:
    if status in rule.sources:
        return rule.target

    position = _progress(status)
    if position is None:
        return Rejection(rule.late_code, Stage.RESOLVED, _RESOLVED_MESSAGES[status])

    window = [p for p in map(_progress, rule.sources) if p is not None]
    if position < min(window):
        return Rejection(rule.early_code, Stage.TOO_EARLY, rule.early_message)
    return Rejection(rule.late_code, Stage.TOO_LATE, rule.late_message)


# ═══════════════════════════════════════════════════════════════════════════════
# Transition Table
# ═══════════════════════════════════════════════════════════════════════════════

type Transition = TransactionStatus | Rejection

TRANSITIONS: dict[tuple[TransactionStatus, Action], Transition] = {
    (status, action): _decide(status, _RULES[action])
    for status in TransactionStatus
    for action in Action
}


def route(status: TransactionStatus, action: Action) -> Result[TransactionStatus, EscrowError]:
    """Look up the target status of `action` from `status`."""
    match TRANSITIONS[(status, action)]:
        case Rejection() as rejection:
            return Error(rejection.to_error())
        case target:
            return Ok(target)


def sources_of(action: Action) -> frozenset[TransactionStatus]:
    """Statuses from which `action` is allowed (used as the update guard)."""
    return _RULES[action].sources


__all__ = (
    "TransactionStatus",
    "PAYMENT_VERIFIED_ALIAS",
    "TERMINAL",
    "LIVE",
    "Action",
    "Rejection",
    "Transition",
    "TRANSITIONS",
    "route",
    "sources_of",
)
