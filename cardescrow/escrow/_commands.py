"""
Commands: one frozen dataclass per operation.

Every command carries the authenticated Caller explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from cardescrow._types import ListingId, TransactionId
from cardescrow.errors import EscrowError
from cardescrow.ops import Returning
from cardescrow.escrow._models import (
    Caller,
    Outcome,
    PaymentMethod,
    ShippingMethod,
    TransactionView,
    TransactionPage,
)
from cardescrow.escrow._status import TransactionStatus


class Verdict(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


# ═══════════════════════════════════════════════════════════════════════════════
# Transitions
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CreateTransaction(Returning[Outcome, EscrowError]):
    caller: Caller
    listing_id: ListingId
    payment_method: PaymentMethod
    shipping_method: ShippingMethod | None = None
    meetup_location: str | None = None


@dataclass(frozen=True, slots=True)
class SubmitPaymentProof(Returning[Outcome, EscrowError]):
    caller: Caller
    transaction_id: TransactionId
    proof_url: str
    reference: str


@dataclass(frozen=True, slots=True)
class VerifyPayment(Returning[Outcome, EscrowError]):
    caller: Caller
    transaction_id: TransactionId
    verdict: Verdict
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class SubmitShipment(Returning[Outcome, EscrowError]):
    caller: Caller
    transaction_id: TransactionId
    shipping_method: str
    tracking_number: str
    receipt_url: str | None = None


@dataclass(frozen=True, slots=True)
class ConfirmReceipt(Returning[Outcome, EscrowError]):
    caller: Caller
    transaction_id: TransactionId


@dataclass(frozen=True, slots=True)
class CancelTransaction(Returning[Outcome, EscrowError]):
    caller: Caller
    transaction_id: TransactionId
    reason: str


@dataclass(frozen=True, slots=True)
class DisputeTransaction(Returning[Outcome, EscrowError]):
    caller: Caller
    transaction_id: TransactionId
    reason: str


# ═══════════════════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GetTransaction(Returning[TransactionView, EscrowError]):
    caller: Caller
    transaction_id: TransactionId


@dataclass(frozen=True, slots=True)
class ListTransactions(Returning[TransactionPage, EscrowError]):
    caller: Caller
    as_party: str | None = None  # "buyer" | "seller" | None for both
    status: TransactionStatus | None = None
    page: int = 1


__all__ = (
    "Verdict",
    "CreateTransaction",
    "SubmitPaymentProof",
    "VerifyPayment",
    "SubmitShipment",
    "ConfirmReceipt",
    "CancelTransaction",
    "DisputeTransaction",
    "GetTransaction",
    "ListTransactions",
)
