"""Domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from cardescrow._types import Money, UserId, ListingId, TransactionId
from cardescrow.escrow._status import TransactionStatus
from cardescrow.escrow._intents import Intent


# ═══════════════════════════════════════════════════════════════════════════════
# Enumerations
# ═══════════════════════════════════════════════════════════════════════════════


class Role(StrEnum):
    USER = "user"
    SELLER = "seller"
    ADMIN = "admin"


class ListingStatus(StrEnum):
    ACTIVE = "active"
    RESERVED = "reserved"
    SOLD = "sold"
    CANCELLED = "cancelled"
    REMOVED = "removed"


class PaymentMethod(StrEnum):
    GCASH = "gcash"
    MAYA = "maya"
    BANK_TRANSFER = "bank_transfer"
    COD_MEETUP = "cod_meetup"


class ShippingMethod(StrEnum):
    LBC = "lbc"
    JT_EXPRESS = "jt_express"
    FLASH_EXPRESS = "flash_express"
    GRAB_PADALA = "grab_padala"
    LALAMOVE = "lalamove"
    MEETUP = "meetup"


class ReportReason(StrEnum):
    SCAM = "scam"
    FAKE_CARD = "fake_card"
    NON_DELIVERY = "non_delivery"
    WRONG_ITEM = "wrong_item"
    HARASSMENT = "harassment"
    SPAM = "spam"
    COUNTERFEIT = "counterfeit"
    OTHER = "other"


class ReportStatus(StrEnum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# ═══════════════════════════════════════════════════════════════════════════════
# Caller
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Caller:
    """
    Authenticated caller, resolved upstream by the identity provider.

    Every operation receives it explicitly.
    """

    user_id: UserId
    role: Role = Role.USER
    is_banned: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


# ═══════════════════════════════════════════════════════════════════════════════
# Listing (external, referenced)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Listing:
    id: ListingId
    seller_id: UserId
    card_name: str
    price: Money
    shipping_fee: Money
    shipping_options: tuple[ShippingMethod, ...]
    allows_meetup: bool
    status: ListingStatus


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction: root aggregate
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Transaction:
    id: TransactionId
    listing_id: ListingId
    buyer_id: UserId
    seller_id: UserId

    # Frozen at creation
    item_price: Money
    shipping_fee: Money
    platform_fee: Money
    total_amount: Money
    seller_payout: Money

    payment_method: PaymentMethod
    shipping_method: ShippingMethod | None
    meetup_location: str | None

    status: TransactionStatus

    cancelled_by: UserId | None
    cancellation_reason: str | None
    cancelled_at: datetime | None

    disputed_by: UserId | None
    dispute_reason: str | None
    disputed_at: datetime | None
    dispute_resolution: str | None

    auto_confirm_at: datetime | None

    created_at: datetime
    updated_at: datetime

    def party_of(self, caller: Caller) -> str | None:
        """'buyer', 'seller' or None."""
        if caller.user_id == self.buyer_id:
            return "buyer"
        if caller.user_id == self.seller_id:
            return "seller"
        return None

    def counterparty_of(self, user_id: UserId) -> UserId:
        return self.seller_id if user_id == self.buyer_id else self.buyer_id


@dataclass(frozen=True, slots=True)
class EscrowRecord:
    """
    Payment proof + admin verification audit trail.

    On rejection the proof fields are cleared and verification_notes
    holds the rejection reason.
    """

    transaction_id: TransactionId
    payment_proof_url: str | None
    payment_reference: str | None
    payment_submitted_at: datetime | None
    verified_by: UserId | None
    verified_at: datetime | None
    verification_notes: str | None


@dataclass(frozen=True, slots=True)
class ShipmentDetails:
    transaction_id: TransactionId
    shipping_method: str
    tracking_number: str
    courier_receipt_url: str | None
    shipped_at: datetime


@dataclass(frozen=True, slots=True)
class Report:
    id: str
    reporter_id: UserId
    reported_user_id: UserId | None
    reported_transaction_id: TransactionId | None
    reason: ReportReason
    description: str
    status: ReportStatus
    created_at: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class TransactionView:
    """Transaction with its 1:1 subsidiary records."""

    transaction: Transaction
    escrow: EscrowRecord
    shipment: ShipmentDetails | None

    @property
    def id(self) -> TransactionId:
        return self.transaction.id

    @property
    def status(self) -> TransactionStatus:
        return self.transaction.status


@dataclass(frozen=True, slots=True)
class Outcome:
    """
    Result of a committed transition.

    Note: intents are already stored in the outbox; the list is returned
    for callers that want to act on them immediately.
    """

    view: TransactionView
    intents: tuple[Intent, ...] = ()
    report: Report | None = None


@dataclass(frozen=True, slots=True)
class TransactionPage:
    items: tuple[Transaction, ...]
    total: int
    page: int
    per_page: int


__all__ = (
    "Role",
    "ListingStatus",
    "PaymentMethod",
    "ShippingMethod",
    "ReportReason",
    "ReportStatus",
    "Caller",
    "Listing",
    "Transaction",
    "EscrowRecord",
    "ShipmentDetails",
    "Report",
    "TransactionView",
    "Outcome",
    "TransactionPage",
)
