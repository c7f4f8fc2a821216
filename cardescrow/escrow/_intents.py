"""
Side-effect intents emitted by transitions.

Notify intents go to the notification outbox in the same database
transaction as the state change; ListingChanged and ReportOpened
describe collaborator effects that were applied in that transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from cardescrow._types import UserId, ListingId, TransactionId


class NotificationType(StrEnum):
    NEW_OFFER = "new_offer"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_VERIFIED = "payment_verified"
    ITEM_SHIPPED = "item_shipped"
    TRANSACTION_COMPLETE = "transaction_complete"
    REPORT_UPDATE = "report_update"
    SYSTEM_MESSAGE = "system_message"


# ═══════════════════════════════════════════════════════════════════════════════
# Intents
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Notify:
    user_id: UserId
    type: NotificationType
    title: str
    message: str
    link: str | None = None


@dataclass(frozen=True, slots=True)
class ListingChanged:
    listing_id: ListingId
    status: str


@dataclass(frozen=True, slots=True)
class ReportOpened:
    report_id: str
    transaction_id: TransactionId


type Intent = Notify | ListingChanged | ReportOpened


# ═══════════════════════════════════════════════════════════════════════════════
# Message catalogue
# ═══════════════════════════════════════════════════════════════════════════════


def _link(transaction_id: TransactionId) -> str:
    return f"/transactions/{transaction_id}"


def new_purchase_order(seller_id: UserId, transaction_id: TransactionId, card_name: str) -> Notify:
    return Notify(
        seller_id,
        NotificationType.NEW_OFFER,
        "New Purchase Order",
        f"Someone wants to buy your {card_name}. Check your transactions.",
        _link(transaction_id),
    )


def payment_to_verify(admin_id: UserId, transaction_id: TransactionId) -> Notify:
    return Notify(
        admin_id,
        NotificationType.PAYMENT_RECEIVED,
        "New Payment to Verify",
        f"Transaction {transaction_id[:8]}: buyer submitted payment proof. Please verify.",
        f"/admin/transactions/{transaction_id}",
    )


def buyer_submitted_payment(seller_id: UserId, transaction_id: TransactionId) -> Notify:
    return Notify(
        seller_id,
        NotificationType.PAYMENT_RECEIVED,
        "Buyer Submitted Payment",
        "Buyer has submitted payment proof. Awaiting admin verification.",
        _link(transaction_id),
    )


def payment_verified_buyer(buyer_id: UserId, transaction_id: TransactionId) -> Notify:
    return Notify(
        buyer_id,
        NotificationType.PAYMENT_VERIFIED,
        "Payment Verified",
        "Your payment has been verified and is now held in escrow. "
        "The seller will ship your item soon.",
        _link(transaction_id),
    )


def payment_verified_seller(seller_id: UserId, transaction_id: TransactionId, card_name: str) -> Notify:
    return Notify(
        seller_id,
        NotificationType.PAYMENT_VERIFIED,
        "Payment Verified: Ship Now!",
        f"Buyer's payment for {card_name} has been verified. Please ship the item.",
        _link(transaction_id),
    )


def payment_rejected(buyer_id: UserId, transaction_id: TransactionId, reason: str) -> Notify:
    return Notify(
        buyer_id,
        NotificationType.SYSTEM_MESSAGE,
        "Payment Proof Rejected",
        f"Your payment proof could not be verified. Reason: {reason}. Please try again.",
        _link(transaction_id),
    )


def item_shipped(
    buyer_id: UserId,
    transaction_id: TransactionId,
    tracking_number: str,
    shipping_method: str,
) -> Notify:
    return Notify(
        buyer_id,
        NotificationType.ITEM_SHIPPED,
        "Your order has been shipped!",
        f"Tracking: {tracking_number} via {shipping_method}",
        _link(transaction_id),
    )


def funds_released(seller_id: UserId, transaction_id: TransactionId, card_name: str) -> Notify:
    return Notify(
        seller_id,
        NotificationType.TRANSACTION_COMPLETE,
        "Payment Released!",
        f"Buyer confirmed receipt of {card_name}. "
        "Funds will be released to your account.",
        _link(transaction_id),
    )


def leave_review(buyer_id: UserId, transaction_id: TransactionId) -> Notify:
    return Notify(
        buyer_id,
        NotificationType.TRANSACTION_COMPLETE,
        "Transaction Complete!",
        "Please leave a review for the seller.",
        f"/reviews/create?transaction={transaction_id}",
    )


def transaction_cancelled(user_id: UserId, transaction_id: TransactionId, card_name: str) -> Notify:
    return Notify(
        user_id,
        NotificationType.SYSTEM_MESSAGE,
        "Transaction Cancelled",
        f"Transaction for {card_name} was cancelled.",
        _link(transaction_id),
    )


def dispute_filed(user_id: UserId, transaction_id: TransactionId) -> Notify:
    return Notify(
        user_id,
        NotificationType.SYSTEM_MESSAGE,
        "Dispute Filed",
        "A dispute has been filed for your transaction. Our admin team will review.",
        _link(transaction_id),
    )


__all__ = (
    "NotificationType",
    "Notify",
    "ListingChanged",
    "ReportOpened",
    "Intent",
    "new_purchase_order",
    "payment_to_verify",
    "buyer_submitted_payment",
    "payment_verified_buyer",
    "payment_verified_seller",
    "payment_rejected",
    "item_shipped",
    "funds_released",
    "leave_review",
    "transaction_cancelled",
    "dispute_filed",
)
