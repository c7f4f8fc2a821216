"""
HTTP schemas: pydantic request/response models.

Request models validate input bounds and build commands with `to_domain(caller)`.
Response models render domain values with `from_domain(value)`.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl

from cardescrow.escrow._commands import (
    Verdict,
    CreateTransaction,
    SubmitPaymentProof,
    VerifyPayment,
    SubmitShipment,
    ConfirmReceipt,
    CancelTransaction,
    DisputeTransaction,
    GetTransaction,
    ListTransactions,
)
from cardescrow.escrow._models import (
    Caller,
    PaymentMethod,
    ShippingMethod,
    Transaction,
    EscrowRecord,
    ShipmentDetails,
    TransactionView,
    TransactionPage,
    Outcome,
)
from cardescrow.escrow._status import TransactionStatus


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


class CreateTransactionIn(BaseModel):
    listing_id: str = Field(min_length=1)
    payment_method: PaymentMethod
    shipping_method: ShippingMethod | None = None
    meetup_location: str | None = Field(default=None, max_length=300)

    def to_domain(self, caller: Caller) -> CreateTransaction:
        return CreateTransaction(
            caller=caller,
            listing_id=self.listing_id,
            payment_method=self.payment_method,
            shipping_method=self.shipping_method,
            meetup_location=self.meetup_location,
        )


class SubmitPaymentIn(BaseModel):
    transaction_id: str = Field(min_length=1)
    payment_proof_url: HttpUrl
    payment_reference: str = Field(min_length=1, max_length=100)

    def to_domain(self, caller: Caller) -> SubmitPaymentProof:
        return SubmitPaymentProof(
            caller=caller,
            transaction_id=self.transaction_id,
            proof_url=str(self.payment_proof_url),
            reference=self.payment_reference,
        )


class VerifyPaymentIn(BaseModel):
    transaction_id: str = Field(min_length=1)
    action: Verdict
    notes: str | None = Field(default=None, max_length=500)

    def to_domain(self, caller: Caller) -> VerifyPayment:
        return VerifyPayment(
            caller=caller,
            transaction_id=self.transaction_id,
            verdict=self.action,
            notes=self.notes,
        )


class SubmitShipmentIn(BaseModel):
    transaction_id: str = Field(min_length=1)
    shipping_method: str = Field(min_length=1, max_length=50)
    tracking_number: str = Field(min_length=1, max_length=100)
    courier_receipt_url: HttpUrl | None = None

    def to_domain(self, caller: Caller) -> SubmitShipment:
        return SubmitShipment(
            caller=caller,
            transaction_id=self.transaction_id,
            shipping_method=self.shipping_method,
            tracking_number=self.tracking_number,
            receipt_url=str(self.courier_receipt_url) if self.courier_receipt_url else None,
        )


class ConfirmReceiptIn(BaseModel):
    transaction_id: str = Field(min_length=1)

    def to_domain(self, caller: Caller) -> ConfirmReceipt:
        return ConfirmReceipt(caller=caller, transaction_id=self.transaction_id)


class CancelIn(BaseModel):
    transaction_id: str = Field(min_length=1)
    reason: str = Field(min_length=5, max_length=300)

    def to_domain(self, caller: Caller) -> CancelTransaction:
        return CancelTransaction(caller=caller, transaction_id=self.transaction_id, reason=self.reason)


class DisputeIn(BaseModel):
    transaction_id: str = Field(min_length=1)
    reason: str = Field(min_length=10, max_length=1000)

    def to_domain(self, caller: Caller) -> DisputeTransaction:
        return DisputeTransaction(caller=caller, transaction_id=self.transaction_id, reason=self.reason)


class GetTransactionIn(BaseModel):
    transaction_id: str = Field(min_length=1)

    def to_domain(self, caller: Caller) -> GetTransaction:
        return GetTransaction(caller=caller, transaction_id=self.transaction_id)


class ListTransactionsIn(BaseModel):
    role: Literal["buyer", "seller"] | None = None
    status: TransactionStatus | None = None
    page: int = Field(default=1, ge=1)

    def to_domain(self, caller: Caller) -> ListTransactions:
        return ListTransactions(caller=caller, as_party=self.role, status=self.status, page=self.page)


# ═══════════════════════════════════════════════════════════════════════════════
# Responses
# ═══════════════════════════════════════════════════════════════════════════════


class TransactionOut(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    item_price: Decimal
    shipping_fee: Decimal
    platform_fee: Decimal
    total_amount: Decimal
    seller_payout: Decimal
    payment_method: PaymentMethod
    shipping_method: ShippingMethod | None
    meetup_location: str | None
    status: TransactionStatus
    cancelled_by: str | None
    cancellation_reason: str | None
    cancelled_at: datetime | None
    disputed_by: str | None
    dispute_reason: str | None
    disputed_at: datetime | None
    dispute_resolution: str | None
    auto_confirm_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, dom: Transaction) -> TransactionOut:
        return cls(
            id=dom.id,
            listing_id=dom.listing_id,
            buyer_id=dom.buyer_id,
            seller_id=dom.seller_id,
            item_price=dom.item_price,
            shipping_fee=dom.shipping_fee,
            platform_fee=dom.platform_fee,
            total_amount=dom.total_amount,
            seller_payout=dom.seller_payout,
            payment_method=dom.payment_method,
            shipping_method=dom.shipping_method,
            meetup_location=dom.meetup_location,
            status=dom.status,
            cancelled_by=dom.cancelled_by,
            cancellation_reason=dom.cancellation_reason,
            cancelled_at=dom.cancelled_at,
            disputed_by=dom.disputed_by,
            dispute_reason=dom.dispute_reason,
            disputed_at=dom.disputed_at,
            dispute_resolution=dom.dispute_resolution,
            auto_confirm_at=dom.auto_confirm_at,
            created_at=dom.created_at,
            updated_at=dom.updated_at,
        )


class EscrowOut(BaseModel):
    payment_proof_url: str | None
    payment_reference: str | None
    payment_submitted_at: datetime | None
    verified_by: str | None
    verified_at: datetime | None
    verification_notes: str | None

    @classmethod
    def from_domain(cls, dom: EscrowRecord) -> EscrowOut:
        return cls(
            payment_proof_url=dom.payment_proof_url,
            payment_reference=dom.payment_reference,
            payment_submitted_at=dom.payment_submitted_at,
            verified_by=dom.verified_by,
            verified_at=dom.verified_at,
            verification_notes=dom.verification_notes,
        )


class ShipmentOut(BaseModel):
    shipping_method: str
    tracking_number: str
    courier_receipt_url: str | None
    shipped_at: datetime

    @classmethod
    def from_domain(cls, dom: ShipmentDetails) -> ShipmentOut:
        return cls(
            shipping_method=dom.shipping_method,
            tracking_number=dom.tracking_number,
            courier_receipt_url=dom.courier_receipt_url,
            shipped_at=dom.shipped_at,
        )


class TransactionViewOut(BaseModel):
    transaction: TransactionOut
    escrow: EscrowOut
    shipment: ShipmentOut | None

    @classmethod
    def from_domain(cls, dom: TransactionView) -> TransactionViewOut:
        return cls(
            transaction=TransactionOut.from_domain(dom.transaction),
            escrow=EscrowOut.from_domain(dom.escrow),
            shipment=ShipmentOut.from_domain(dom.shipment) if dom.shipment else None,
        )


class OutcomeOut(TransactionViewOut):
    report_id: str | None = None

    @classmethod
    def from_domain(cls, dom: Outcome) -> OutcomeOut:  # type: ignore[override]
        view = TransactionViewOut.from_domain(dom.view)
        return cls(
            transaction=view.transaction,
            escrow=view.escrow,
            shipment=view.shipment,
            report_id=dom.report.id if dom.report else None,
        )


class TransactionPageOut(BaseModel):
    transactions: list[TransactionOut]
    total: int
    page: int
    per_page: int

    @classmethod
    def from_domain(cls, dom: TransactionPage) -> TransactionPageOut:
        return cls(
            transactions=[TransactionOut.from_domain(t) for t in dom.items],
            total=dom.total,
            page=dom.page,
            per_page=dom.per_page,
        )


class ErrorOut(BaseModel):
    error: str
    kind: str
    message: str
    stage: str | None = None


__all__ = (
    "CreateTransactionIn",
    "SubmitPaymentIn",
    "VerifyPaymentIn",
    "SubmitShipmentIn",
    "ConfirmReceiptIn",
    "CancelIn",
    "DisputeIn",
    "GetTransactionIn",
    "ListTransactionsIn",
    "TransactionOut",
    "EscrowOut",
    "ShipmentOut",
    "TransactionViewOut",
    "OutcomeOut",
    "TransactionPageOut",
    "ErrorOut",
)
