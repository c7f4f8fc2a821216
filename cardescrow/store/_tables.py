"""
Tables: SQLAlchemy models for the escrow ledger.

Money columns store integer cents; datetime columns store naive UTC
and load back as aware UTC.

Note: at most one live transaction per listing is enforced by a partial
unique index, so concurrent creates cannot both commit.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from cardescrow._types import CENT
from cardescrow.escrow._status import TERMINAL


# ═══════════════════════════════════════════════════════════════════════════════
# Column types
# ═══════════════════════════════════════════════════════════════════════════════


class MoneyCents(TypeDecorator[Decimal]):
    """Decimal amount ↔ integer cents."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> int | None:
        if value is None:
            return None
        cents = Decimal(value) / CENT
        if cents != cents.to_integral_value():
            raise ValueError(f"amount has sub-cent precision: {value!r}")
        return int(cents)

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None:
            return None
        return (Decimal(int(value)) * CENT).quantize(CENT)


class UTCDateTime(TypeDecorator[datetime]):
    """Aware UTC datetime ↔ naive UTC column."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime is ambiguous: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Outbox Mixin: add to any table whose rows must be delivered
# ═══════════════════════════════════════════════════════════════════════════════


class OutboxStatus:
    """Status constants for dispatch_status column."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class OutboxMixin:
    """
    Delivery bookkeeping for outbox rows.

    Adds columns:
    - dispatch_status: "pending" | "sent" | "failed"
    - dispatch_attempts: delivery attempts so far
    - dispatch_error: last delivery error
    - dispatched_at: when the sink accepted the row
    """

    dispatch_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OutboxStatus.PENDING,
        index=True,
    )

    dispatch_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    dispatch_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    dispatched_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Upstream-owned tables (profiles, listings)
# ═══════════════════════════════════════════════════════════════════════════════


class ProfileTable(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ListingTable(Base):
    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    seller_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)
    card_name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False)
    shipping_fee: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False, default=Decimal("0"))
    shipping_options: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    allows_meetup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")


# ═══════════════════════════════════════════════════════════════════════════════
# Transactions
# ═══════════════════════════════════════════════════════════════════════════════

_TERMINAL_SQL = ", ".join(f"'{s.value}'" for s in sorted(TERMINAL))
_LIVE_PREDICATE = text(f"status NOT IN ({_TERMINAL_SQL})")


class TransactionTable(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index(
            "uq_transactions_live_listing",
            "listing_id",
            unique=True,
            sqlite_where=_LIVE_PREDICATE,
            postgresql_where=_LIVE_PREDICATE,
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    listing_id: Mapped[str] = mapped_column(ForeignKey("listings.id"), nullable=False, index=True)
    buyer_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)
    seller_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False, index=True)

    # Frozen amounts
    item_price: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False)
    shipping_fee: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False)
    seller_payout: Mapped[Decimal] = mapped_column(MoneyCents, nullable=False)

    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    shipping_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    meetup_location: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    cancelled_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    disputed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    disputed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    dispute_resolution: Mapped[str | None] = mapped_column(Text, nullable=True)

    auto_confirm_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)


class EscrowRecordTable(Base):
    __tablename__ = "escrow_records"

    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id"), primary_key=True)
    payment_proof_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    verified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class ShipmentTable(Base):
    __tablename__ = "shipment_details"

    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id"), primary_key=True)
    shipping_method: Mapped[str] = mapped_column(String(50), nullable=False)
    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False)
    courier_receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipped_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Side effects
# ═══════════════════════════════════════════════════════════════════════════════


class ReportTable(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reported_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reported_transaction_id: Mapped[str | None] = mapped_column(
        ForeignKey("transactions.id"), nullable=True, index=True
    )
    reason: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class NotificationTable(Base, OutboxMixin):
    """Notification outbox, written in the same database transaction as the state change."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)


class AdminActionTable(Base):
    __tablename__ = "admin_actions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    target_type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


__all__ = (
    "MoneyCents",
    "UTCDateTime",
    "Base",
    "OutboxStatus",
    "OutboxMixin",
    "ProfileTable",
    "ListingTable",
    "TransactionTable",
    "EscrowRecordTable",
    "ShipmentTable",
    "ReportTable",
    "NotificationTable",
    "AdminActionTable",
)
