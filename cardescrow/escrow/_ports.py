"""
Collaborator protocols: what the state machine needs from the outside.

    Ledger            unit of work over Transaction, EscrowRecord, ShipmentDetails
    InventoryGate     exclusive listing reservation, inside the same unit of work
    ReportCreator     dispute reports, inside the same unit of work
    Clock             current time
    NotificationSink  outbox delivery, never called by handlers
    IdentityProvider  token to Caller, never called by handlers
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any, Protocol

from cardescrow._types import UserId, ListingId, TransactionId
from cardescrow.escrow._intents import Notify
from cardescrow.escrow._models import (
    Caller,
    Listing,
    Transaction,
    ShipmentDetails,
    Report,
    ReportReason,
    ReportStatus,
    TransactionView,
    TransactionPage,
)
from cardescrow.escrow._status import TransactionStatus


# ═══════════════════════════════════════════════════════════════════════════════
# Inventory Gate
# ═══════════════════════════════════════════════════════════════════════════════


class InventoryGate(Protocol):
    """
    Listing reservation.

    Each method is a conditional update: it changes the listing only when
    the current status allows it and returns whether a row changed.
    """

    async def reserve_listing(self, listing_id: ListingId) -> bool:
        """active → reserved. False if the listing is not active."""
        ...

    async def release_listing(self, listing_id: ListingId) -> bool:
        """reserved → active."""
        ...

    async def consume_listing(self, listing_id: ListingId) -> bool:
        """reserved → sold."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Report Creator
# ═══════════════════════════════════════════════════════════════════════════════


class ReportCreator(Protocol):
    async def open_report(
        self,
        reporter_id: UserId,
        reported_user_id: UserId | None,
        reported_transaction_id: TransactionId | None,
        reason: ReportReason,
        description: str,
        status: ReportStatus,
        at: datetime,
    ) -> Report: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger
# ═══════════════════════════════════════════════════════════════════════════════


class LedgerSession(InventoryGate, ReportCreator, Protocol):
    """
    One unit of work. Nothing is persisted until commit();
    leaving the context without commit() rolls back.
    """

    async def commit(self) -> None: ...

    # Reads
    async def get_listing(self, listing_id: ListingId) -> Listing | None: ...
    async def get_transaction(self, transaction_id: TransactionId) -> Transaction | None: ...
    async def get_view(self, transaction_id: TransactionId) -> TransactionView | None: ...
    async def has_live_transaction(self, listing_id: ListingId) -> bool: ...
    async def admin_ids(self) -> list[UserId]: ...

    async def list_transactions(
        self,
        user_id: UserId,
        as_party: str | None,
        status: TransactionStatus | None,
        page: int,
        per_page: int,
    ) -> TransactionPage: ...

    # Transaction
    async def insert_transaction(self, transaction: Transaction) -> bool:
        """Insert with an empty escrow record. False if the listing already has a live transaction."""
        ...

    async def transition(
        self,
        transaction_id: TransactionId,
        expected: frozenset[TransactionStatus],
        to: TransactionStatus,
        at: datetime,
        **fields: Any,
    ) -> bool:
        """Guarded update: applies only while status ∈ expected."""
        ...

    # Escrow record
    async def record_payment_proof(
        self,
        transaction_id: TransactionId,
        proof_url: str,
        reference: str,
        at: datetime,
    ) -> None: ...

    async def record_verification(
        self,
        transaction_id: TransactionId,
        admin_id: UserId,
        at: datetime,
        notes: str | None,
    ) -> None: ...

    async def clear_payment_proof(
        self,
        transaction_id: TransactionId,
        notes: str,
        at: datetime,
    ) -> None: ...

    # Shipment
    async def insert_shipment(self, shipment: ShipmentDetails) -> None: ...

    # Side effects
    async def enqueue(self, notifications: Iterable[Notify], at: datetime) -> None: ...

    async def record_admin_action(
        self,
        admin_id: UserId,
        action: str,
        target_type: str,
        target_id: str,
        details: dict[str, Any],
        at: datetime,
    ) -> None: ...


class Ledger(Protocol):
    def begin(self) -> AbstractAsyncContextManager[LedgerSession]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════════


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Outer edges
# ═══════════════════════════════════════════════════════════════════════════════


class NotificationSink(Protocol):
    """
    Delivers one notification. Raises on failure.

    At-least-once: the outbox may redeliver after a crash.
    """

    async def notify(self, notification: Notify) -> None: ...


class IdentityProvider(Protocol):
    """Resolves a caller token issued by the auth gateway."""

    async def resolve(self, token: str) -> Caller | None: ...


__all__ = (
    "InventoryGate",
    "ReportCreator",
    "LedgerSession",
    "Ledger",
    "Clock",
    "SystemClock",
    "NotificationSink",
    "IdentityProvider",
)
