"""
SQLAlchemy ledger: unit of work over the escrow tables.

Usage:

    session_factory, engine = await create_database(settings.database_url)
    ledger = SQLAlchemyLedger(session_factory)

    async with ledger.begin() as tx:
        txn = await tx.get_transaction(transaction_id)
        moved = await tx.transition(
            txn.id, frozenset({txn.status}), TransactionStatus.SHIPPED, now,
        )
        if moved:
            await tx.commit()

Every state change is a conditional UPDATE reporting whether a row
matched. Leaving `begin()` without `commit()` rolls everything back.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, cast

from sqlalchemy import func, select, update, or_
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardescrow._types import UserId, ListingId, TransactionId
from cardescrow.escrow._intents import Notify
from cardescrow.escrow._models import (
    Listing,
    ListingStatus,
    PaymentMethod,
    ShippingMethod,
    Transaction,
    EscrowRecord,
    ShipmentDetails,
    Report,
    ReportReason,
    ReportStatus,
    TransactionView,
    TransactionPage,
)
from cardescrow.escrow._status import TransactionStatus, LIVE
from cardescrow.store._tables import (
    ProfileTable,
    ListingTable,
    TransactionTable,
    EscrowRecordTable,
    ShipmentTable,
    ReportTable,
    NotificationTable,
    AdminActionTable,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Row → domain
# ═══════════════════════════════════════════════════════════════════════════════


def to_listing(row: ListingTable) -> Listing:
    return Listing(
        id=row.id,
        seller_id=row.seller_id,
        card_name=row.card_name,
        price=row.price,
        shipping_fee=row.shipping_fee,
        shipping_options=tuple(ShippingMethod(s) for s in row.shipping_options),
        allows_meetup=row.allows_meetup,
        status=ListingStatus(row.status),
    )


def to_transaction(row: TransactionTable) -> Transaction:
    return Transaction(
        id=row.id,
        listing_id=row.listing_id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        item_price=row.item_price,
        shipping_fee=row.shipping_fee,
        platform_fee=row.platform_fee,
        total_amount=row.total_amount,
        seller_payout=row.seller_payout,
        payment_method=PaymentMethod(row.payment_method),
        shipping_method=ShippingMethod(row.shipping_method) if row.shipping_method else None,
        meetup_location=row.meetup_location,
        status=TransactionStatus(row.status),
        cancelled_by=row.cancelled_by,
        cancellation_reason=row.cancellation_reason,
        cancelled_at=row.cancelled_at,
        disputed_by=row.disputed_by,
        dispute_reason=row.dispute_reason,
        disputed_at=row.disputed_at,
        dispute_resolution=row.dispute_resolution,
        auto_confirm_at=row.auto_confirm_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_escrow(row: EscrowRecordTable) -> EscrowRecord:
    return EscrowRecord(
        transaction_id=row.transaction_id,
        payment_proof_url=row.payment_proof_url,
        payment_reference=row.payment_reference,
        payment_submitted_at=row.payment_submitted_at,
        verified_by=row.verified_by,
        verified_at=row.verified_at,
        verification_notes=row.verification_notes,
    )


def _to_shipment(row: ShipmentTable) -> ShipmentDetails:
    return ShipmentDetails(
        transaction_id=row.transaction_id,
        shipping_method=row.shipping_method,
        tracking_number=row.tracking_number,
        courier_receipt_url=row.courier_receipt_url,
        shipped_at=row.shipped_at,
    )


def _to_report(row: ReportTable) -> Report:
    return Report(
        id=row.id,
        reporter_id=row.reporter_id,
        reported_user_id=row.reported_user_id,
        reported_transaction_id=row.reported_transaction_id,
        reason=ReportReason(row.reason),
        description=row.description,
        status=ReportStatus(row.status),
        created_at=row.created_at,
    )


def _rowcount(result: Any) -> int:
    return cast(CursorResult[Any], result).rowcount


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyLedgerSession:
    """One unit of work. Implements LedgerSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.committed = False

    async def commit(self) -> None:
        await self._session.commit()
        self.committed = True

    async def _get[R](self, model: type[R], key: str) -> R | None:
        return await self._session.get(model, key, populate_existing=True)

    # ─── Reads ───────────────────────────────────────────────────────────────

    async def get_listing(self, listing_id: ListingId) -> Listing | None:
        row = await self._get(ListingTable, listing_id)
        return to_listing(row) if row else None

    async def get_transaction(self, transaction_id: TransactionId) -> Transaction | None:
        row = await self._get(TransactionTable, transaction_id)
        return to_transaction(row) if row else None

    async def get_view(self, transaction_id: TransactionId) -> TransactionView | None:
        row = await self._get(TransactionTable, transaction_id)
        if row is None:
            return None
        escrow = await self._get(EscrowRecordTable, transaction_id)
        shipment = await self._get(ShipmentTable, transaction_id)
        return TransactionView(
            transaction=to_transaction(row),
            escrow=_to_escrow(escrow) if escrow else EscrowRecord(
                transaction_id, None, None, None, None, None, None
            ),
            shipment=_to_shipment(shipment) if shipment else None,
        )

    async def has_live_transaction(self, listing_id: ListingId) -> bool:
        stmt = select(func.count()).select_from(TransactionTable).where(
            TransactionTable.listing_id == listing_id,
            TransactionTable.status.in_([s.value for s in LIVE]),
        )
        return (await self._session.scalar(stmt) or 0) > 0

    async def admin_ids(self) -> list[UserId]:
        stmt = select(ProfileTable.id).where(ProfileTable.role == "admin").order_by(ProfileTable.id)
        return list((await self._session.scalars(stmt)).all())

    async def list_transactions(
        self,
        user_id: UserId,
        as_party: str | None,
        status: TransactionStatus | None,
        page: int,
        per_page: int,
    ) -> TransactionPage:
        match as_party:
            case "buyer":
                party = TransactionTable.buyer_id == user_id
            case "seller":
                party = TransactionTable.seller_id == user_id
            case _:
                party = or_(
                    TransactionTable.buyer_id == user_id,
                    TransactionTable.seller_id == user_id,
                )

        conditions = [party]
        if status is not None:
            conditions.append(TransactionTable.status == status.value)

        total = await self._session.scalar(
            select(func.count()).select_from(TransactionTable).where(*conditions)
        )
        rows = await self._session.scalars(
            select(TransactionTable)
            .where(*conditions)
            .order_by(TransactionTable.updated_at.desc(), TransactionTable.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
            .execution_options(populate_existing=True)
        )
        return TransactionPage(
            items=tuple(to_transaction(r) for r in rows),
            total=total or 0,
            page=page,
            per_page=per_page,
        )

    # ─── Inventory gate ──────────────────────────────────────────────────────

    async def _move_listing(
        self,
        listing_id: ListingId,
        expected: ListingStatus,
        to: ListingStatus,
    ) -> bool:
        stmt = (
            update(ListingTable)
            .where(ListingTable.id == listing_id, ListingTable.status == expected.value)
            .values(status=to.value)
        )
        moved = _rowcount(await self._session.execute(stmt)) > 0
        if moved:
            logger.debug("listing %s: %s → %s", listing_id, expected, to)
        return moved

    async def reserve_listing(self, listing_id: ListingId) -> bool:
        return await self._move_listing(listing_id, ListingStatus.ACTIVE, ListingStatus.RESERVED)

    async def release_listing(self, listing_id: ListingId) -> bool:
        return await self._move_listing(listing_id, ListingStatus.RESERVED, ListingStatus.ACTIVE)

    async def consume_listing(self, listing_id: ListingId) -> bool:
        return await self._move_listing(listing_id, ListingStatus.RESERVED, ListingStatus.SOLD)

    # ─── Transaction ─────────────────────────────────────────────────────────

    async def insert_transaction(self, transaction: Transaction) -> bool:
        t = transaction
        self._session.add(TransactionTable(
            id=t.id,
            listing_id=t.listing_id,
            buyer_id=t.buyer_id,
            seller_id=t.seller_id,
            item_price=t.item_price,
            shipping_fee=t.shipping_fee,
            platform_fee=t.platform_fee,
            total_amount=t.total_amount,
            seller_payout=t.seller_payout,
            payment_method=t.payment_method.value,
            shipping_method=t.shipping_method.value if t.shipping_method else None,
            meetup_location=t.meetup_location,
            status=t.status.value,
            created_at=t.created_at,
            updated_at=t.updated_at,
        ))
        try:
            await self._session.flush()
        except IntegrityError as e:
            logger.warning("listing %s: live transaction already exists (%s)", t.listing_id, e.orig)
            return False

        # Escrow record after the parent row: foreign keys may be enforced
        self._session.add(EscrowRecordTable(transaction_id=t.id))
        await self._session.flush()
        return True

    async def transition(
        self,
        transaction_id: TransactionId,
        expected: frozenset[TransactionStatus],
        to: TransactionStatus,
        at: datetime,
        **fields: Any,
    ) -> bool:
        stmt = (
            update(TransactionTable)
            .where(
                TransactionTable.id == transaction_id,
                TransactionTable.status.in_([s.value for s in expected]),
            )
            .values(status=to.value, updated_at=at, **fields)
            .execution_options(synchronize_session=False)
        )
        return _rowcount(await self._session.execute(stmt)) > 0

    # ─── Escrow record ───────────────────────────────────────────────────────

    async def _update_escrow(self, transaction_id: TransactionId, **values: Any) -> None:
        stmt = (
            update(EscrowRecordTable)
            .where(EscrowRecordTable.transaction_id == transaction_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def record_payment_proof(
        self,
        transaction_id: TransactionId,
        proof_url: str,
        reference: str,
        at: datetime,
    ) -> None:
        await self._update_escrow(
            transaction_id,
            payment_proof_url=proof_url,
            payment_reference=reference,
            payment_submitted_at=at,
        )

    async def record_verification(
        self,
        transaction_id: TransactionId,
        admin_id: UserId,
        at: datetime,
        notes: str | None,
    ) -> None:
        await self._update_escrow(
            transaction_id,
            verified_by=admin_id,
            verified_at=at,
            verification_notes=notes,
        )

    async def clear_payment_proof(
        self,
        transaction_id: TransactionId,
        notes: str,
        at: datetime,
    ) -> None:
        # Rejection leaves verified_by/verified_at untouched: funds never moved
        await self._update_escrow(
            transaction_id,
            payment_proof_url=None,
            payment_reference=None,
            payment_submitted_at=None,
            verification_notes=notes,
        )

    # ─── Shipment ────────────────────────────────────────────────────────────

    async def insert_shipment(self, shipment: ShipmentDetails) -> None:
        self._session.add(ShipmentTable(
            transaction_id=shipment.transaction_id,
            shipping_method=shipment.shipping_method,
            tracking_number=shipment.tracking_number,
            courier_receipt_url=shipment.courier_receipt_url,
            shipped_at=shipment.shipped_at,
        ))
        await self._session.flush()

    # ─── Side effects ────────────────────────────────────────────────────────

    async def open_report(
        self,
        reporter_id: UserId,
        reported_user_id: UserId | None,
        reported_transaction_id: TransactionId | None,
        reason: ReportReason,
        description: str,
        status: ReportStatus,
        at: datetime,
    ) -> Report:
        row = ReportTable(
            id=str(uuid.uuid4()),
            reporter_id=reporter_id,
            reported_user_id=reported_user_id,
            reported_transaction_id=reported_transaction_id,
            reason=reason.value,
            description=description,
            status=status.value,
            created_at=at,
        )
        self._session.add(row)
        await self._session.flush()
        return _to_report(row)

    async def enqueue(self, notifications: Iterable[Notify], at: datetime) -> None:
        self._session.add_all([
            NotificationTable(
                id=str(uuid.uuid4()),
                user_id=n.user_id,
                type=n.type.value,
                title=n.title,
                message=n.message,
                link=n.link,
                created_at=at,
            )
            for n in notifications
        ])
        await self._session.flush()

    async def record_admin_action(
        self,
        admin_id: UserId,
        action: str,
        target_type: str,
        target_id: str,
        details: dict[str, Any],
        at: datetime,
    ) -> None:
        self._session.add(AdminActionTable(
            id=str(uuid.uuid4()),
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details,
            created_at=at,
        ))
        await self._session.flush()


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyLedger:
    """Implements Ledger over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[SQLAlchemyLedgerSession]:
        async with self._session_factory() as session:
            tx = SQLAlchemyLedgerSession(session)
            try:
                yield tx
            finally:
                if not tx.committed:
                    await session.rollback()


__all__ = (
    "SQLAlchemyLedgerSession",
    "SQLAlchemyLedger",
    "to_listing",
    "to_transaction",
)
