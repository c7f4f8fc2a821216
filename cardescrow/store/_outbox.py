"""
Outbox store: pending notifications and their delivery bookkeeping.

Rows are written by the ledger in the same database transaction as the
state change that produced them; this store is the read/ack side used
by the dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardescrow._types import UserId
from cardescrow.escrow._intents import Notify, NotificationType
from cardescrow.store._tables import NotificationTable, OutboxStatus


@dataclass(frozen=True, slots=True)
class OutboxEntry:
    id: str
    notification: Notify
    attempts: int
    status: str
    last_error: str | None
    created_at: datetime


def _to_entry(row: NotificationTable) -> OutboxEntry:
    return OutboxEntry(
        id=row.id,
        notification=Notify(
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            link=row.link,
        ),
        attempts=row.dispatch_attempts,
        status=row.dispatch_status,
        last_error=row.dispatch_error,
        created_at=row.created_at,
    )


class SQLAlchemyOutbox:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def pending(self, limit: int) -> list[OutboxEntry]:
        """Oldest undelivered rows first."""
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(NotificationTable)
                .where(NotificationTable.dispatch_status == OutboxStatus.PENDING)
                .order_by(NotificationTable.created_at, NotificationTable.id)
                .limit(limit)
            )
            return [_to_entry(r) for r in rows]

    async def for_user(self, user_id: UserId) -> list[OutboxEntry]:
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(NotificationTable)
                .where(NotificationTable.user_id == user_id)
                .order_by(NotificationTable.created_at, NotificationTable.id)
            )
            return [_to_entry(r) for r in rows]

    async def mark_sent(self, entry_id: str, at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(NotificationTable)
                .where(NotificationTable.id == entry_id)
                .values(
                    dispatch_status=OutboxStatus.SENT,
                    dispatch_attempts=NotificationTable.dispatch_attempts + 1,
                    dispatched_at=at,
                    dispatch_error=None,
                )
            )
            await session.commit()

    async def mark_attempt_failed(self, entry_id: str, error: str, give_up: bool) -> None:
        """Count a failed attempt; `give_up` parks the row as failed."""
        async with self._session_factory() as session:
            await session.execute(
                update(NotificationTable)
                .where(NotificationTable.id == entry_id)
                .values(
                    dispatch_status=OutboxStatus.FAILED if give_up else OutboxStatus.PENDING,
                    dispatch_attempts=NotificationTable.dispatch_attempts + 1,
                    dispatch_error=error,
                )
            )
            await session.commit()


__all__ = ("OutboxEntry", "SQLAlchemyOutbox")
