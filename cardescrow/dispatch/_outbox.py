"""
Outbox dispatcher: delivers committed notifications to a sink.

    dispatcher = OutboxDispatcher(SQLAlchemyOutbox(session_factory), LoggingSink())
    report = await dispatcher.drain()
    report.sent, report.retrying, report.failed

A sink failure never affects the transaction that produced the row: the
row stays pending and is retried on the next drain, until the policy's
attempt budget is spent and it is parked as failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from kungfu import LazyCoroResult, Ok, Error
from combinators import lift as L

from cardescrow.escrow._ports import Clock, NotificationSink, SystemClock
from cardescrow.store._outbox import OutboxEntry, SQLAlchemyOutbox

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Policy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DispatchPolicy:
    """Delivery budget."""

    max_attempts: int = 5
    batch_size: int = 100

    def with_max_attempts(self, n: int) -> DispatchPolicy:
        return replace(self, max_attempts=n)

    def with_batch_size(self, n: int) -> DispatchPolicy:
        return replace(self, batch_size=n)


@dataclass(frozen=True, slots=True)
class DeliveryError:
    entry_id: str
    message: str
    cause: Exception | None = None


@dataclass(frozen=True, slots=True)
class DrainReport:
    sent: int = 0
    retrying: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.retrying + self.failed


# ═══════════════════════════════════════════════════════════════════════════════
# Dispatcher
# ═══════════════════════════════════════════════════════════════════════════════


class OutboxDispatcher:
    def __init__(
        self,
        outbox: SQLAlchemyOutbox,
        sink: NotificationSink,
        policy: DispatchPolicy = DispatchPolicy(),
        clock: Clock | None = None,
    ) -> None:
        self._outbox = outbox
        self._sink = sink
        self._policy = policy
        self._clock = clock or SystemClock()

    def _deliver(self, entry: OutboxEntry) -> LazyCoroResult[None, DeliveryError]:
        async def do_deliver() -> None:
            await self._sink.notify(entry.notification)

        return L.catching_async(
            do_deliver,
            on_error=lambda e: DeliveryError(entry.id, f"{type(e).__name__}: {e}", e),
        )

    async def drain(self, limit: int | None = None) -> DrainReport:
        """Deliver up to `limit` (default: policy batch size) pending rows, oldest first."""
        entries = await self._outbox.pending(limit or self._policy.batch_size)
        sent = retrying = failed = 0

        for entry in entries:
            match await self._deliver(entry):
                case Ok(_):
                    await self._outbox.mark_sent(entry.id, self._clock.now())
                    sent += 1
                case Error(err):
                    give_up = entry.attempts + 1 >= self._policy.max_attempts
                    await self._outbox.mark_attempt_failed(entry.id, err.message, give_up)
                    if give_up:
                        failed += 1
                        logger.error(
                            "notification %s to %s parked after %d attempts: %s",
                            entry.id, entry.notification.user_id, entry.attempts + 1, err.message,
                        )
                    else:
                        retrying += 1
                        logger.warning(
                            "notification %s to %s failed (attempt %d/%d): %s",
                            entry.id, entry.notification.user_id,
                            entry.attempts + 1, self._policy.max_attempts, err.message,
                        )

        if entries:
            logger.info("outbox drained: sent=%d retrying=%d failed=%d", sent, retrying, failed)
        return DrainReport(sent=sent, retrying=retrying, failed=failed)


__all__ = (
    "DispatchPolicy",
    "DeliveryError",
    "DrainReport",
    "OutboxDispatcher",
)
