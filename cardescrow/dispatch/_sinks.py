"""Notification sinks."""

from __future__ import annotations

import logging

from cardescrow.escrow._intents import Notify

logger = logging.getLogger(__name__)


class LoggingSink:
    """Writes each notification to the log. Default sink for local runs."""

    async def notify(self, notification: Notify) -> None:
        logger.info(
            "notify %s [%s] %s: %s",
            notification.user_id, notification.type, notification.title, notification.message,
        )


class MemorySink:
    """
    Collects notifications in memory.

    `fail_times` makes the next N deliveries raise, for exercising retries.
    """

    def __init__(self, fail_times: int = 0) -> None:
        self.delivered: list[Notify] = []
        self._fail_times = fail_times

    async def notify(self, notification: Notify) -> None:
        if self._fail_times > 0:
            self._fail_times -= 1
            raise ConnectionError("sink unavailable")
        self.delivered.append(notification)

    def for_user(self, user_id: str) -> list[Notify]:
        return [n for n in self.delivered if n.user_id == user_id]


__all__ = ("LoggingSink", "MemorySink")
