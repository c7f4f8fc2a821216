"""
Dispatch: at-least-once delivery of the notification outbox.

    from cardescrow import dispatch as D

    dispatcher = D.OutboxDispatcher(
        SQLAlchemyOutbox(session_factory),
        D.LoggingSink(),
        D.DispatchPolicy().with_max_attempts(5),
    )
    await dispatcher.drain()
"""

from cardescrow.dispatch._outbox import (
    DispatchPolicy,
    DeliveryError,
    DrainReport,
    OutboxDispatcher,
)
from cardescrow.dispatch._sinks import LoggingSink, MemorySink

__all__ = (
    "DispatchPolicy",
    "DeliveryError",
    "DrainReport",
    "OutboxDispatcher",
    "LoggingSink",
    "MemorySink",
)
