import logging

from cardescrow import dispatch as D
from cardescrow import escrow as X
from cardescrow.store import OutboxStatus, SQLAlchemyOutbox

from tests.helpers import create, drive_to, submit_proof, view_of


async def test_drain_delivers_pending_in_order(runner, outbox: SQLAlchemyOutbox, clock):
    txn = await create(runner)
    await submit_proof(runner, txn.id)
    sink = D.MemorySink()
    dispatcher = D.OutboxDispatcher(outbox, sink, clock=clock)

    report = await dispatcher.drain()

    # one to the seller on create, then seller + two admins on proof
    assert report == D.DrainReport(sent=4)
    assert {n.title for n in sink.for_user("seller")} == {"New Purchase Order", "Buyer Submitted Payment"}
    assert len(sink.for_user("admin")) == len(sink.for_user("admin-2")) == 1
    assert await outbox.pending(10) == []

    for entry in await outbox.for_user("seller"):
        assert (entry.status, entry.attempts) == (OutboxStatus.SENT, 1)

    assert await dispatcher.drain() == D.DrainReport()


async def test_failed_delivery_is_retried(runner, outbox: SQLAlchemyOutbox):
    await create(runner)
    sink = D.MemorySink(fail_times=1)
    dispatcher = D.OutboxDispatcher(outbox, sink)

    first = await dispatcher.drain()
    assert first == D.DrainReport(retrying=1)
    [entry] = await outbox.pending(10)
    assert entry.attempts == 1
    assert entry.last_error == "ConnectionError: sink unavailable"

    second = await dispatcher.drain()
    assert second == D.DrainReport(sent=1)
    assert len(sink.delivered) == 1


async def test_exhausted_delivery_is_parked(runner, outbox: SQLAlchemyOutbox, caplog):
    await create(runner)
    sink = D.MemorySink(fail_times=10)
    dispatcher = D.OutboxDispatcher(outbox, sink, D.DispatchPolicy().with_max_attempts(2))

    with caplog.at_level(logging.WARNING, logger="cardescrow.dispatch._outbox"):
        assert await dispatcher.drain() == D.DrainReport(retrying=1)
        assert await dispatcher.drain() == D.DrainReport(failed=1)

    assert await outbox.pending(10) == []
    [entry] = await outbox.for_user("seller")
    assert (entry.status, entry.attempts) == (OutboxStatus.FAILED, 2)
    assert "parked after 2 attempts" in caplog.text
    assert await dispatcher.drain() == D.DrainReport()


async def test_sink_failure_leaves_transaction_committed(runner, outbox: SQLAlchemyOutbox, ledger):
    txn = await drive_to(runner, X.TransactionStatus.IN_ESCROW)

    report = await D.OutboxDispatcher(outbox, D.MemorySink(fail_times=100)).drain()

    assert report.sent == 0
    assert report.attempted > 0
    assert (await view_of(ledger, txn.id)).status is X.TransactionStatus.IN_ESCROW


async def test_batch_size_limits_a_drain(runner, outbox: SQLAlchemyOutbox):
    txn = await create(runner)
    await submit_proof(runner, txn.id)
    dispatcher = D.OutboxDispatcher(outbox, D.MemorySink(), D.DispatchPolicy().with_batch_size(3))

    assert (await dispatcher.drain()).sent == 3
    assert (await dispatcher.drain()).sent == 1
    assert (await dispatcher.drain(limit=10)).attempted == 0


async def test_logging_sink_writes_each_notification(caplog):
    sink = D.LoggingSink()
    notification = X.Notify(
        "buyer", X.NotificationType.ITEM_SHIPPED, "Your order has been shipped!", "Tracking: LBC-1 via lbc",
    )

    with caplog.at_level(logging.INFO, logger="cardescrow.dispatch._sinks"):
        await sink.notify(notification)

    assert "Your order has been shipped!" in caplog.text
    assert "buyer" in caplog.text
