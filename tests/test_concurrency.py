"""
Races between independent requests.

Each runner call opens its own session on its own SQLite connection,
so these exercise the guarded updates and the live-transaction index.
"""

import asyncio

from kungfu import Error, Ok

from cardescrow import escrow as X
from cardescrow.errors import ErrorKind
from cardescrow.store import Catalog, SQLAlchemyLedger

from tests.helpers import ADMIN, BUYER, OUTSIDER, SELLER, drive_to, unwrap, unwrap_err, view_of


async def test_two_buyers_one_listing(runner, catalog: Catalog):
    results = await asyncio.gather(
        runner.run(X.CreateTransaction(BUYER, "charizard", X.PaymentMethod.GCASH)),
        runner.run(X.CreateTransaction(OUTSIDER, "charizard", X.PaymentMethod.MAYA)),
    )

    wins = [r for r in results if isinstance(r, Ok)]
    losses = [unwrap_err(r) for r in results if isinstance(r, Error)]
    assert len(wins) == 1
    assert len(losses) == 1
    assert losses[0].kind in (ErrorKind.LISTING_UNAVAILABLE, ErrorKind.DUPLICATE_ACTIVE_TRANSACTION)

    listing = await catalog.get_listing("charizard")
    assert listing is not None and listing.status is X.ListingStatus.RESERVED


async def test_reject_races_cancel(runner, ledger: SQLAlchemyLedger):
    txn = await drive_to(runner, X.TransactionStatus.PAYMENT_SUBMITTED)

    reject, cancel = await asyncio.gather(
        runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.REJECT, "no match")),
        runner.run(X.CancelTransaction(BUYER, txn.id, "Never mind then")),
    )

    # Whichever guarded update lands second sees the other's status
    assert isinstance(reject, Ok) or isinstance(cancel, Ok)
    for result in (reject, cancel):
        if isinstance(result, Error):
            assert unwrap_err(result).kind is ErrorKind.INVALID_STATE

    final = await view_of(ledger, txn.id)
    expected = X.TransactionStatus.CANCELLED if isinstance(cancel, Ok) else X.TransactionStatus.PENDING_PAYMENT
    assert final.status is expected
    if isinstance(cancel, Error):
        assert final.escrow.payment_proof_url is None


async def test_double_confirm_applies_once(runner, ledger: SQLAlchemyLedger, outbox):
    txn = await drive_to(runner, X.TransactionStatus.SHIPPED)

    results = await asyncio.gather(*(runner.run(X.ConfirmReceipt(BUYER, txn.id)) for _ in range(3)))

    assert sum(isinstance(r, Ok) for r in results) == 1
    assert (await view_of(ledger, txn.id)).status is X.TransactionStatus.COMPLETED
    released = [e for e in await outbox.for_user("seller") if e.notification.title == "Payment Released!"]
    assert len(released) == 1


async def test_ship_races_dispute(runner):
    txn = await drive_to(runner, X.TransactionStatus.IN_ESCROW)

    shipped, disputed = await asyncio.gather(
        runner.run(X.SubmitShipment(SELLER, txn.id, "lbc", "LBC-1")),
        runner.run(X.DisputeTransaction(BUYER, txn.id, "Seller stopped replying")),
    )

    assert isinstance(shipped, Ok) or isinstance(disputed, Ok)
    final = unwrap(await runner.run(X.GetTransaction(ADMIN, txn.id)))
    expected = X.TransactionStatus.DISPUTED if isinstance(disputed, Ok) else X.TransactionStatus.SHIPPED
    assert final.status is expected
    assert (final.shipment is not None) == isinstance(shipped, Ok)
