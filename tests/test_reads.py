from decimal import Decimal

from cardescrow import escrow as X
from cardescrow.errors import ErrorKind
from cardescrow.store import Catalog

from tests.helpers import ADMIN, BUYER, OUTSIDER, SELLER, create, drive_to, unwrap, unwrap_err


async def test_parties_and_admins_read_a_transaction(runner):
    txn = await drive_to(runner, X.TransactionStatus.SHIPPED)

    for caller in (BUYER, SELLER, ADMIN):
        view = unwrap(await runner.run(X.GetTransaction(caller, txn.id)))
        assert view.id == txn.id
        assert view.shipment is not None

    error = unwrap_err(await runner.run(X.GetTransaction(OUTSIDER, txn.id)))
    assert error.kind is ErrorKind.FORBIDDEN


async def test_read_unknown_transaction(runner):
    error = unwrap_err(await runner.run(X.GetTransaction(ADMIN, "nope")))
    assert error.kind is ErrorKind.NOT_FOUND


async def test_list_newest_first_with_filters(runner, catalog: Catalog, clock):
    await catalog.add_listing("eevee", "buyer", "Eevee Jungle", Decimal("150"))

    first = await create(runner, "charizard")
    clock.advance(minutes=1)
    second = await create(runner, "pikachu")
    clock.advance(minutes=1)
    as_seller = unwrap(await runner.run(X.CreateTransaction(SELLER, "eevee", X.PaymentMethod.MAYA)))

    page = unwrap(await runner.run(X.ListTransactions(BUYER)))
    assert [t.id for t in page.items] == [as_seller.view.id, second.id, first.id]
    assert page.total == 3

    bought = unwrap(await runner.run(X.ListTransactions(BUYER, as_party="buyer")))
    assert [t.id for t in bought.items] == [second.id, first.id]

    sold = unwrap(await runner.run(X.ListTransactions(BUYER, as_party="seller")))
    assert [t.id for t in sold.items] == [as_seller.view.id]

    clock.advance(minutes=1)
    unwrap(await runner.run(X.CancelTransaction(BUYER, first.id, "Found it cheaper")))
    cancelled = unwrap(await runner.run(X.ListTransactions(BUYER, status=X.TransactionStatus.CANCELLED)))
    assert [t.id for t in cancelled.items] == [first.id]

    assert unwrap(await runner.run(X.ListTransactions(OUTSIDER))).total == 0


async def test_list_pages(ledger, settings, clock, catalog: Catalog):
    runner = X.escrow_runner(ledger, settings.model_copy(update={"page_size": 2}), clock)
    for n in range(5):
        await catalog.add_listing(f"card-{n}", "seller", f"Card {n}", Decimal("10"))
        await create(runner, f"card-{n}", None)
        clock.advance(seconds=1)

    page_1 = unwrap(await runner.run(X.ListTransactions(SELLER, page=1)))
    page_3 = unwrap(await runner.run(X.ListTransactions(SELLER, page=3)))

    assert (page_1.total, page_1.per_page, len(page_1.items)) == (5, 2, 2)
    assert len(page_3.items) == 1
    assert page_3.items[0].listing_id == "card-0"


async def test_unknown_party_filter_lists_both_sides(runner, catalog: Catalog):
    await catalog.add_listing("eevee", "buyer", "Eevee Jungle", Decimal("150"))
    bought = await create(runner, "charizard")
    sold = unwrap(await runner.run(X.CreateTransaction(SELLER, "eevee", X.PaymentMethod.MAYA)))

    page = unwrap(await runner.run(X.ListTransactions(BUYER, as_party="admin")))

    assert page.total == 2
    assert {t.id for t in page.items} == {bought.id, sold.view.id}
