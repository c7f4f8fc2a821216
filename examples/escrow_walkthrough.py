"""
Escrow walkthrough: one card from purchase to payout.

    create → submit proof → admin rejects → resubmit → admin approves
           → seller ships → buyer confirms → outbox drained

Plus the guard rails: shipping before payment, cancelling after escrow,
confirming twice.

Run:
    uv run python -m examples.escrow_walkthrough
"""

from __future__ import annotations

from cardescrow import escrow as X
from cardescrow.dispatch import MemorySink, OutboxDispatcher
from cardescrow.settings import EscrowSettings
from cardescrow.store import SQLAlchemyLedger, SQLAlchemyOutbox
from examples._infra import FixedClock, banner, run, seeded_database, show


async def main() -> None:
    session_factory, engine = await seeded_database()
    clock = FixedClock()
    runner = X.escrow_runner(SQLAlchemyLedger(session_factory), EscrowSettings(), clock)

    buyer = X.Caller("buyer")
    seller = X.Caller("seller", X.Role.SELLER)
    admin = X.Caller("admin", X.Role.ADMIN)

    banner("1. Buyer opens a transaction")
    outcome = show("create", await runner.run(X.CreateTransaction(
        buyer, "charizard", X.PaymentMethod.GCASH, X.ShippingMethod.LBC,
    )))
    assert outcome is not None
    txn = outcome.view.transaction
    print(f"  price={txn.item_price} shipping={txn.shipping_fee} fee={txn.platform_fee}")
    print(f"  buyer pays {txn.total_amount}, seller receives {txn.seller_payout}")

    banner("2. Guard rails")
    show("ship before payment", await runner.run(X.SubmitShipment(
        seller, txn.id, "lbc", "LBC-0001",
    )))
    show("second buyer on same listing", await runner.run(X.CreateTransaction(
        X.Caller("other-buyer"), "charizard", X.PaymentMethod.MAYA,
    )))

    banner("3. Payment: rejected, then approved")
    show("submit proof", await runner.run(X.SubmitPaymentProof(
        buyer, txn.id, "https://img.example/proof-1.jpg", "GC-111",
    )))
    show("admin rejects", await runner.run(X.VerifyPayment(
        admin, txn.id, X.Verdict.REJECT, "Amount does not match",
    )))
    show("resubmit proof", await runner.run(X.SubmitPaymentProof(
        buyer, txn.id, "https://img.example/proof-2.jpg", "GC-222",
    )))
    show("admin approves", await runner.run(X.VerifyPayment(admin, txn.id, X.Verdict.APPROVE)))
    show("cancel after escrow", await runner.run(X.CancelTransaction(
        buyer, txn.id, "Changed my mind",
    )))

    banner("4. Shipping and receipt")
    shipped = show("ship", await runner.run(X.SubmitShipment(seller, txn.id, "lbc", "LBC-0001")))
    if shipped:
        print(f"  auto-confirm at {shipped.view.transaction.auto_confirm_at}")
    show("confirm receipt", await runner.run(X.ConfirmReceipt(buyer, txn.id)))
    show("confirm again", await runner.run(X.ConfirmReceipt(buyer, txn.id)))

    banner("5. Notifications")
    sink = MemorySink()
    report = await OutboxDispatcher(SQLAlchemyOutbox(session_factory), sink, clock=clock).drain()
    print(f"  delivered {report.sent}")
    for n in sink.delivered:
        print(f"  → {n.user_id:<7} {n.title}")

    await engine.dispose()


if __name__ == "__main__":
    run(main)
