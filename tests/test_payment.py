import pytest
from sqlalchemy import select

from cardescrow import escrow as X
from cardescrow.errors import ErrorKind, Stage
from cardescrow.store import AdminActionTable, SQLAlchemyLedger, SQLAlchemyOutbox

from tests.helpers import (
    ADMIN,
    BUYER,
    OUTSIDER,
    SELLER,
    approve,
    create,
    drive_to,
    submit_proof,
    unwrap,
    unwrap_err,
    view_of,
)


# ═══════════════════════════════════════════════════════════════════════════════
# submit_payment_proof
# ═══════════════════════════════════════════════════════════════════════════════


async def test_submit_proof_records_escrow_fields(runner, ledger: SQLAlchemyLedger, clock):
    txn = await create(runner)

    outcome = await submit_proof(runner, txn.id, "GC-12345")

    assert outcome.view.status is X.TransactionStatus.PAYMENT_SUBMITTED
    escrow = outcome.view.escrow
    assert escrow.payment_proof_url == "https://img.example/proof.jpg"
    assert escrow.payment_reference == "GC-12345"
    assert escrow.payment_submitted_at == clock.now()
    assert escrow.verified_at is None
    assert (await view_of(ledger, txn.id)).escrow == escrow


async def test_submit_proof_notifies_every_admin_and_the_seller(runner, outbox: SQLAlchemyOutbox):
    txn = await create(runner)
    outcome = await submit_proof(runner, txn.id)

    recipients = sorted(i.user_id for i in outcome.intents if isinstance(i, X.Notify))
    assert recipients == ["admin", "admin-2", "seller"]

    [to_admin] = await outbox.for_user("admin")
    assert to_admin.notification.link == f"/admin/transactions/{txn.id}"


@pytest.mark.parametrize("caller", [SELLER, OUTSIDER, ADMIN])
async def test_only_buyer_submits_proof(runner, caller: X.Caller):
    txn = await create(runner)

    error = unwrap_err(await runner.run(X.SubmitPaymentProof(
        caller, txn.id, "https://img.example/proof.jpg", "GC-1",
    )))
    assert error.kind is ErrorKind.FORBIDDEN


async def test_submit_proof_twice(runner):
    txn = await create(runner)
    await submit_proof(runner, txn.id)

    error = unwrap_err(await runner.run(X.SubmitPaymentProof(
        BUYER, txn.id, "https://img.example/again.jpg", "GC-2",
    )))
    assert error.kind is ErrorKind.INVALID_STATE
    assert error.code == "payment_already_submitted"


async def test_submit_proof_unknown_transaction(runner):
    error = unwrap_err(await runner.run(X.SubmitPaymentProof(
        BUYER, "nope", "https://img.example/proof.jpg", "GC-1",
    )))
    assert error.kind is ErrorKind.NOT_FOUND


# ═══════════════════════════════════════════════════════════════════════════════
# verify_payment
# ═══════════════════════════════════════════════════════════════════════════════


async def test_approve_moves_funds_into_escrow(runner, clock, session_factory):
    txn = await drive_to(runner, X.TransactionStatus.PAYMENT_SUBMITTED)
    clock.advance(hours=2)

    outcome = unwrap(await runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.APPROVE, "GCash ref matched")))

    assert outcome.view.status is X.TransactionStatus.IN_ESCROW
    assert outcome.view.escrow.verified_by == "admin"
    assert outcome.view.escrow.verified_at == clock.now()
    assert outcome.view.escrow.verification_notes == "GCash ref matched"
    assert {i.user_id for i in outcome.intents if isinstance(i, X.Notify)} == {"buyer", "seller"}

    async with session_factory() as session:
        [action] = (await session.scalars(select(AdminActionTable))).all()
    assert (action.admin_id, action.action, action.target_id) == ("admin", "payment_verified", txn.id)
    assert action.details == {"notes": "GCash ref matched"}


async def test_rejection_loop(runner, ledger: SQLAlchemyLedger, outbox: SQLAlchemyOutbox):
    txn = await drive_to(runner, X.TransactionStatus.PAYMENT_SUBMITTED)

    outcome = unwrap(await runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.REJECT, "reference not found")))

    assert outcome.view.status is X.TransactionStatus.PENDING_PAYMENT
    escrow = outcome.view.escrow
    assert escrow.payment_proof_url is None
    assert escrow.payment_reference is None
    assert escrow.payment_submitted_at is None
    assert escrow.verified_at is None
    assert escrow.verification_notes == "Rejected: reference not found"

    rejected = [e for e in await outbox.for_user("buyer") if e.notification.title == "Payment Proof Rejected"]
    assert "reference not found" in rejected[0].notification.message

    again = await submit_proof(runner, txn.id, "GC-RETRY")
    assert again.view.status is X.TransactionStatus.PAYMENT_SUBMITTED
    assert again.view.escrow.payment_reference == "GC-RETRY"


async def test_reject_without_notes_uses_default_reason(runner):
    txn = await drive_to(runner, X.TransactionStatus.PAYMENT_SUBMITTED)

    outcome = unwrap(await runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.REJECT)))

    assert outcome.view.escrow.verification_notes == "Rejected: Payment could not be verified"
    [notify] = outcome.intents
    assert isinstance(notify, X.Notify) and "Payment not found" in notify.message


@pytest.mark.parametrize("caller", [BUYER, SELLER, OUTSIDER])
@pytest.mark.parametrize(
    "status",
    [X.TransactionStatus.PENDING_PAYMENT, X.TransactionStatus.PAYMENT_SUBMITTED, X.TransactionStatus.IN_ESCROW],
)
async def test_non_admin_never_verifies(runner, caller: X.Caller, status: X.TransactionStatus):
    txn = await drive_to(runner, status)

    for verdict in X.Verdict:
        error = unwrap_err(await runner.run(X.VerifyPayment(caller, txn.id, verdict)))
        assert error.kind is ErrorKind.FORBIDDEN


async def test_non_admin_forbidden_even_for_unknown_transaction(runner):
    error = unwrap_err(await runner.run(X.VerifyPayment(BUYER, "nope", X.Verdict.APPROVE)))
    assert error.kind is ErrorKind.FORBIDDEN


async def test_approve_twice_fails_without_reapplying(runner, ledger: SQLAlchemyLedger, clock):
    txn = await drive_to(runner, X.TransactionStatus.IN_ESCROW)
    before = await view_of(ledger, txn.id)
    clock.advance(minutes=5)

    error = unwrap_err(await runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.APPROVE)))

    assert error.kind is ErrorKind.INVALID_STATE
    assert error.code == "payment_already_resolved"
    assert error.stage is Stage.TOO_LATE
    assert await view_of(ledger, txn.id) == before


async def test_verify_before_submission(runner):
    txn = await create(runner)

    error = unwrap_err(await runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.APPROVE)))
    assert error.code == "payment_not_submitted"
    assert error.stage is Stage.TOO_EARLY


async def test_rejected_then_approved(runner):
    txn = await drive_to(runner, X.TransactionStatus.PAYMENT_SUBMITTED)
    unwrap(await runner.run(X.VerifyPayment(ADMIN, txn.id, X.Verdict.REJECT, "blurry")))
    await submit_proof(runner, txn.id, "GC-CLEAR")

    outcome = await approve(runner, txn.id)

    assert outcome.view.escrow.verified_at is not None
    assert outcome.view.escrow.payment_reference == "GC-CLEAR"
