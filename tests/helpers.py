"""Result unwrapping and lifecycle drivers shared by tests."""

from datetime import datetime, timedelta

from kungfu import Error, Ok, Result

from cardescrow.errors import EscrowError
from cardescrow import escrow as X
from cardescrow.ops import Runner
from cardescrow.store import SQLAlchemyLedger


class FrozenClock:
    def __init__(self, at: datetime) -> None:
        self.at = at

    def now(self) -> datetime:
        return self.at

    def advance(self, **kwargs: float) -> None:
        self.at += timedelta(**kwargs)


BUYER = X.Caller("buyer")
SELLER = X.Caller("seller", X.Role.SELLER)
ADMIN = X.Caller("admin", X.Role.ADMIN)
ADMIN_2 = X.Caller("admin-2", X.Role.ADMIN)
OUTSIDER = X.Caller("outsider")
BANNED = X.Caller("banned", is_banned=True)


def unwrap[T](result: Result[T, EscrowError]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise AssertionError(f"expected Ok, got {e}")


def unwrap_err(result: Result[object, EscrowError]) -> EscrowError:
    match result:
        case Ok(value):
            raise AssertionError(f"expected Error, got {value!r}")
        case Error(e):
            return e


async def create(
    runner: Runner,
    listing_id: str = "charizard",
    shipping: X.ShippingMethod | None = X.ShippingMethod.LBC,
) -> X.Transaction:
    outcome = unwrap(await runner.run(X.CreateTransaction(
        BUYER, listing_id, X.PaymentMethod.GCASH, shipping,
    )))
    return outcome.view.transaction


async def submit_proof(runner: Runner, transaction_id: str, reference: str = "GC-0001") -> X.Outcome:
    return unwrap(await runner.run(X.SubmitPaymentProof(
        BUYER, transaction_id, "https://img.example/proof.jpg", reference,
    )))


async def approve(runner: Runner, transaction_id: str) -> X.Outcome:
    return unwrap(await runner.run(X.VerifyPayment(ADMIN, transaction_id, X.Verdict.APPROVE)))


async def ship(runner: Runner, transaction_id: str) -> X.Outcome:
    return unwrap(await runner.run(X.SubmitShipment(SELLER, transaction_id, "lbc", "LBC-778899")))


async def confirm(runner: Runner, transaction_id: str) -> X.Outcome:
    return unwrap(await runner.run(X.ConfirmReceipt(BUYER, transaction_id)))


async def dispute(runner: Runner, transaction_id: str) -> X.Outcome:
    return unwrap(await runner.run(X.DisputeTransaction(
        BUYER, transaction_id, "Card arrived creased on the corner",
    )))


async def cancel(runner: Runner, transaction_id: str) -> X.Outcome:
    return unwrap(await runner.run(X.CancelTransaction(BUYER, transaction_id, "Changed my mind")))


_PATHS: dict[X.TransactionStatus, tuple] = {
    X.TransactionStatus.PENDING_PAYMENT: (),
    X.TransactionStatus.PAYMENT_SUBMITTED: (submit_proof,),
    X.TransactionStatus.IN_ESCROW: (submit_proof, approve),
    X.TransactionStatus.SHIPPED: (submit_proof, approve, ship),
    X.TransactionStatus.COMPLETED: (submit_proof, approve, ship, confirm),
    X.TransactionStatus.DISPUTED: (submit_proof, approve, dispute),
    X.TransactionStatus.CANCELLED: (cancel,),
}


async def drive_to(
    runner: Runner,
    status: X.TransactionStatus,
    listing_id: str = "charizard",
) -> X.Transaction:
    """Create a transaction on `listing_id` and walk it to `status`."""
    txn = await create(runner, listing_id)
    for step in _PATHS[status]:
        await step(runner, txn.id)
    return txn


async def view_of(ledger: SQLAlchemyLedger, transaction_id: str) -> X.TransactionView:
    async with ledger.begin() as tx:
        view = await tx.get_view(transaction_id)
    assert view is not None
    return view
