"""
Escrow state machine: one handler per command.

Every handler follows the same shape:

    load → check caller → route(status, action) → guarded update
         → subsidiary writes → outbox → commit

All writes of one command share a single unit of work. A guarded update
that matches no row means another request moved the transaction first;
the handler re-reads the status and reports the rejection that applies now.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from kungfu import Result, Ok, Error

from cardescrow import money as M
from cardescrow.errors import EscrowError, EscrowErrors, ErrorKind
from cardescrow.settings import EscrowSettings
from cardescrow.ops import Runner, ops
from cardescrow.escrow import _intents as N
from cardescrow.escrow._commands import (
    Verdict,
    CreateTransaction,
    SubmitPaymentProof,
    VerifyPayment,
    SubmitShipment,
    ConfirmReceipt,
    CancelTransaction,
    DisputeTransaction,
    GetTransaction,
    ListTransactions,
)
from cardescrow.escrow._models import (
    Caller,
    ListingStatus,
    ShippingMethod,
    ReportReason,
    ReportStatus,
    Transaction,
    ShipmentDetails,
    TransactionView,
    TransactionPage,
    Outcome,
)
from cardescrow.escrow._ports import Ledger, LedgerSession, Clock, SystemClock
from cardescrow.escrow._status import TransactionStatus, Action, route

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


async def _load(tx: LedgerSession, transaction_id: str) -> Result[Transaction, EscrowError]:
    txn = await tx.get_transaction(transaction_id)
    if txn is None:
        return Error(EscrowErrors.not_found("Transaction", transaction_id))
    return Ok(txn)


async def _view(tx: LedgerSession, transaction_id: str) -> TransactionView:
    view = await tx.get_view(transaction_id)
    if view is None:
        raise LookupError(f"Transaction {transaction_id} vanished inside its own unit of work")
    return view


async def _card_name(tx: LedgerSession, listing_id: str) -> str:
    listing = await tx.get_listing(listing_id)
    return listing.card_name if listing else "your item"


async def _lost_race(
    tx: LedgerSession,
    txn: Transaction,
    action: Action,
) -> Error[EscrowError]:
    """Guarded update matched nothing: report what applies to the current status."""
    current = await tx.get_transaction(txn.id)
    status = current.status if current else txn.status
    logger.warning(
        "transaction %s: %s lost a race (%s → %s)", txn.id, action, txn.status, status
    )
    match route(status, action):
        case Error(e):
            return Error(e)
        case Ok(_):
            return Error(EscrowError(
                ErrorKind.INVALID_STATE,
                "Transaction changed while processing the request; reload and retry",
                code="concurrent_update",
            ))


async def _advance(
    tx: LedgerSession,
    txn: Transaction,
    action: Action,
    clock: Clock,
    actor: Caller,
    **fields: object,
) -> Result[TransactionStatus, EscrowError]:
    """Route + guarded update on `status == txn.status`."""
    match route(txn.status, action):
        case Error(e):
            logger.debug(
                "transaction %s: %s rejected in %s (%s)", txn.id, action, txn.status, e.name
            )
            return Error(e)
        case Ok(target):
            pass

    if not await tx.transition(txn.id, frozenset({txn.status}), target, clock.now(), **fields):
        return await _lost_race(tx, txn, action)

    logger.info(
        "transaction %s: %s → %s (%s by %s)", txn.id, txn.status, target, action, actor.user_id
    )
    return Ok(target)


def _new_id() -> str:
    return str(uuid.uuid4())


# ═══════════════════════════════════════════════════════════════════════════════
# create_transaction
# ═══════════════════════════════════════════════════════════════════════════════


async def create_transaction(
    op: CreateTransaction,
    ledger: Ledger,
    clock: Clock,
    settings: EscrowSettings,
) -> Result[Outcome, EscrowError]:
    """
    Buyer purchase intent → pending_payment.

    The listing reservation is a conditional update (active → reserved)
    in the same unit of work as the insert, and the insert is backed by
    a unique index over live transactions per listing. Of two concurrent
    buyers exactly one commits.
    """
    caller = op.caller

    async with ledger.begin() as tx:
        listing = await tx.get_listing(op.listing_id)
        if listing is None:
            return Error(EscrowErrors.not_found("Listing", op.listing_id))
        if listing.seller_id == caller.user_id:
            return Error(EscrowErrors.self_purchase())
        if caller.is_banned:
            return Error(EscrowErrors.account_suspended())
        if listing.status is not ListingStatus.ACTIVE:
            return Error(EscrowErrors.listing_unavailable())

        meetup = op.shipping_method is ShippingMethod.MEETUP
        if meetup and not listing.allows_meetup:
            return Error(EscrowErrors.invalid_shipping_option("Seller does not allow meetup"))
        if (
            op.shipping_method is not None
            and not meetup
            and op.shipping_method not in listing.shipping_options
        ):
            return Error(EscrowErrors.invalid_shipping_option(
                "Invalid shipping method for this listing"
            ))

        if await tx.has_live_transaction(listing.id):
            return Error(EscrowErrors.duplicate_active_transaction())

        match M.compute(
            listing.price,
            0 if meetup else listing.shipping_fee,
            settings.fee_rate,
            settings.minimum_item_price,
        ):
            case Error(e):
                return Error(e)
            case Ok(charges):
                pass

        if not await tx.reserve_listing(listing.id):
            logger.warning("listing %s: reservation lost to a concurrent buyer", listing.id)
            return Error(EscrowErrors.listing_unavailable(
                "Listing was just reserved by another buyer"
            ))

        now = clock.now()
        txn = Transaction(
            id=_new_id(),
            listing_id=listing.id,
            buyer_id=caller.user_id,
            seller_id=listing.seller_id,
            item_price=charges.item_price,
            shipping_fee=charges.shipping_fee,
            platform_fee=charges.platform_fee,
            total_amount=charges.total_amount,
            seller_payout=charges.seller_payout,
            payment_method=op.payment_method,
            shipping_method=op.shipping_method,
            meetup_location=op.meetup_location,
            status=TransactionStatus.PENDING_PAYMENT,
            cancelled_by=None,
            cancellation_reason=None,
            cancelled_at=None,
            disputed_by=None,
            dispute_reason=None,
            disputed_at=None,
            dispute_resolution=None,
            auto_confirm_at=None,
            created_at=now,
            updated_at=now,
        )
        if not await tx.insert_transaction(txn):
            return Error(EscrowErrors.duplicate_active_transaction())

        notify = N.new_purchase_order(listing.seller_id, txn.id, listing.card_name)
        await tx.enqueue([notify], now)
        view = await _view(tx, txn.id)
        await tx.commit()

    logger.info(
        "transaction %s: created for listing %s by %s (total %s)",
        txn.id, listing.id, caller.user_id, charges.total_amount,
    )
    return Ok(Outcome(
        view=view,
        intents=(N.ListingChanged(listing.id, ListingStatus.RESERVED), notify),
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# submit_payment_proof
# ═══════════════════════════════════════════════════════════════════════════════


async def submit_payment_proof(
    op: SubmitPaymentProof,
    ledger: Ledger,
    clock: Clock,
) -> Result[Outcome, EscrowError]:
    """Buyer uploads proof → payment_submitted; admins and seller are told."""
    async with ledger.begin() as tx:
        match await _load(tx, op.transaction_id):
            case Error(e):
                return Error(e)
            case Ok(txn):
                pass

        if txn.buyer_id != op.caller.user_id:
            return Error(EscrowErrors.forbidden("Only the buyer can submit payment proof"))

        match await _advance(tx, txn, Action.SUBMIT_PAYMENT, clock, op.caller):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        now = clock.now()
        await tx.record_payment_proof(txn.id, op.proof_url, op.reference, now)

        notifications = [
            *(N.payment_to_verify(admin_id, txn.id) for admin_id in await tx.admin_ids()),
            N.buyer_submitted_payment(txn.seller_id, txn.id),
        ]
        await tx.enqueue(notifications, now)
        view = await _view(tx, txn.id)
        await tx.commit()

    return Ok(Outcome(view=view, intents=tuple(notifications)))


# ═══════════════════════════════════════════════════════════════════════════════
# verify_payment
# ═══════════════════════════════════════════════════════════════════════════════


async def verify_payment(
    op: VerifyPayment,
    ledger: Ledger,
    clock: Clock,
) -> Result[Outcome, EscrowError]:
    """
    Admin approves (→ in_escrow) or rejects (→ pending_payment).

    The only way funds move into escrow. Re-running on a resolved
    transaction fails with InvalidState instead of applying twice.
    """
    caller = op.caller
    if not caller.is_admin:
        return Error(EscrowErrors.forbidden("Admin access required"))

    approve = op.verdict is Verdict.APPROVE
    action = Action.APPROVE_PAYMENT if approve else Action.REJECT_PAYMENT

    async with ledger.begin() as tx:
        match await _load(tx, op.transaction_id):
            case Error(e):
                return Error(e)
            case Ok(txn):
                pass

        match await _advance(tx, txn, action, clock, caller):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        now = clock.now()
        notifications: list[N.Notify]
        if approve:
            await tx.record_verification(txn.id, caller.user_id, now, op.notes)
            card_name = await _card_name(tx, txn.listing_id)
            notifications = [
                N.payment_verified_buyer(txn.buyer_id, txn.id),
                N.payment_verified_seller(txn.seller_id, txn.id, card_name),
            ]
            audit = "payment_verified"
        else:
            reason = op.notes or "Payment could not be verified"
            await tx.clear_payment_proof(txn.id, f"Rejected: {reason}", now)
            notifications = [N.payment_rejected(txn.buyer_id, txn.id, op.notes or "Payment not found")]
            audit = "payment_rejected"

        await tx.record_admin_action(
            caller.user_id, audit, "transaction", txn.id, {"notes": op.notes}, now
        )
        await tx.enqueue(notifications, now)
        view = await _view(tx, txn.id)
        await tx.commit()

    return Ok(Outcome(view=view, intents=tuple(notifications)))


# ═══════════════════════════════════════════════════════════════════════════════
# submit_shipment
# ═══════════════════════════════════════════════════════════════════════════════


async def submit_shipment(
    op: SubmitShipment,
    ledger: Ledger,
    clock: Clock,
    settings: EscrowSettings,
) -> Result[Outcome, EscrowError]:
    """Seller ships → shipped; stores the auto-confirm deadline."""
    async with ledger.begin() as tx:
        match await _load(tx, op.transaction_id):
            case Error(e):
                return Error(e)
            case Ok(txn):
                pass

        if txn.seller_id != op.caller.user_id:
            return Error(EscrowErrors.forbidden("Only the seller can mark as shipped"))

        now = clock.now()
        match await _advance(
            tx, txn, Action.SHIP, clock, op.caller,
            auto_confirm_at=now + timedelta(days=settings.auto_confirm_days),
        ):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        await tx.insert_shipment(ShipmentDetails(
            transaction_id=txn.id,
            shipping_method=op.shipping_method,
            tracking_number=op.tracking_number,
            courier_receipt_url=op.receipt_url,
            shipped_at=now,
        ))

        notify = N.item_shipped(txn.buyer_id, txn.id, op.tracking_number, op.shipping_method)
        await tx.enqueue([notify], now)
        view = await _view(tx, txn.id)
        await tx.commit()

    return Ok(Outcome(view=view, intents=(notify,)))


# ═══════════════════════════════════════════════════════════════════════════════
# confirm_receipt
# ═══════════════════════════════════════════════════════════════════════════════


async def confirm_receipt(
    op: ConfirmReceipt,
    ledger: Ledger,
    clock: Clock,
) -> Result[Outcome, EscrowError]:
    """Buyer confirms → completed. Fund-release point; the listing is sold."""
    async with ledger.begin() as tx:
        match await _load(tx, op.transaction_id):
            case Error(e):
                return Error(e)
            case Ok(txn):
                pass

        if txn.buyer_id != op.caller.user_id:
            return Error(EscrowErrors.forbidden("Only the buyer can confirm receipt"))

        match await _advance(tx, txn, Action.CONFIRM_RECEIPT, clock, op.caller):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        if not await tx.consume_listing(txn.listing_id):
            logger.warning("listing %s: was not reserved at completion of %s", txn.listing_id, txn.id)

        now = clock.now()
        card_name = await _card_name(tx, txn.listing_id)
        notifications = [
            N.funds_released(txn.seller_id, txn.id, card_name),
            N.leave_review(txn.buyer_id, txn.id),
        ]
        await tx.enqueue(notifications, now)
        view = await _view(tx, txn.id)
        await tx.commit()

    logger.info("transaction %s: payout of %s releasable to %s", txn.id, txn.seller_payout, txn.seller_id)
    return Ok(Outcome(
        view=view,
        intents=(N.ListingChanged(txn.listing_id, ListingStatus.SOLD), *notifications),
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# cancel
# ═══════════════════════════════════════════════════════════════════════════════


async def cancel_transaction(
    op: CancelTransaction,
    ledger: Ledger,
    clock: Clock,
) -> Result[Outcome, EscrowError]:
    """
    Buyer, seller or admin cancels before funds are in escrow.

    The listing goes back to active. A party cancelling notifies the other
    party; an admin cancelling notifies both.
    """
    caller = op.caller
    async with ledger.begin() as tx:
        match await _load(tx, op.transaction_id):
            case Error(e):
                return Error(e)
            case Ok(txn):
                pass

        party = txn.party_of(caller)
        if party is None and not caller.is_admin:
            return Error(EscrowErrors.forbidden())

        now = clock.now()
        match await _advance(
            tx, txn, Action.CANCEL, clock, caller,
            cancelled_by=caller.user_id,
            cancellation_reason=op.reason,
            cancelled_at=now,
        ):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        if not await tx.release_listing(txn.listing_id):
            logger.warning("listing %s: was not reserved when %s was cancelled", txn.listing_id, txn.id)

        card_name = await _card_name(tx, txn.listing_id)
        recipients = (
            [txn.counterparty_of(caller.user_id)] if party else [txn.buyer_id, txn.seller_id]
        )
        notifications = [N.transaction_cancelled(r, txn.id, card_name) for r in recipients]
        await tx.enqueue(notifications, now)
        view = await _view(tx, txn.id)
        await tx.commit()

    return Ok(Outcome(
        view=view,
        intents=(N.ListingChanged(txn.listing_id, ListingStatus.ACTIVE), *notifications),
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# dispute
# ═══════════════════════════════════════════════════════════════════════════════


async def dispute_transaction(
    op: DisputeTransaction,
    ledger: Ledger,
    clock: Clock,
) -> Result[Outcome, EscrowError]:
    """Buyer or seller disputes after verification → disputed + admin report."""
    caller = op.caller
    async with ledger.begin() as tx:
        match await _load(tx, op.transaction_id):
            case Error(e):
                return Error(e)
            case Ok(txn):
                pass

        if txn.party_of(caller) is None:
            return Error(EscrowErrors.forbidden("Only transaction parties can file a dispute"))

        now = clock.now()
        match await _advance(
            tx, txn, Action.DISPUTE, clock, caller,
            disputed_by=caller.user_id,
            dispute_reason=op.reason,
            disputed_at=now,
        ):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

        other = txn.counterparty_of(caller.user_id)
        report = await tx.open_report(
            reporter_id=caller.user_id,
            reported_user_id=other,
            reported_transaction_id=txn.id,
            reason=ReportReason.OTHER,
            description=f"Dispute: {op.reason}",
            status=ReportStatus.REVIEWING,
            at=now,
        )

        notify = N.dispute_filed(other, txn.id)
        await tx.enqueue([notify], now)
        view = await _view(tx, txn.id)
        await tx.commit()

    return Ok(Outcome(
        view=view,
        intents=(N.ReportOpened(report.id, txn.id), notify),
        report=report,
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════════════════


async def get_transaction(
    op: GetTransaction,
    ledger: Ledger,
) -> Result[TransactionView, EscrowError]:
    """Parties and admins only."""
    async with ledger.begin() as tx:
        view = await tx.get_view(op.transaction_id)

    if view is None:
        return Error(EscrowErrors.not_found("Transaction", op.transaction_id))
    if view.transaction.party_of(op.caller) is None and not op.caller.is_admin:
        return Error(EscrowErrors.forbidden())
    return Ok(view)


async def list_transactions(
    op: ListTransactions,
    ledger: Ledger,
    settings: EscrowSettings,
) -> Result[TransactionPage, EscrowError]:
    """The caller's own transactions, newest first. An unknown party filter lists both sides."""
    as_party = op.as_party if op.as_party in ("buyer", "seller") else None

    async with ledger.begin() as tx:
        page = await tx.list_transactions(
            op.caller.user_id,
            as_party,
            op.status,
            max(op.page, 1),
            settings.page_size,
        )
    return Ok(page)


# ═══════════════════════════════════════════════════════════════════════════════
# Runner
# ═══════════════════════════════════════════════════════════════════════════════


def escrow_runner(
    ledger: Ledger,
    settings: EscrowSettings,
    clock: Clock | None = None,
) -> Runner:
    """
    Compile all escrow handlers into one runner.

    Example:
        runner = escrow_runner(SQLAlchemyLedger(session_factory), get_settings())
        result = await runner.run(ConfirmReceipt(caller, transaction_id))
    """
    return (
        ops()
        .on(CreateTransaction, create_transaction)
        .on(SubmitPaymentProof, submit_payment_proof)
        .on(VerifyPayment, verify_payment)
        .on(SubmitShipment, submit_shipment)
        .on(ConfirmReceipt, confirm_receipt)
        .on(CancelTransaction, cancel_transaction)
        .on(DisputeTransaction, dispute_transaction)
        .on(GetTransaction, get_transaction)
        .on(ListTransactions, list_transactions)
        .compile()
        .inject(Ledger, ledger)
        .inject(EscrowSettings, settings)
        .inject(Clock, clock or SystemClock())
    )


__all__ = (
    "create_transaction",
    "submit_payment_proof",
    "verify_payment",
    "submit_shipment",
    "confirm_receipt",
    "cancel_transaction",
    "dispute_transaction",
    "get_transaction",
    "list_transactions",
    "escrow_runner",
)
