"""
Escrow: transaction lifecycle for card trades.

    from cardescrow import escrow as X

    runner = X.escrow_runner(ledger, settings)

    match await runner.run(X.CreateTransaction(buyer, listing_id, X.PaymentMethod.GCASH)):
        case Ok(outcome):
            outcome.view.status  # pending_payment
        case Error(e):
            e.kind               # ErrorKind.LISTING_UNAVAILABLE, ...

Lifecycle:

    CreateTransaction ─→ pending_payment
    SubmitPaymentProof ─→ payment_submitted
    VerifyPayment ─→ in_escrow | pending_payment
    SubmitShipment ─→ shipped
    ConfirmReceipt ─→ completed
    CancelTransaction ─→ cancelled   (before escrow)
    DisputeTransaction ─→ disputed   (after escrow, before completion)
"""

from cardescrow.escrow._status import (
    TransactionStatus,
    PAYMENT_VERIFIED_ALIAS,
    TERMINAL,
    LIVE,
    Action,
    Rejection,
    TRANSITIONS,
    route,
    sources_of,
)
from cardescrow.escrow._intents import (
    NotificationType,
    Notify,
    ListingChanged,
    ReportOpened,
    Intent,
)
from cardescrow.escrow._models import (
    Role,
    ListingStatus,
    PaymentMethod,
    ShippingMethod,
    ReportReason,
    ReportStatus,
    Caller,
    Listing,
    Transaction,
    EscrowRecord,
    ShipmentDetails,
    Report,
    TransactionView,
    Outcome,
    TransactionPage,
)
from cardescrow.escrow._ports import (
    InventoryGate,
    ReportCreator,
    LedgerSession,
    Ledger,
    Clock,
    SystemClock,
    NotificationSink,
    IdentityProvider,
)
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
from cardescrow.escrow._machine import (
    create_transaction,
    submit_payment_proof,
    verify_payment,
    submit_shipment,
    confirm_receipt,
    cancel_transaction,
    dispute_transaction,
    get_transaction,
    list_transactions,
    escrow_runner,
)

__all__ = (
    # Status
    "TransactionStatus",
    "PAYMENT_VERIFIED_ALIAS",
    "TERMINAL",
    "LIVE",
    "Action",
    "Rejection",
    "TRANSITIONS",
    "route",
    "sources_of",
    # Intents
    "NotificationType",
    "Notify",
    "ListingChanged",
    "ReportOpened",
    "Intent",
    # Models
    "Role",
    "ListingStatus",
    "PaymentMethod",
    "ShippingMethod",
    "ReportReason",
    "ReportStatus",
    "Caller",
    "Listing",
    "Transaction",
    "EscrowRecord",
    "ShipmentDetails",
    "Report",
    "TransactionView",
    "Outcome",
    "TransactionPage",
    # Ports
    "InventoryGate",
    "ReportCreator",
    "LedgerSession",
    "Ledger",
    "Clock",
    "SystemClock",
    "NotificationSink",
    "IdentityProvider",
    # Commands
    "Verdict",
    "CreateTransaction",
    "SubmitPaymentProof",
    "VerifyPayment",
    "SubmitShipment",
    "ConfirmReceipt",
    "CancelTransaction",
    "DisputeTransaction",
    "GetTransaction",
    "ListTransactions",
    # Handlers
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
