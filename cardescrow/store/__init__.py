"""
Store: SQLAlchemy persistence for the escrow engine.

    from cardescrow import store

    session_factory, engine = await store.create_database("sqlite+aiosqlite:///./escrow.db")

    ledger = store.SQLAlchemyLedger(session_factory)    # unit of work for handlers
    catalog = store.Catalog(session_factory)            # profiles + listings
    outbox = store.SQLAlchemyOutbox(session_factory)    # notification delivery side
"""

from cardescrow.store._tables import (
    MoneyCents,
    UTCDateTime,
    Base,
    OutboxStatus,
    OutboxMixin,
    ProfileTable,
    ListingTable,
    TransactionTable,
    EscrowRecordTable,
    ShipmentTable,
    ReportTable,
    NotificationTable,
    AdminActionTable,
)
from cardescrow.store._db import create_database
from cardescrow.store._ledger import SQLAlchemyLedger, SQLAlchemyLedgerSession
from cardescrow.store._catalog import Catalog
from cardescrow.store._outbox import OutboxEntry, SQLAlchemyOutbox

__all__ = (
    # Tables
    "MoneyCents",
    "UTCDateTime",
    "Base",
    "OutboxStatus",
    "OutboxMixin",
    "ProfileTable",
    "ListingTable",
    "TransactionTable",
    "EscrowRecordTable",
    "ShipmentTable",
    "ReportTable",
    "NotificationTable",
    "AdminActionTable",
    # Setup
    "create_database",
    # Ledger
    "SQLAlchemyLedger",
    "SQLAlchemyLedgerSession",
    "Catalog",
    "OutboxEntry",
    "SQLAlchemyOutbox",
)
