"""
HTTP surface for the escrow engine.

    from cardescrow.api import create_app

    app = create_app()   # uvicorn cardescrow.api:create_app --factory

Routes:
    POST /transactions                   create (buyer)
    GET  /transactions                   list own (?role=buyer|seller&status=&page=)
    GET  /transactions/detail            one transaction (?transaction_id=)
    POST /escrow/initiate                submit payment proof (buyer)
    POST /escrow/verify                  approve / reject payment (admin)
    POST /transactions/ship              mark shipped (seller)
    POST /transactions/confirm-receipt   confirm receipt (buyer)
    POST /transactions/cancel            cancel (buyer, seller, admin)
    POST /transactions/dispute           open dispute (buyer, seller)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import fastapi
from sqlalchemy.ext.asyncio import AsyncEngine

from cardescrow.dispatch import DispatchPolicy, LoggingSink, OutboxDispatcher
from cardescrow.escrow._machine import escrow_runner
from cardescrow.escrow._ports import Clock, NotificationSink
from cardescrow.identity import ProfileIdentityProvider, TokenVerifier
from cardescrow.settings import EscrowSettings, configure_logging, get_settings
from cardescrow.store import SQLAlchemyLedger, SQLAlchemyOutbox, create_database
from cardescrow.api._wire import HTTPRouteTrigger, RequestResponseCodec, Endpoint, endpoint
from cardescrow.api._schemas import (
    CreateTransactionIn,
    SubmitPaymentIn,
    VerifyPaymentIn,
    SubmitShipmentIn,
    ConfirmReceiptIn,
    CancelIn,
    DisputeIn,
    GetTransactionIn,
    ListTransactionsIn,
    OutcomeOut,
    TransactionViewOut,
    TransactionPageOut,
)
from cardescrow.api._fastapi import Services, add_endpoint_to_app


def escrow_endpoint() -> Endpoint:
    return (
        endpoint()
        .expose(
            HTTPRouteTrigger("POST", "/transactions", status_code=201),
            RequestResponseCodec(CreateTransactionIn, OutcomeOut),
        )
        .expose(
            HTTPRouteTrigger("GET", "/transactions"),
            RequestResponseCodec(ListTransactionsIn, TransactionPageOut),
        )
        .expose(
            HTTPRouteTrigger("GET", "/transactions/detail"),
            RequestResponseCodec(GetTransactionIn, TransactionViewOut),
        )
        .expose(
            HTTPRouteTrigger("POST", "/escrow/initiate"),
            RequestResponseCodec(SubmitPaymentIn, OutcomeOut),
        )
        .expose(
            HTTPRouteTrigger("POST", "/escrow/verify"),
            RequestResponseCodec(VerifyPaymentIn, OutcomeOut),
        )
        .expose(
            HTTPRouteTrigger("POST", "/transactions/ship"),
            RequestResponseCodec(SubmitShipmentIn, OutcomeOut),
        )
        .expose(
            HTTPRouteTrigger("POST", "/transactions/confirm-receipt"),
            RequestResponseCodec(ConfirmReceiptIn, OutcomeOut),
        )
        .expose(
            HTTPRouteTrigger("POST", "/transactions/cancel"),
            RequestResponseCodec(CancelIn, OutcomeOut),
        )
        .expose(
            HTTPRouteTrigger("POST", "/transactions/dispute"),
            RequestResponseCodec(DisputeIn, OutcomeOut),
        )
    )


async def open_services(
    settings: EscrowSettings,
    sink: NotificationSink | None = None,
    clock: Clock | None = None,
    tokens: TokenVerifier | None = None,
) -> tuple[Services, AsyncEngine]:
    """Create the database and wire runner, identity and dispatcher."""
    session_factory, engine = await create_database(settings.database_url)
    runner = escrow_runner(SQLAlchemyLedger(session_factory), settings, clock)
    dispatcher = OutboxDispatcher(
        SQLAlchemyOutbox(session_factory),
        sink or LoggingSink(),
        DispatchPolicy(
            max_attempts=settings.dispatch_max_attempts,
            batch_size=settings.dispatch_batch_size,
        ),
        clock,
    )
    services = Services(
        runner=runner,
        identity=ProfileIdentityProvider(session_factory, tokens),
        dispatcher=dispatcher,
    )
    return services, engine


def create_app(
    settings: EscrowSettings | None = None,
    services: Services | None = None,
) -> fastapi.FastAPI:
    """
    Build the FastAPI app.

    With `services` the app is ready immediately (tests, embedding);
    without, the lifespan opens the database from `settings`.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "services", None) is not None:
            yield
            return
        app.state.services, engine = await open_services(settings)
        try:
            yield
        finally:
            await engine.dispose()

    app = fastapi.FastAPI(title="cardescrow", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    add_endpoint_to_app(app, escrow_endpoint())
    return app


__all__ = (
    "Services",
    "escrow_endpoint",
    "open_services",
    "create_app",
)
