"""
FastAPI compiler for escrow endpoints.

Every route:
    Authorization: Bearer <token> → Caller (401 if missing or unknown)
    request model → command → runner.run(command)
    Ok(value)  → response model
    Error(e)   → {"error", "kind", "message", "stage"} with a mapped status
After a successful command the notification outbox is drained; a drain
failure is logged and never changes the response.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any

import fastapi
from fastapi.responses import JSONResponse
from kungfu import Error, Ok, Result
from combinators import lift as L

from cardescrow.dispatch import OutboxDispatcher
from cardescrow.errors import ErrorKind, EscrowError
from cardescrow.escrow._models import Caller
from cardescrow.escrow._ports import IdentityProvider
from cardescrow.ops import Op, Runner
from cardescrow.api._schemas import ErrorOut
from cardescrow.api._wire import Endpoint

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Services
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class Services:
    """What routes need at request time. Stored on `app.state.services`."""

    runner: Runner
    identity: IdentityProvider
    dispatcher: OutboxDispatcher | None = None


def _services(request: fastapi.Request) -> Services:
    services: Services | None = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("escrow services are not started")
    return services


async def authenticate(
    request: fastapi.Request,
    authorization: Annotated[str | None, fastapi.Header()] = None,
) -> Caller:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise fastapi.HTTPException(status_code=401, detail="Unauthorized")

    caller = await _services(request).identity.resolve(token)
    if caller is None:
        raise fastapi.HTTPException(status_code=401, detail="Unauthorized")
    return caller


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_AMOUNT: 422,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.LISTING_UNAVAILABLE: 409,
    ErrorKind.DUPLICATE_ACTIVE_TRANSACTION: 409,
    ErrorKind.SELF_PURCHASE: 400,
    ErrorKind.ACCOUNT_SUSPENDED: 403,
    ErrorKind.INVALID_SHIPPING_OPTION: 400,
    ErrorKind.NOT_FOUND: 404,
}


def error_response(e: EscrowError) -> JSONResponse:
    body = ErrorOut(
        error=e.name,
        kind=e.kind.name.lower(),
        message=e.message,
        stage=e.stage.value if e.stage else None,
    )
    return JSONResponse(status_code=STATUS_BY_KIND[e.kind], content=body.model_dump())


async def _drain(services: Services) -> None:
    if services.dispatcher is None:
        return
    dispatcher = services.dispatcher
    match await L.catching_async(dispatcher.drain, on_error=lambda e: e):
        case Ok(_):
            pass
        case Error(e):
            logger.error("outbox drain failed: %s", e)


# ═══════════════════════════════════════════════════════════════════════════════
# Compiler
# ═══════════════════════════════════════════════════════════════════════════════


def compile_to_fastapi_routes(endp: Endpoint) -> list[tuple[str, str, int, Any]]:
    """(method, path, status_code, route_func) per exposure."""
    routes: list[tuple[str, str, int, Any]] = []

    for trigger, codec in endp.exposures:

        def make_handler(req_cls: type[Any], resp_cls: type[Any], is_read: bool) -> Any:
            async def _route_handler(
                req: Any,
                request: fastapi.Request,
                caller: Caller,
            ) -> Any:
                services = _services(request)
                domain_op: Op[Any, Any] = req.to_domain(caller)
                result: Result[Any, EscrowError] = await services.runner.run(domain_op)
                match result:
                    case Ok(value):
                        if not is_read:
                            await _drain(services)
                        return resp_cls.from_domain(value)
                    case Error(e):
                        logger.info(
                            "%s by %s rejected: %s", type(domain_op).__name__, caller.user_id, e
                        )
                        return error_response(e)

            if trigger.method == "GET":
                req_cls = Annotated[req_cls, fastapi.Query()]  # type: ignore[assignment]

            _route_handler.__annotations__ = {
                "req": req_cls,
                "request": fastapi.Request,
                "caller": Annotated[Caller, fastapi.Depends(authenticate)],
                "return": resp_cls,
            }
            return _route_handler

        handler = make_handler(codec.request, codec.response, trigger.method == "GET")
        routes.append((trigger.method, trigger.path, trigger.status_code, handler))

    return routes


def add_endpoint_to_app(app: fastapi.FastAPI, endp: Endpoint) -> None:
    for method, path, status_code, handler in compile_to_fastapi_routes(endp):
        app.add_api_route(
            path,
            handler,
            methods=[method],
            status_code=status_code,
            response_model=handler.__annotations__["return"],
            responses={
                401: {"description": "Missing or unknown caller token"},
                403: {"model": ErrorOut},
                404: {"model": ErrorOut},
                409: {"model": ErrorOut},
            },
        )


__all__ = (
    "Services",
    "authenticate",
    "STATUS_BY_KIND",
    "error_response",
    "compile_to_fastapi_routes",
    "add_endpoint_to_app",
)
