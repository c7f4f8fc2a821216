"""
Wire: expose commands over HTTP via triggers and codecs.

    endp = endpoint().expose(
        HTTPRouteTrigger("POST", "/transactions/ship"),
        RequestResponseCodec(SubmitShipmentIn, TransactionOut),
    )

The request model builds the command from the authenticated caller;
the response model renders the Ok value. Error values are rendered
uniformly by the compiler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TypeVar

from cardescrow.escrow._models import Caller
from cardescrow.ops import Op

DomainT_co = TypeVar("DomainT_co", covariant=True)
DomainT_contra = TypeVar("DomainT_contra", contravariant=True)

type Method = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


class ToDomain(Protocol[DomainT_co]):
    def to_domain(self, caller: Caller) -> DomainT_co: ...


class FromDomain(Protocol[DomainT_contra]):
    @classmethod
    def from_domain(cls, dom: DomainT_contra) -> FromDomain[DomainT_contra]: ...


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    method: Method
    path: str
    status_code: int = 200


@dataclass(frozen=True, slots=True)
class RequestResponseCodec:
    request: type[ToDomain[Op[Any, Any]]]
    response: type[FromDomain[Any]]


type Exposure = tuple[HTTPRouteTrigger, RequestResponseCodec]


@dataclass(slots=True)
class Endpoint:
    """
    Exposures of one runner.

    Note: the runner itself is resolved per request from the app's
    services, so an endpoint can be compiled before the database is open.
    """

    exposures: list[Exposure] = field(default_factory=list[Exposure])

    def expose(self, trigger: HTTPRouteTrigger, codec: RequestResponseCodec) -> Endpoint:
        return Endpoint(exposures=[*self.exposures, (trigger, codec)])


def endpoint() -> Endpoint:
    return Endpoint()


__all__ = (
    "ToDomain",
    "FromDomain",
    "Method",
    "HTTPRouteTrigger",
    "RequestResponseCodec",
    "Exposure",
    "Endpoint",
    "endpoint",
)
