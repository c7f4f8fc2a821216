"""
Ops: command dispatch with dependency injection by annotation.

Core idea:
- Op[T, E] is the base class for commands
- Handlers are plain async functions returning Result[T, E]
- Handler parameters are resolved by type: the command itself,
  or a collaborator registered with Runner.inject()

Example:
    @dataclass(frozen=True, slots=True)
    class ConfirmReceipt(Op[Outcome, EscrowError]):
        caller: Caller
        transaction_id: str

    async def confirm_receipt(
        op: ConfirmReceipt,
        ledger: Ledger,
        clock: Clock,
    ) -> Result[Outcome, EscrowError]:
        ...

    runner = (
        ops()
        .on(ConfirmReceipt, confirm_receipt)
        .compile()
        .inject(Ledger, ledger)
        .inject(Clock, SystemClock())
    )
    result = await runner.run(ConfirmReceipt(caller, "txn_1"))
"""

from __future__ import annotations

import inspect
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, TypeVar, Callable, Awaitable, Generic, get_type_hints, cast

from kungfu import Result, LazyCoroResult

T = TypeVar("T")
E = TypeVar("E")
T_co = TypeVar("T_co", covariant=True)
E_co = TypeVar("E_co", covariant=True)

HandlerFunc = Callable[..., Awaitable[Result[Any, Any]]]


class Op(ABC, Generic[T_co, E_co]):
    """Base class for commands handled by a Runner."""


@dataclass(frozen=True, slots=True)
class _Param:
    """Handler parameter: `dependency is None` means the command itself."""
    name: str
    dependency: object | None


@dataclass(frozen=True, slots=True)
class _OpReg:
    """Registration: Op type → handler + resolved parameters."""
    op_type: type[Op[Any, Any]]
    handler: HandlerFunc
    params: tuple[_Param, ...]


def _params_for_handler(
    op_type: type[Op[Any, Any]],
    handler: HandlerFunc,
) -> tuple[_Param, ...]:
    """
    Read handler parameters.

    - param: OpType  → the command being run
    - param: Other   → collaborator injected under `Other`
    """
    sig = inspect.signature(handler)
    hints = get_type_hints(handler)

    params: list[_Param] = []
    for pname, p in sig.parameters.items():
        ptype = hints.get(pname, p.annotation)
        if ptype is inspect.Parameter.empty:
            raise TypeError(
                f"Handler {handler.__name__} parameter '{pname}' has no annotation"
            )
        params.append(_Param(pname, None if ptype is op_type else ptype))

    return tuple(params)


@dataclass(slots=True, frozen=True)
class OpsBuilder:
    """Builder for command handlers."""
    _items: tuple[tuple[type[Op[Any, Any]], HandlerFunc], ...] = ()

    def on(
        self,
        op_type: type[Op[Any, Any]],
        handler: HandlerFunc,
    ) -> OpsBuilder:
        """Register handler for command type."""
        # Last registration wins
        others = tuple(i for i in self._items if i[0] is not op_type)
        return OpsBuilder(_items=(*others, (op_type, handler)))

    def compile(self) -> Runner:
        """Resolve handler signatures once, up front."""
        registrations = {
            op_type: _OpReg(
                op_type=op_type,
                handler=handler,
                params=_params_for_handler(op_type, handler),
            )
            for op_type, handler in self._items
        }
        return Runner(_registry=registrations)


@dataclass(slots=True)
class Runner:
    """Executes commands by dispatching to their registered handler."""
    _registry: dict[type[Op[Any, Any]], _OpReg]
    _injected: dict[object, object] = field(default_factory=dict[object, object])

    def inject(self, typ: object, impl: object) -> Runner:
        """Inject shared dependency."""
        self._injected[typ] = impl
        return self

    def resolve[D](self, typ: type[D]) -> D:
        """Return the collaborator injected under `typ`."""
        if typ not in self._injected:
            raise LookupError(f"No dependency injected for {typ!r}")
        return cast(D, self._injected[typ])

    def handles(self, op_type: type[Op[Any, Any]]) -> bool:
        return op_type in self._registry

    async def run(self, req: Op[T, E]) -> Result[T, E]:
        """Execute command. Unregistered commands are a programming error."""
        op_type = type(req)
        reg = self._registry.get(op_type)
        if reg is None:
            raise LookupError(f"Op not registered: {op_type.__name__}")

        kwargs: dict[str, object] = {}
        for param in reg.params:
            if param.dependency is None:
                kwargs[param.name] = req
            elif param.dependency in self._injected:
                kwargs[param.name] = self._injected[param.dependency]
            else:
                raise LookupError(
                    f"{op_type.__name__}: no dependency injected for "
                    f"'{param.name}: {param.dependency!r}'"
                )

        return cast(Result[T, E], await reg.handler(**kwargs))

    def __call__(self, req: Op[T, E]) -> LazyCoroResult[T, E]:
        """Execute command (returns awaitable)."""
        async def inner() -> Result[T, E]:
            return await self.run(req)
        return LazyCoroResult(inner)


def ops() -> OpsBuilder:
    """Create ops builder: ops().on(...).compile()"""
    return OpsBuilder()


# Aliases
Returns = Op
Returning = Op

__all__ = ("Op", "Returns", "Returning", "OpsBuilder", "Runner", "ops")
