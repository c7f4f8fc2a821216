from dataclasses import dataclass

import pytest
from kungfu import Error, LazyCoroResult, Ok, Result

from cardescrow import ops as O
from cardescrow import escrow as X

from tests.helpers import unwrap, unwrap_err


@dataclass(frozen=True, slots=True)
class Greet(O.Returning[str, str]):
    name: str


@dataclass(frozen=True, slots=True)
class Shout(O.Returning[str, str]):
    name: str


class Greeter:
    def __init__(self, greeting: str) -> None:
        self.greeting = greeting


async def greet(op: Greet, greeter: Greeter) -> Result[str, str]:
    if not op.name:
        return Error("empty name")
    return Ok(f"{greeter.greeting}, {op.name}")


async def test_handler_gets_command_and_dependency():
    runner = O.ops().on(Greet, greet).compile().inject(Greeter, Greeter("Hello"))

    assert unwrap(await runner.run(Greet("Ash"))) == "Hello, Ash"
    assert unwrap_err(await runner.run(Greet(""))) == "empty name"


async def test_call_returns_lazy_result():
    runner = O.ops().on(Greet, greet).compile().inject(Greeter, Greeter("Hi"))

    lazy = runner(Greet("Misty"))

    assert isinstance(lazy, LazyCoroResult)
    assert unwrap(await lazy) == "Hi, Misty"


async def test_unregistered_command_raises():
    runner = O.ops().on(Greet, greet).compile().inject(Greeter, Greeter("Hi"))

    assert runner.handles(Greet)
    assert not runner.handles(Shout)
    with pytest.raises(LookupError, match="Shout"):
        await runner.run(Shout("Brock"))


async def test_missing_dependency_raises():
    runner = O.ops().on(Greet, greet).compile()

    with pytest.raises(LookupError, match="greeter"):
        await runner.run(Greet("Ash"))
    with pytest.raises(LookupError):
        runner.resolve(Greeter)


def test_unannotated_parameter_rejected_at_compile():
    async def loose(op, greeter: Greeter) -> Result[str, str]:  # type: ignore[no-untyped-def]
        return Ok("")

    with pytest.raises(TypeError, match="'op' has no annotation"):
        O.ops().on(Greet, loose).compile()


async def test_last_registration_wins():
    async def other(op: Greet) -> Result[str, str]:
        return Ok("other")

    runner = O.ops().on(Greet, greet).on(Greet, other).compile()

    assert unwrap(await runner.run(Greet("Ash"))) == "other"


def test_escrow_runner_registers_every_operation(runner):
    for op_type in (
        X.CreateTransaction,
        X.SubmitPaymentProof,
        X.VerifyPayment,
        X.SubmitShipment,
        X.ConfirmReceipt,
        X.CancelTransaction,
        X.DisputeTransaction,
        X.GetTransaction,
        X.ListTransactions,
    ):
        assert runner.handles(op_type)
