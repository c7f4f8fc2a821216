"""
Ops: data-driven dispatch with dependency injection.

Replaces match/case over command types with declarative registration:
    from cardescrow import ops as O

    @dataclass(frozen=True, slots=True)
    class GetTransaction(O.Returning[TransactionView, EscrowError]):
        caller: Caller
        transaction_id: str

    async def get_transaction(req: GetTransaction, ledger: Ledger) -> Result[...]:
        ...

    runner = O.ops().on(GetTransaction, get_transaction).compile().inject(Ledger, ledger)
    result = await runner.run(GetTransaction(caller, "txn_1"))
"""

from cardescrow.ops._runner import (
    Op,
    Returns,
    Returning,
    OpsBuilder,
    Runner,
    ops,
)

__all__ = (
    "Op",
    "Returns",
    "Returning",
    "OpsBuilder",
    "Runner",
    "ops",
)
