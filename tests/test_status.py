import pytest

from cardescrow.errors import ErrorKind, Stage
from cardescrow.escrow import TRANSITIONS, Action, Rejection, TransactionStatus as S, route

from tests.helpers import unwrap, unwrap_err


def test_table_covers_every_pair():
    assert len(TRANSITIONS) == len(S) * len(Action)


def test_payment_verified_alias_collapses_to_in_escrow():
    assert S("payment_verified") is S.IN_ESCROW
    with pytest.raises(ValueError):
        S("paid")


@pytest.mark.parametrize(
    ("status", "action", "target"),
    [
        (S.PENDING_PAYMENT, Action.SUBMIT_PAYMENT, S.PAYMENT_SUBMITTED),
        (S.PAYMENT_SUBMITTED, Action.APPROVE_PAYMENT, S.IN_ESCROW),
        (S.PAYMENT_SUBMITTED, Action.REJECT_PAYMENT, S.PENDING_PAYMENT),
        (S.IN_ESCROW, Action.SHIP, S.SHIPPED),
        (S.SHIPPED, Action.CONFIRM_RECEIPT, S.COMPLETED),
        (S.DELIVERED, Action.CONFIRM_RECEIPT, S.COMPLETED),
        (S.PENDING_PAYMENT, Action.CANCEL, S.CANCELLED),
        (S.PAYMENT_SUBMITTED, Action.CANCEL, S.CANCELLED),
        (S.IN_ESCROW, Action.DISPUTE, S.DISPUTED),
        (S.SHIPPED, Action.DISPUTE, S.DISPUTED),
        (S.DELIVERED, Action.DISPUTE, S.DISPUTED),
    ],
)
def test_allowed_transitions(status: S, action: Action, target: S):
    assert unwrap(route(status, action)) is target


def test_allowed_transitions_are_exactly_these():
    allowed = {pair for pair, t in TRANSITIONS.items() if not isinstance(t, Rejection)}
    assert len(allowed) == 11


@pytest.mark.parametrize(
    ("status", "action", "code", "stage"),
    [
        (S.PENDING_PAYMENT, Action.SHIP, "payment_not_yet_verified", Stage.TOO_EARLY),
        (S.PAYMENT_SUBMITTED, Action.SHIP, "payment_not_yet_verified", Stage.TOO_EARLY),
        (S.SHIPPED, Action.SHIP, "already_shipped", Stage.TOO_LATE),
        (S.IN_ESCROW, Action.CONFIRM_RECEIPT, "not_yet_shipped", Stage.TOO_EARLY),
        (S.COMPLETED, Action.CONFIRM_RECEIPT, "receipt_already_confirmed", Stage.RESOLVED),
        (S.IN_ESCROW, Action.CANCEL, "too_late_to_cancel_stage_locked", Stage.TOO_LATE),
        (S.SHIPPED, Action.CANCEL, "too_late_to_cancel_stage_locked", Stage.TOO_LATE),
        (S.DISPUTED, Action.CANCEL, "too_late_to_cancel_stage_locked", Stage.RESOLVED),
        (S.PENDING_PAYMENT, Action.DISPUTE, "dispute_not_allowed_yet", Stage.TOO_EARLY),
        (S.PAYMENT_SUBMITTED, Action.DISPUTE, "dispute_not_allowed_yet", Stage.TOO_EARLY),
        (S.COMPLETED, Action.DISPUTE, "dispute_window_closed", Stage.RESOLVED),
        (S.PENDING_PAYMENT, Action.APPROVE_PAYMENT, "payment_not_submitted", Stage.TOO_EARLY),
        (S.IN_ESCROW, Action.APPROVE_PAYMENT, "payment_already_resolved", Stage.TOO_LATE),
        (S.PAYMENT_SUBMITTED, Action.SUBMIT_PAYMENT, "payment_already_submitted", Stage.TOO_LATE),
        (S.CANCELLED, Action.SUBMIT_PAYMENT, "payment_already_submitted", Stage.RESOLVED),
    ],
)
def test_rejections_name_the_stage(status: S, action: Action, code: str, stage: Stage):
    error = unwrap_err(route(status, action))

    assert error.kind is ErrorKind.INVALID_STATE
    assert error.code == code
    assert error.stage is stage


@pytest.mark.parametrize("status", [S.COMPLETED, S.CANCELLED, S.REFUNDED])
@pytest.mark.parametrize("action", list(Action))
def test_terminal_states_accept_nothing(status: S, action: Action):
    assert unwrap_err(route(status, action)).stage is Stage.RESOLVED
