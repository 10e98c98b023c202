from decimal import Decimal

import pytest

from paybridge.checkout import state
from paybridge.checkout.errors import InvalidTransitionError
from paybridge.checkout.models import CheckoutSession, CheckoutStatus as S


def _session(status=S.CREATED):
    return CheckoutSession(session_id="chk_1", amount=Decimal("10.00"), currency="EUR", status=status)


def test_happy_path_edges():
    session = _session()
    state.transition(session, S.SUBMITTED)
    state.transition(session, S.PENDING)
    state.transition(session, S.PENDING)
    state.transition(session, S.CONFIRMED)
    assert session.status is S.CONFIRMED


@pytest.mark.parametrize("final", [S.CONFIRMED, S.FAILED])
def test_final_states_have_no_outgoing_edge(final):
    assert state.is_final(final)
    for target in S:
        assert not state.can_transition(final, target)


def test_timed_out_can_still_resolve():
    assert not state.is_final(S.TIMED_OUT)
    assert state.can_transition(S.TIMED_OUT, S.CONFIRMED)
    assert state.can_transition(S.TIMED_OUT, S.FAILED)


def test_created_cannot_skip_submission():
    session = _session()
    with pytest.raises(InvalidTransitionError) as exc:
        state.transition(session, S.CONFIRMED)
    assert exc.value.status_code == 409
    assert session.status is S.CREATED


@pytest.mark.parametrize(
    "normalized,expected", [("PAID", S.CONFIRMED), ("FAILED", S.FAILED), ("PENDING", S.PENDING), ("EXPIRED", S.PENDING)]
)
def test_target_for_provider_status(normalized, expected):
    assert state.target_for_provider_status(normalized) is expected


def test_apply_provider_status_records_without_moving_created_session():
    session = _session()
    assert state.apply_provider_status(session, "PAID") is None
    assert session.status is S.CREATED
    assert session.provider_status == "PAID"


def test_apply_provider_status_never_leaves_confirmed():
    session = _session(S.CONFIRMED)
    assert state.apply_provider_status(session, "FAILED") is None
    assert session.status is S.CONFIRMED


@pytest.mark.parametrize("final", [S.CONFIRMED, S.FAILED])
def test_final_transition_records_resolution_time(final):
    session = _session(S.SUBMITTED)
    state.transition(session, S.PENDING)
    assert session.resolved_at is None
    state.transition(session, final)
    assert session.resolved_at is not None


def test_timed_out_is_not_resolved():
    session = _session(S.SUBMITTED)
    state.transition(session, S.TIMED_OUT)
    assert session.resolved_at is None
