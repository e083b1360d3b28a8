import pytest

from src.hostel_gatepass.hostel_gatepass.core.enums import PassStatus
from src.hostel_gatepass.hostel_gatepass.core.exceptions import InvalidTransitionError
from src.hostel_gatepass.hostel_gatepass.gatepass.transitions import (
    LEGAL_EDGES,
    AdminOverride,
    Transition,
    check_transition,
    source_statuses,
)

PG = PassStatus.PENDING_GUARDIAN
PS = PassStatus.PENDING_SUPERVISOR
AP = PassStatus.APPROVED
RJ = PassStatus.REJECTED


def test_legal_edges_are_exactly_the_approval_graph():
    assert LEGAL_EDGES == {(PG, PS), (PG, RJ), (PS, AP), (PS, RJ), (PG, AP)}


@pytest.mark.parametrize(
    "current,transition,expected",
    [
        (PG, Transition.GUARDIAN_APPROVE, PS),
        (PG, Transition.GUARDIAN_REJECT, RJ),
        (PS, Transition.SUPERVISOR_APPROVE, AP),
        (PS, Transition.SUPERVISOR_REJECT, RJ),
    ],
)
def test_normal_transitions(current, transition, expected):
    assert check_transition(current, transition) == expected


@pytest.mark.parametrize(
    "current,transition,message",
    [
        (AP, Transition.SUPERVISOR_APPROVE, "already approved"),
        (RJ, Transition.SUPERVISOR_REJECT, "already rejected"),
        (PS, Transition.GUARDIAN_APPROVE, "not awaiting guardian"),
        (PG, Transition.SUPERVISOR_APPROVE, "not pending supervisor"),
        (AP, Transition.GUARDIAN_REJECT, "already approved"),
    ],
)
def test_illegal_transitions_name_the_reason(current, transition, message):
    with pytest.raises(InvalidTransitionError) as exc:
        check_transition(current, transition)
    assert message in str(exc.value)


def test_override_relaxes_only_supervisor_decisions():
    override = AdminOverride(note="parents called the office")
    assert check_transition(PG, Transition.SUPERVISOR_APPROVE, override) == AP
    assert check_transition(PG, Transition.SUPERVISOR_REJECT, override) == RJ
    assert source_statuses(Transition.GUARDIAN_APPROVE, override) == {PG}


@pytest.mark.parametrize("terminal", [AP, RJ])
def test_override_never_leaves_a_terminal_state(terminal):
    for transition in Transition:
        with pytest.raises(InvalidTransitionError):
            check_transition(terminal, transition, AdminOverride())


def test_check_returns_target_status():
    assert check_transition(PG, Transition.GUARDIAN_APPROVE) == PS
    assert check_transition(PS, Transition.SUPERVISOR_APPROVE) == AP
    assert check_transition(PG, Transition.SUPERVISOR_REJECT, AdminOverride()) == RJ


@pytest.mark.parametrize("terminal, word", [(AP, "approved"), (RJ, "rejected")])
def test_terminal_states_name_themselves(terminal, word):
    assert terminal.is_terminal
    with pytest.raises(InvalidTransitionError, match=f"already {word}"):
        check_transition(terminal, Transition.SUPERVISOR_APPROVE)
