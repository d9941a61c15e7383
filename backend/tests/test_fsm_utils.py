from hoteldesk.utils.fsm import TransitionValidator
from hoteldesk.errors import IllegalTransition
from hoteldesk.services.lifecycle import REPAIR_FSM
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(IllegalTransition) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.code == 409
    assert 'A -> C' in exc.value.description


def test_noop_only_when_enabled():
    strict = TransitionValidator({'A': {'B'}, 'B': set()})
    lenient = TransitionValidator({'A': {'B'}, 'B': set()}, allow_noop=True)
    assert not strict.can_transition('A', 'A')
    assert lenient.can_transition('A', 'A')
    # Unknown states are never a no-op
    assert not lenient.can_transition('Z', 'Z')


def test_repair_graph():
    assert REPAIR_FSM.targets('pending') == {'in_progress'}
    assert REPAIR_FSM.targets('in_progress') == {'completed', 'pending'}
    assert REPAIR_FSM.targets('completed') == set()
    assert not REPAIR_FSM.can_transition('pending', 'completed')
