from __future__ import annotations
"""Finite state machine helper for enforcing allowed status transitions.

Usage:
    from hoteldesk.utils.fsm import TransitionValidator
    REPAIR_FSM = TransitionValidator({
        'pending': {'in_progress'},
        'in_progress': {'completed', 'pending'},
        'completed': set(),
    })
    REPAIR_FSM.assert_can_transition(current_status, target_status)

Raises IllegalTransition (409) if invalid. Re-entering the current state is a
no-op and only allowed when the validator is built with allow_noop=True.
"""
from typing import Dict, Set
from hoteldesk.errors import IllegalTransition

class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status', allow_noop: bool = False):
        self.graph = graph
        self.field_name = field_name
        self.allow_noop = allow_noop

    def can_transition(self, current: str, target: str) -> bool:
        if current == target and current in self.graph:
            return self.allow_noop
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise IllegalTransition(f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def targets(self, current: str) -> Set[str]:
        return set(self.graph.get(current, set()))

__all__ = ['TransitionValidator']
