"""Editorial workflow state machine."""

from .machine import WorkflowStateMachine, parse_destinations
from .states import INITIAL_STATUS, TRANSITIONS, allowed_transitions, can_transition

__all__ = [
    "INITIAL_STATUS",
    "TRANSITIONS",
    "WorkflowStateMachine",
    "allowed_transitions",
    "can_transition",
    "parse_destinations",
]
