"""Legal status transitions for content items."""

from typing import Dict, FrozenSet, Union

from ..models import ItemStatus

TRANSITIONS: Dict[ItemStatus, FrozenSet[ItemStatus]] = {
    ItemStatus.DISCOVERED: frozenset({ItemStatus.APPROVED_FOR_EDITING, ItemStatus.DISMISSED}),
    ItemStatus.APPROVED_FOR_EDITING: frozenset({ItemStatus.DRAFTED, ItemStatus.DISMISSED}),
    ItemStatus.DRAFTED: frozenset({ItemStatus.SCHEDULED, ItemStatus.DISMISSED}),
    ItemStatus.SCHEDULED: frozenset({ItemStatus.PUBLISHED, ItemStatus.DISMISSED}),
    ItemStatus.PUBLISHED: frozenset(),
    ItemStatus.DISMISSED: frozenset(),
}

INITIAL_STATUS = ItemStatus.DISCOVERED


def allowed_transitions(state: Union[ItemStatus, str]) -> FrozenSet[ItemStatus]:
    """States reachable from ``state`` in one step."""
    return TRANSITIONS[ItemStatus(state)]


def can_transition(from_state: Union[ItemStatus, str], to_state: Union[ItemStatus, str]) -> bool:
    return ItemStatus(to_state) in allowed_transitions(from_state)
