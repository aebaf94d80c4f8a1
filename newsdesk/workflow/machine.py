"""Workflow state machine for news items and articles.

Each transition is validated against the item's current status and its
payload, then written together with any accompanying content in a single
compare-and-set update, so status and content never diverge.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import pendulum
from pydantic import ValidationError as PydanticValidationError

from ..db.base import ContentStore
from ..errors import (
    ConcurrentUpdateError,
    DraftIncompleteError,
    ItemNotFoundError,
    TransitionError,
    ValidationError,
)
from ..models import ContentItem, Destination, DraftContent, ItemStatus
from .states import can_transition

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def parse_destinations(values: Iterable[Union[Destination, str]]) -> List[Destination]:
    """Validate destination names, dropping repeats and keeping order."""
    destinations: List[Destination] = []
    for value in values:
        try:
            destination = Destination(value)
        except ValueError:
            valid = ", ".join(d.value for d in Destination)
            raise ValidationError(f"Unknown destination {value!r} (expected one of: {valid})")
        if destination not in destinations:
            destinations.append(destination)
    return destinations


class WorkflowStateMachine:
    """Moves content items through discovered -> ... -> published / dismissed."""

    def __init__(self, store: ContentStore, clock: Optional[Clock] = None) -> None:
        self.store = store
        self.clock = clock or (lambda: pendulum.now("UTC"))

    async def _load(self, item_id: str) -> ContentItem:
        item = await self.store.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    @staticmethod
    def _check(item: ContentItem, target: ItemStatus) -> None:
        if not can_transition(item.status, target):
            reason = "state is terminal" if item.status.is_terminal else None
            raise TransitionError(item.status, target, reason)

    async def _commit(
        self,
        item: ContentItem,
        target: ItemStatus,
        fields: Optional[Dict[str, Any]] = None,
    ) -> ContentItem:
        update = dict(fields or {})
        update["status"] = target
        update["status_changed_at"] = self.clock()
        try:
            updated = await self.store.update_item(item.id, update, expected_status=item.status)
        except ConcurrentUpdateError as e:
            raise TransitionError(item.status, target, "status changed concurrently") from e
        logger.info("Item %s: %s -> %s", item.id, item.status, target)
        return updated

    async def approve(self, item_id: str) -> ContentItem:
        """Editorial approval of a discovered item."""
        item = await self._load(item_id)
        self._check(item, ItemStatus.APPROVED_FOR_EDITING)
        return await self._commit(item, ItemStatus.APPROVED_FOR_EDITING)

    async def save_draft(
        self,
        item_id: str,
        draft: Union[DraftContent, Dict[str, Any]],
        destinations: Iterable[Union[Destination, str]],
    ) -> ContentItem:
        """Store draft fields and destinations and mark the item drafted."""
        item = await self._load(item_id)
        self._check(item, ItemStatus.DRAFTED)

        if not isinstance(draft, DraftContent):
            try:
                draft = DraftContent.model_validate(draft)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid draft: {e}") from e
        missing = draft.missing_fields()
        if missing:
            raise DraftIncompleteError(missing)

        chosen = parse_destinations(destinations)
        if not chosen:
            raise ValidationError("A draft must target at least one destination")

        return await self._commit(
            item, ItemStatus.DRAFTED, {"draft": draft, "destinations": chosen}
        )

    async def schedule(
        self,
        item_id: str,
        publish_at: Optional[datetime] = None,
        slot: Optional[str] = None,
    ) -> ContentItem:
        """Assign a publish time and/or a scheduled slot to a drafted item."""
        item = await self._load(item_id)
        self._check(item, ItemStatus.SCHEDULED)

        if not item.destinations:
            raise ValidationError(f"Item {item_id} has no destinations to schedule for")
        if publish_at is None and not slot:
            raise ValidationError("Scheduling requires a publish time or a slot")

        return await self._commit(
            item, ItemStatus.SCHEDULED, {"publish_at": publish_at, "scheduled_slot": slot}
        )

    async def publish(
        self,
        item_id: str,
        confirmed_destinations: Iterable[Union[Destination, str]],
    ) -> ContentItem:
        """Mark published once every chosen destination has confirmed delivery."""
        item = await self._load(item_id)
        self._check(item, ItemStatus.PUBLISHED)

        confirmed = parse_destinations(confirmed_destinations)
        pending = [d.value for d in item.destinations if d not in confirmed]
        if pending:
            raise ValidationError(
                f"Item {item_id} not confirmed on: {', '.join(pending)}"
            )

        return await self._commit(
            item, ItemStatus.PUBLISHED, {"published_destinations": list(item.destinations)}
        )

    async def dismiss(self, item_id: str) -> ContentItem:
        """Reject an item from any non-terminal state. Irreversible."""
        item = await self._load(item_id)
        self._check(item, ItemStatus.DISMISSED)
        return await self._commit(item, ItemStatus.DISMISSED)

    async def transition(
        self,
        item_id: str,
        target: Union[ItemStatus, str],
        **payload: Any,
    ) -> ContentItem:
        """Dispatch to the operation for ``target``.

        Payload keys: ``draft`` and ``destinations`` for drafted, ``publish_at``
        and ``slot`` for scheduled, ``confirmed_destinations`` for published.
        """
        try:
            target = ItemStatus(target)
        except ValueError:
            raise ValidationError(f"Unknown status: {target!r}")

        if target == ItemStatus.APPROVED_FOR_EDITING:
            return await self.approve(item_id)
        if target == ItemStatus.DRAFTED:
            return await self.save_draft(
                item_id, payload.get("draft") or {}, payload.get("destinations") or []
            )
        if target == ItemStatus.SCHEDULED:
            return await self.schedule(item_id, payload.get("publish_at"), payload.get("slot"))
        if target == ItemStatus.PUBLISHED:
            return await self.publish(item_id, payload.get("confirmed_destinations") or [])
        if target == ItemStatus.DISMISSED:
            return await self.dismiss(item_id)

        # Nothing transitions back into the initial state.
        item = await self._load(item_id)
        raise TransitionError(item.status, target)
