"""Bounded-concurrency batch execution with per-item failure isolation."""

import asyncio
import logging
from collections import Counter
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..models import BatchOperationResult, ItemError
from .operations import BatchOperation

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def item_key(item: Any) -> str:
    """Identifier used when reporting an item's error."""
    for attr in ("id", "key", "url"):
        value = getattr(item, attr, None)
        if value:
            return str(value)
    return repr(item)


def partition(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    """Split into consecutive groups of at most ``size``."""
    if size < 1:
        raise ValueError(f"batch_size must be >= 1, got {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchProcessor:
    """Applies a :class:`BatchOperation` to a collection of items.

    Items are split into groups of ``batch_size``. Items in a group run
    concurrently; the next group starts only after every item in the current
    one has settled. Each item persists its own result, and a failing item is
    recorded without affecting the others. There is no mid-run cancellation.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None) -> None:
        self.on_progress = on_progress

    async def _apply(self, operation: BatchOperation, item: Any) -> Tuple[bool, str]:
        try:
            outcome = await operation.apply(item)
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            logger.warning("%s failed for %s: %s", operation.name, item_key(item), reason)
            return False, reason
        return True, str(outcome) if outcome is not None else "ok"

    async def run(
        self,
        items: Sequence[Any],
        operation: BatchOperation,
        batch_size: Optional[int] = None,
    ) -> BatchOperationResult:
        """Attempt ``operation`` on every item and report aggregate counts."""
        items = list(items)
        size = batch_size if batch_size is not None else operation.default_batch_size
        groups = partition(items, size)

        result = BatchOperationResult(operation=operation.name)
        outcomes: Counter = Counter()
        done = 0

        logger.info(
            "Running %s on %d items in %d batches of up to %d",
            operation.name, len(items), len(groups), size,
        )

        for group in groups:
            settled = await asyncio.gather(*(self._apply(operation, item) for item in group))
            for item, (succeeded, detail) in zip(group, settled):
                if succeeded:
                    result.success_count += 1
                    outcomes[detail] += 1
                else:
                    result.error_count += 1
                    result.errors.append(ItemError(item_id=item_key(item), reason=detail))
            done += len(group)
            if self.on_progress is not None:
                self.on_progress(done, len(items))

        result.outcomes = dict(outcomes)
        logger.info(
            "%s finished: %d succeeded, %d failed",
            operation.name, result.success_count, result.error_count,
        )
        return result
