"""Shared fixtures: an in-memory store and helpers to seed it."""

from typing import Any

import pendulum
import pytest

from newsdesk.db import MemoryStore, new_id
from newsdesk.dedup import DeduplicationIndex
from newsdesk.models import ContentItem, ItemStatus
from newsdesk.normalization import normalize


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: str = "2024-06-03T09:00:00+00:00") -> None:
        self.now = pendulum.parse(start)

    def __call__(self):
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now.add(**kwargs)


@pytest.fixture
def store(clock: "FixedClock") -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def dedup(store: MemoryStore) -> DeduplicationIndex:
    return DeduplicationIndex(store)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def make_item(raw: str = "", normalized: bool = False, **fields: Any) -> ContentItem:
    """Build an unsaved item, optionally with clean text, hash and word count filled in."""
    data = {"id": new_id(), "headline": "Rates fall again", "raw_content": raw}
    if normalized:
        result = normalize(raw)
        data.update(
            clean_content=result.clean_content,
            content_hash=result.content_hash,
            word_count=result.word_count,
        )
    data.update(fields)
    return ContentItem(**data)


async def add_item(store: MemoryStore, raw: str = "", status: ItemStatus = ItemStatus.DISCOVERED, **fields: Any) -> ContentItem:
    return await store.insert_item(make_item(raw, status=status, **fields))
