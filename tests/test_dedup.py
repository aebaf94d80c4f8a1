"""Tests for the deduplication index."""

import asyncio

import pytest

from newsdesk.errors import NotNormalizedError
from newsdesk.normalization import EMPTY_CONTENT_HASH

from conftest import make_item


@pytest.mark.asyncio
async def test_second_registration_is_duplicate_of_first(dedup):
    first = make_item("Hello   world", normalized=True)
    second = make_item("Hello world", normalized=True)

    assert first.clean_content == second.clean_content == "Hello world"

    result = await dedup.register(first)
    assert result.is_new

    result = await dedup.register(second)
    assert result.is_duplicate
    assert result.canonical_id == first.id


@pytest.mark.asyncio
async def test_concurrent_registration_has_one_winner(dedup):
    items = [make_item("Same story text", normalized=True) for _ in range(25)]

    results = await asyncio.gather(*(dedup.register(item) for item in items))

    winners = [item for item, result in zip(items, results) if result.is_new]
    assert len(winners) == 1
    assert sum(r.is_duplicate for r in results) == 24
    assert all(r.canonical_id == winners[0].id for r in results if r.is_duplicate)
    assert await dedup.lookup(items[0].content_hash) == winners[0].id


@pytest.mark.asyncio
async def test_reregistering_canonical_item_is_new(dedup):
    item = make_item("Only once", normalized=True)
    assert (await dedup.register(item)).is_new
    assert (await dedup.register(item)).is_new


@pytest.mark.asyncio
@pytest.mark.parametrize("content_hash", [None, "", EMPTY_CONTENT_HASH])
async def test_unnormalized_items_are_rejected(dedup, content_hash):
    item = make_item("raw only", content_hash=content_hash)
    with pytest.raises(NotNormalizedError):
        await dedup.register(item)


@pytest.mark.asyncio
async def test_item_without_id_is_rejected(dedup):
    item = make_item("text", normalized=True, id=None)
    with pytest.raises(ValueError):
        await dedup.register(item)


@pytest.mark.asyncio
async def test_unregister_frees_the_hash(dedup):
    first = make_item("Shared text", normalized=True)
    second = make_item("Shared text", normalized=True)

    await dedup.register(first)
    await dedup.unregister(first)

    assert await dedup.lookup(first.content_hash) is None
    assert (await dedup.register(second)).is_new


@pytest.mark.asyncio
async def test_unregister_by_non_owner_keeps_claim(dedup):
    owner = make_item("Shared text", normalized=True)
    other = make_item("Shared text", normalized=True)

    await dedup.register(owner)
    await dedup.unregister(other)

    assert await dedup.lookup(owner.content_hash) == owner.id
