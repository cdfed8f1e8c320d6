"""Tests for TagStore: per-owner tag vocabularies."""

import pytest

from shared_types import TagKind


@pytest.mark.asyncio
async def test_add_is_idempotent(tag_store, owner):
    assert await tag_store.add(owner, TagKind.EVENT, "lunch")
    assert not await tag_store.add(owner, TagKind.EVENT, " lunch ")
    assert await tag_store.list_tags(owner, TagKind.EVENT) == ["lunch"]


@pytest.mark.asyncio
async def test_kinds_and_owners_are_separate(tag_store, owner, other_owner):
    await tag_store.add(owner, TagKind.EVENT, "lunch")
    await tag_store.add(owner, TagKind.PERSON, "college")
    await tag_store.add(other_owner, TagKind.EVENT, "hiking")

    assert await tag_store.list_tags(owner, TagKind.EVENT) == ["lunch"]
    assert await tag_store.list_tags(owner, TagKind.PERSON) == ["college"]
    assert await tag_store.list_tags(other_owner, TagKind.EVENT) == ["hiking"]


@pytest.mark.asyncio
async def test_ensure_returns_new_only(tag_store, owner):
    await tag_store.add(owner, TagKind.PERSON, "family")
    added = await tag_store.ensure(owner, TagKind.PERSON, ["family", "new-contact", ""])
    assert added == ["new-contact"]
    assert set(await tag_store.list_tags(owner, TagKind.PERSON)) == {"family", "new-contact"}


@pytest.mark.asyncio
async def test_remove(tag_store, owner):
    await tag_store.add(owner, TagKind.EVENT, "lunch")
    assert await tag_store.remove(owner, TagKind.EVENT, "lunch")
    assert not await tag_store.remove(owner, TagKind.EVENT, "lunch")
    assert await tag_store.list_tags(owner, TagKind.EVENT) == []


@pytest.mark.asyncio
async def test_empty_name_rejected(tag_store, owner):
    with pytest.raises(ValueError):
        await tag_store.add(owner, TagKind.EVENT, "  ")
