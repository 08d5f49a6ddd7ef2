"""Like and collect toggles."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.engagement import toggle_membership
from models.outfit import Outfit
from models.user import User
from storage.errors import NotFound, ValidationFailure


def _seed(chroma) -> None:
    async def scenario():
        for user_id in ("ada", "bob", "cy"):
            await chroma.repositories.users.add(User(id=user_id, name=user_id.title(), email=f"{user_id}@example.com"))
        await chroma.repositories.outfits.add(Outfit(id="o1", user_id="ada", name="Look", is_public=True))
        await chroma.repositories.outfits.add(Outfit(id="o2", user_id="bob", name="Other", is_public=True))

    asyncio.run(scenario())


def test_toggle_membership_adds_then_removes() -> None:
    assert toggle_membership(["a"], "b") == ["a", "b"]
    assert toggle_membership(["a", "b"], "a") == ["b"]


def test_like_twice_restores_like_set(chroma) -> None:
    _seed(chroma)
    asyncio.run(chroma.engagement.toggle_like("o1", "bob"))

    liked = asyncio.run(chroma.engagement.toggle_like("o1", "cy"))
    assert liked.likes == ["bob", "cy"]

    unliked = asyncio.run(chroma.engagement.toggle_like("o1", "cy"))
    assert unliked.likes == ["bob"]
    assert asyncio.run(chroma.repositories.outfits.get("o1")).likes == ["bob"]


def test_interleaved_likes_are_not_lost(chroma) -> None:
    _seed(chroma)

    async def scenario():
        await asyncio.gather(
            chroma.engagement.toggle_like("o1", "bob"),
            chroma.engagement.toggle_like("o1", "cy"),
            chroma.engagement.toggle_like("o1", "ada"),
        )
        return await chroma.repositories.outfits.get("o1")

    assert sorted(asyncio.run(scenario()).likes) == ["ada", "bob", "cy"]


def test_like_requires_existing_outfit_and_ids(chroma) -> None:
    _seed(chroma)
    with pytest.raises(NotFound):
        asyncio.run(chroma.engagement.toggle_like("ghost", "bob"))
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.engagement.toggle_like("o1", ""))


def test_collect_and_uncollect(chroma) -> None:
    _seed(chroma)

    user = asyncio.run(chroma.engagement.toggle_collect("o2", "ada"))
    assert user.collected_outfit_ids == ["o2"]

    user = asyncio.run(chroma.engagement.toggle_collect("o2", "ada"))
    assert user.collected_outfit_ids == []

    with pytest.raises(NotFound):
        asyncio.run(chroma.engagement.toggle_collect("ghost", "ada"))
    with pytest.raises(NotFound):
        asyncio.run(chroma.engagement.toggle_collect("o2", "ghost"))


def test_collected_outfits_skip_deleted_ones(chroma) -> None:
    _seed(chroma)
    asyncio.run(chroma.engagement.toggle_collect("o1", "cy"))
    asyncio.run(chroma.engagement.toggle_collect("o2", "cy"))
    asyncio.run(chroma.wardrobe.delete_outfit("o1"))

    collected = asyncio.run(chroma.engagement.get_collected_outfits("cy"))
    assert [entry.outfit.id for entry in collected] == ["o2"]
    assert collected[0].creator.id == "bob"

    # A dangling reference can still be removed.
    user = asyncio.run(chroma.engagement.toggle_collect("o1", "cy"))
    assert user.collected_outfit_ids == ["o2"]
