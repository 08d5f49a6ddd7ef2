"""Community feed scoring, ordering and pagination."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.feed_ranking import paginate, rank_outfits, score_outfit
from models.outfit import Outfit
from models.user import User
from storage.errors import ValidationFailure

DAY = 86400.0


def _add_user(chroma, user_id: str) -> None:
    asyncio.run(chroma.repositories.users.add(User(id=user_id, name=user_id.title(), email=f"{user_id}@example.com")))


def _publish(chroma, outfit_id: str, created_at: float, likes: List[str] = (), user_id: str = "ada", public=True):
    outfit = Outfit(
        id=outfit_id,
        user_id=user_id,
        name=f"Outfit {outfit_id}",
        is_public=public,
        likes=list(likes),
        created_at=created_at,
    )
    return asyncio.run(chroma.repositories.outfits.add(outfit))


def _feed_ids(chroma, **kwargs) -> List[str]:
    page = asyncio.run(chroma.feed.get_public_outfits(**kwargs))
    return [entry.outfit.id for entry in page.outfits]


def test_score_weighs_likes_against_age() -> None:
    now = 10 * DAY
    outfit = Outfit(id="o1", user_id="u", name="x", likes=["a", "b", "c"], created_at=now - 2 * DAY)

    assert score_outfit(outfit, now) == pytest.approx(4.0)


def test_ties_break_on_newer_id() -> None:
    now = 5 * DAY
    older = Outfit(id="1700000000000aaaaaaaa", user_id="u", name="x", created_at=now)
    newer = Outfit(id="1700000000001aaaaaaaa", user_id="u", name="y", created_at=now)

    assert [outfit.id for outfit in rank_outfits([older, newer], now)] == [newer.id, older.id]
    assert [outfit.id for outfit in rank_outfits([newer, older], now)] == [newer.id, older.id]


def test_paginate_reports_has_more() -> None:
    entries = list(range(20))

    assert paginate(entries, 1, 9) == (list(range(9)), True)
    assert paginate(entries, 3, 9) == ([18, 19], False)
    assert paginate(entries, 4, 9) == ([], False)
    with pytest.raises(ValidationFailure):
        paginate(entries, 0, 9)


def test_feed_orders_by_likes_and_freshness(chroma, clock) -> None:
    _add_user(chroma, "ada")
    now = clock()
    _publish(chroma, "a", now - 2 * DAY, likes=["u1", "u2", "u3"])
    _publish(chroma, "b", now)
    _publish(chroma, "c", now - DAY, likes=["u1"])

    assert _feed_ids(chroma) == ["a", "c", "b"]


def test_liked_outfit_beats_older_unliked_one(chroma, clock) -> None:
    _add_user(chroma, "ada")
    now = clock()
    _publish(chroma, "older", now - 4 * DAY)
    _publish(chroma, "liked", now - 3 * DAY, likes=["a", "b"])

    assert _feed_ids(chroma) == ["liked", "older"]


def test_feed_hides_private_and_orphaned_outfits(chroma, clock) -> None:
    _add_user(chroma, "ada")
    now = clock()
    _publish(chroma, "public", now)
    _publish(chroma, "private", now, public=False)
    _publish(chroma, "orphan", now, user_id="deleted-user")

    page = asyncio.run(chroma.feed.get_public_outfits())

    assert [entry.outfit.id for entry in page.outfits] == ["public"]
    assert page.total == 1
    assert page.outfits[0].creator.id == "ada"
    assert "password_hash" not in page.to_view()["outfits"][0]["creator"]


def test_feed_pages_are_disjoint_and_complete(chroma, clock) -> None:
    _add_user(chroma, "ada")
    now = clock()
    for index in range(20):
        _publish(chroma, f"o{index:02d}", now - index * 3600, likes=[f"u{n}" for n in range(index % 4)])

    pages = [asyncio.run(chroma.feed.get_public_outfits(page=number)) for number in (1, 2, 3, 4)]

    assert [len(page.outfits) for page in pages] == [9, 9, 2, 0]
    assert [page.has_more for page in pages] == [True, True, False, False]
    seen = [entry.outfit.id for page in pages for entry in page.outfits]
    assert len(seen) == len(set(seen)) == 20
    ranked = rank_outfits(asyncio.run(chroma.repositories.outfits.get_public()), clock())
    assert seen == [outfit.id for outfit in ranked]
    scores = [(index % 4) * 2 - index / 24 for index in (int(outfit_id[1:]) for outfit_id in seen)]
    assert scores == sorted(scores, reverse=True)
    assert _feed_ids(chroma, page=1) == [entry.outfit.id for entry in pages[0].outfits]


def test_feed_page_size_override_and_validation(chroma, clock) -> None:
    _add_user(chroma, "ada")
    for index in range(5):
        _publish(chroma, f"o{index}", clock() - index * DAY)

    assert _feed_ids(chroma, page=2, page_size=2) == ["o2", "o3"]
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.feed.get_public_outfits(page=0))
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.feed.get_public_outfits(page=1, page_size=0))


def test_feed_marks_deleted_items_unavailable(chroma, clock) -> None:
    _add_user(chroma, "ada")
    outfit = Outfit(id="o1", user_id="ada", name="Look", item_ids=["gone"], is_public=True, created_at=clock())
    asyncio.run(chroma.repositories.outfits.add(outfit))

    view = asyncio.run(chroma.feed.get_public_outfits()).to_view()

    assert view["outfits"][0]["items"] == [{"id": "gone", "available": False}]
    assert view["has_more"] is False
