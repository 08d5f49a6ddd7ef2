"""Wardrobe items, saved outfits, hydration and comments."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.hydration import UnavailableItem, hydrate_outfits
from models.user import User
from storage.errors import NotFound, ValidationFailure


def _add_user(chroma, user_id: str) -> User:
    user = User(id=user_id, name=user_id.title(), email=f"{user_id}@example.com")
    return asyncio.run(chroma.repositories.users.add(user))


def _add_items(chroma, user_id: str, *names: str):
    analyses = [{"name": name, "category": "Top", "color": "Blue"} for name in names]
    return asyncio.run(chroma.wardrobe.add_items(user_id, analyses))


def test_add_items_applies_defaults_and_canonical_category(chroma) -> None:
    _add_user(chroma, "ada")
    items = asyncio.run(
        chroma.wardrobe.add_items("ada", [{"category": "outerwear"}, {"name": "Tee", "category": "top"}])
    )

    assert [item.name for item in items] == ["New Item", "Tee"]
    assert [item.category for item in items] == ["Outerwear", "Top"]
    assert items[0].color == "Unknown"
    assert items[0].style == "Unknown"
    assert [item.id for item in asyncio.run(chroma.wardrobe.get_items("ada"))] == [item.id for item in items]


def test_add_items_keeps_supplied_purchase_and_worn_dates(chroma, clock) -> None:
    _add_user(chroma, "ada")
    dated, undated = asyncio.run(
        chroma.wardrobe.add_items(
            "ada",
            [
                {"name": "Coat", "category": "Outerwear", "purchase_date": 1000.0, "last_worn": 2000.0},
                {"name": "Tee", "category": "Top"},
            ],
        )
    )

    stored = asyncio.run(chroma.repositories.items.get(dated.id))
    assert stored.purchase_date == 1000.0
    assert stored.last_worn == 2000.0
    assert undated.purchase_date == clock()
    assert undated.last_worn is None

    updated = asyncio.run(chroma.wardrobe.update_item(dated.id, {"purchase_date": 1500.0}))
    assert updated.purchase_date == 1500.0


def test_add_items_rejects_whole_batch_on_unknown_category(chroma) -> None:
    _add_user(chroma, "ada")
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.wardrobe.add_items("ada", [{"category": "Top"}, {"category": "Spaceship"}]))

    assert asyncio.run(chroma.wardrobe.get_items("ada")) == []


def test_add_items_requires_existing_user(chroma) -> None:
    with pytest.raises(NotFound):
        asyncio.run(chroma.wardrobe.add_item("ghost", {"category": "Top"}))


def test_update_item_validates_changes(chroma) -> None:
    _add_user(chroma, "ada")
    [item] = _add_items(chroma, "ada", "Shirt")

    updated = asyncio.run(chroma.wardrobe.update_item(item.id, {"category": "footwear", "color": "Red"}))
    assert updated.category == "Footwear"
    assert updated.color == "Red"

    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.wardrobe.update_item(item.id, {"user_id": "someone-else"}))
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.wardrobe.update_item(item.id, {"category": "Hat"}))
    with pytest.raises(NotFound):
        asyncio.run(chroma.wardrobe.update_item("ghost", {"color": "Red"}))


def test_bulk_delete_is_all_or_nothing(chroma) -> None:
    _add_user(chroma, "ada")
    items = _add_items(chroma, "ada", "One", "Two", "Three")

    with pytest.raises(NotFound):
        asyncio.run(chroma.wardrobe.delete_items([items[0].id, "ghost"]))
    assert len(asyncio.run(chroma.wardrobe.get_items("ada"))) == 3

    asyncio.run(chroma.wardrobe.delete_items([items[0].id, items[1].id, items[0].id]))
    assert [item.name for item in asyncio.run(chroma.wardrobe.get_items("ada"))] == ["Three"]


def test_save_outfit_only_accepts_owned_items(chroma) -> None:
    _add_user(chroma, "ada")
    _add_user(chroma, "bob")
    [mine] = _add_items(chroma, "ada", "Mine")
    [theirs] = _add_items(chroma, "bob", "Theirs")

    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.wardrobe.save_outfit("ada", "Mixed", "Party", "", [mine.id, theirs.id]))

    outfit = asyncio.run(chroma.wardrobe.save_outfit("ada", "Solo", "Party", "Because", [mine.id]))
    assert outfit.is_public is False
    assert outfit.likes == []
    assert outfit.item_ids == [mine.id]


def test_saved_outfits_show_deleted_items_as_unavailable(chroma) -> None:
    _add_user(chroma, "ada")
    shirt, jeans = _add_items(chroma, "ada", "Shirt", "Jeans")
    outfit = asyncio.run(chroma.wardrobe.save_outfit("ada", "Casual", "Weekend", "", [shirt.id, jeans.id]))

    asyncio.run(chroma.wardrobe.delete_item(jeans.id))
    [hydrated] = asyncio.run(chroma.wardrobe.get_saved_outfits("ada"))

    assert hydrated.id == outfit.id
    assert hydrated.items[0].name == "Shirt"
    assert hydrated.items[1] == UnavailableItem(jeans.id)
    view = hydrated.to_view()
    assert view["items"][1] == {"id": jeans.id, "available": False}
    assert view["item_ids"] == [shirt.id, jeans.id]


def test_hydration_fetches_each_shared_item_once(chroma, monkeypatch: pytest.MonkeyPatch) -> None:
    _add_user(chroma, "ada")
    shirt, jeans = _add_items(chroma, "ada", "Shirt", "Jeans")
    first = asyncio.run(chroma.wardrobe.save_outfit("ada", "One", "", "", [shirt.id, jeans.id]))
    second = asyncio.run(chroma.wardrobe.save_outfit("ada", "Two", "", "", [jeans.id, shirt.id]))

    calls = []
    real_get = chroma.store.get

    async def counting_get(collection, key):
        calls.append((collection, key))
        return await real_get(collection, key)

    monkeypatch.setattr(chroma.store, "get", counting_get)
    hydrated = asyncio.run(hydrate_outfits([first, second], chroma.repositories.items))

    assert sorted(calls) == sorted([("items", shirt.id), ("items", jeans.id)])
    assert [item.name for item in hydrated[1].items] == ["Jeans", "Shirt"]


def test_rename_publish_and_delete_outfit(chroma) -> None:
    _add_user(chroma, "ada")
    [shirt] = _add_items(chroma, "ada", "Shirt")
    outfit = asyncio.run(chroma.wardrobe.save_outfit("ada", "Draft", "", "", [shirt.id]))

    renamed = asyncio.run(chroma.wardrobe.rename_outfit(outfit.id, "Final"))
    published = asyncio.run(chroma.wardrobe.publish_outfit(outfit.id))

    assert renamed.name == "Final"
    assert published.outfit.is_public is True
    assert published.outfit.name == "Final"
    assert [entry.id for entry in asyncio.run(chroma.repositories.outfits.get_public())] == [outfit.id]

    asyncio.run(chroma.wardrobe.delete_outfit(outfit.id))
    assert asyncio.run(chroma.wardrobe.get_saved_outfits("ada")) == []
    with pytest.raises(NotFound):
        asyncio.run(chroma.wardrobe.delete_outfit(outfit.id))


def test_comments_are_ordered_and_carry_their_author(chroma, clock) -> None:
    _add_user(chroma, "ada")
    _add_user(chroma, "bob")
    [shirt] = _add_items(chroma, "ada", "Shirt")
    outfit = asyncio.run(chroma.wardrobe.save_outfit("ada", "Look", "", "", [shirt.id]))

    asyncio.run(chroma.wardrobe.add_comment(outfit.id, "bob", "Love it"))
    clock.advance(seconds=60)
    asyncio.run(chroma.wardrobe.add_comment(outfit.id, "ada", "Thanks!"))

    comments = asyncio.run(chroma.wardrobe.get_comments(outfit.id))
    assert [entry.comment.text for entry in comments] == ["Love it", "Thanks!"]
    assert [entry.author.id for entry in comments] == ["bob", "ada"]
    assert "password_hash" not in comments[0].to_view()["author"]

    with pytest.raises(NotFound):
        asyncio.run(chroma.wardrobe.add_comment("ghost", "bob", "Hello"))
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.wardrobe.add_comment(outfit.id, "bob", "   "))
