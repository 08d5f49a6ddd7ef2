"""Read-side joins from stored references to full records.

Hydration never writes. Foreign keys are deduplicated before lookup so each
distinct item or user is fetched once per call, and a reference to a deleted
item becomes an :class:`UnavailableItem` instead of disappearing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from models.clothing_item import ClothingItem
from models.comment import Comment
from models.outfit import Outfit
from models.records import dedupe
from models.user import User
from storage.repositories import ItemRepository, UserRepository


@dataclass(frozen=True)
class UnavailableItem:
    """Stand-in for an item that was deleted after the outfit was saved."""

    id: str

    def to_view(self) -> Dict[str, Any]:
        return {"id": self.id, "available": False}


ItemView = Union[ClothingItem, UnavailableItem]


@dataclass
class HydratedOutfit:
    outfit: Outfit
    items: List[ItemView]
    creator: Optional[User] = None

    @property
    def id(self) -> str:
        return self.outfit.id

    def to_view(self) -> Dict[str, Any]:
        view = self.outfit.to_record()
        view["like_count"] = self.outfit.like_count
        view["items"] = [
            item.to_view() if isinstance(item, UnavailableItem) else {**item.to_record(), "available": True}
            for item in self.items
        ]
        if self.creator is not None:
            view["creator"] = self.creator.public_view()
        return view


@dataclass
class HydratedComment:
    comment: Comment
    author: Optional[User]

    def to_view(self) -> Dict[str, Any]:
        view = self.comment.to_record()
        view["author"] = self.author.public_view() if self.author is not None else None
        return view


async def load_items(items: ItemRepository, item_ids: Iterable[str]) -> Dict[str, ClothingItem]:
    found: Dict[str, ClothingItem] = {}
    for item_id in dedupe(item_ids):
        item = await items.find(item_id)
        if item is not None:
            found[item_id] = item
    return found


async def load_users(users: UserRepository, user_ids: Iterable[str]) -> Dict[str, User]:
    found: Dict[str, User] = {}
    for user_id in dedupe(user_ids):
        user = await users.find(user_id)
        if user is not None:
            found[user_id] = user
    return found


async def hydrate_outfits(outfits: List[Outfit], items: ItemRepository) -> List[HydratedOutfit]:
    """Replace each outfit's item ids with the current items, order preserved."""

    if not outfits:
        return []
    item_map = await load_items(items, (item_id for outfit in outfits for item_id in outfit.item_ids))
    return [
        HydratedOutfit(
            outfit=outfit,
            items=[item_map.get(item_id) or UnavailableItem(item_id) for item_id in outfit.item_ids],
        )
        for outfit in outfits
    ]


async def attach_creators(hydrated: List[HydratedOutfit], users: UserRepository) -> List[HydratedOutfit]:
    """Set ``creator`` on each outfit, dropping outfits whose owner is gone."""

    creators = await load_users(users, (entry.outfit.user_id for entry in hydrated))
    result = []
    for entry in hydrated:
        creator = creators.get(entry.outfit.user_id)
        if creator is None:
            continue
        entry.creator = creator
        result.append(entry)
    return result


async def hydrate_comments(comments: List[Comment], users: UserRepository) -> List[HydratedComment]:
    authors = await load_users(users, (comment.user_id for comment in comments))
    return [HydratedComment(comment=comment, author=authors.get(comment.user_id)) for comment in comments]


__all__ = [
    "UnavailableItem",
    "HydratedOutfit",
    "HydratedComment",
    "load_items",
    "load_users",
    "hydrate_outfits",
    "attach_creators",
    "hydrate_comments",
]
