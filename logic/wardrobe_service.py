"""Wardrobe, saved-outfit and comment operations.

AI output (item analyses and generated outfits) arrives here already parsed;
the only check applied to it is that categories belong to the closed set and
that an outfit only references the owner's own items.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Callable, Dict, Iterable, List

from chroma_app.logging_config import get_logger, log_event
from chroma_app.observability import instrument_operation
from logic.hydration import HydratedComment, HydratedOutfit, hydrate_comments, hydrate_outfits
from logic.validation import AddItemsRequest, CommentRequest, SaveOutfitRequest
from models.clothing_item import ClothingItem, from_analysis
from models.comment import Comment
from models.outfit import Outfit
from models.records import new_record_id
from storage.errors import ValidationFailure
from storage.repositories import Repositories

LOGGER = get_logger(__name__)

ITEM_EDITABLE_FIELDS = {"name", "category", "color", "style", "image_url", "last_worn", "purchase_date"}


class WardrobeService:
    def __init__(self, repositories: Repositories, clock: Callable[[], float] = time.time) -> None:
        self.repositories = repositories
        self.clock = clock

    # ------------------------------------------------------------------ items
    @instrument_operation("add_items", input_model=AddItemsRequest)
    async def add_items(self, user_id: str, analyses: List[Dict[str, Any]]) -> List[ClothingItem]:
        """Store a batch of analysed items; nothing is stored if one is invalid."""

        await self.repositories.users.get(user_id)
        now = self.clock()
        items = [from_analysis(user_id, dict(analysis), now=now) for analysis in analyses]
        stored = await self.repositories.items.add_many(items)
        log_event(LOGGER, logging.INFO, "items_added", user_id=user_id, count=len(stored))
        return stored

    async def add_item(self, user_id: str, analysis: Dict[str, Any]) -> ClothingItem:
        return (await self.add_items(user_id, [analysis]))[0]

    async def get_items(self, user_id: str) -> List[ClothingItem]:
        return await self.repositories.items.get_by_owner(user_id)

    @instrument_operation("update_item")
    async def update_item(self, item_id: str, changes: Dict[str, Any]) -> ClothingItem:
        unknown = set(changes) - ITEM_EDITABLE_FIELDS
        if unknown:
            raise ValidationFailure(f"Item fields not editable: {sorted(unknown)}")

        def apply(current: ClothingItem) -> ClothingItem:
            return ClothingItem.from_record({**current.to_record(), **changes})

        return await self.repositories.items.modify(item_id, apply)

    async def delete_item(self, item_id: str) -> None:
        await self.repositories.items.delete(item_id)

    @instrument_operation("delete_items")
    async def delete_items(self, item_ids: Iterable[str]) -> None:
        """All-or-nothing: an unknown id leaves every item in place."""

        await self.repositories.items.delete_many(item_ids)

    # ---------------------------------------------------------------- outfits
    @instrument_operation("save_outfit", input_model=SaveOutfitRequest)
    async def save_outfit(
        self,
        user_id: str,
        name: str,
        occasion: str,
        explanation: str,
        item_ids: List[str],
    ) -> Outfit:
        owned = {item.id for item in await self.repositories.items.get_by_owner(user_id)}
        foreign = [item_id for item_id in item_ids if item_id not in owned]
        if foreign:
            raise ValidationFailure(f"Outfit references items the user does not own: {foreign}")

        now = self.clock()
        outfit = Outfit(
            id=new_record_id(now),
            user_id=user_id,
            name=name,
            occasion=occasion,
            explanation=explanation,
            item_ids=item_ids,
            created_at=now,
        )
        return await self.repositories.outfits.add(outfit)

    async def get_saved_outfits(self, user_id: str) -> List[HydratedOutfit]:
        outfits = await self.repositories.outfits.get_by_owner(user_id)
        return await hydrate_outfits(outfits, self.repositories.items)

    async def rename_outfit(self, outfit_id: str, name: str) -> Outfit:
        return await self.repositories.outfits.modify(outfit_id, lambda outfit: dataclasses.replace(outfit, name=name))

    @instrument_operation("publish_outfit")
    async def publish_outfit(self, outfit_id: str) -> HydratedOutfit:
        outfit = await self.repositories.outfits.modify(
            outfit_id, lambda current: dataclasses.replace(current, is_public=True)
        )
        [hydrated] = await hydrate_outfits([outfit], self.repositories.items)
        return hydrated

    async def delete_outfit(self, outfit_id: str) -> None:
        await self.repositories.outfits.delete(outfit_id)

    # --------------------------------------------------------------- comments
    @instrument_operation("add_comment", input_model=CommentRequest)
    async def add_comment(self, outfit_id: str, user_id: str, text: str) -> Comment:
        await self.repositories.outfits.get(outfit_id)
        await self.repositories.users.get(user_id)
        now = self.clock()
        comment = Comment(id=new_record_id(now), outfit_id=outfit_id, user_id=user_id, text=text, created_at=now)
        return await self.repositories.comments.add(comment)

    async def get_comments(self, outfit_id: str) -> List[HydratedComment]:
        comments = await self.repositories.comments.get_by_owner(outfit_id)
        return await hydrate_comments(comments, self.repositories.users)


__all__ = ["WardrobeService"]
