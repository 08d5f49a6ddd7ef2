"""Like and collect toggles plus the collected-outfits view."""

from __future__ import annotations

from typing import List

from chroma_app.observability import instrument_operation
from logic.hydration import HydratedOutfit, attach_creators, hydrate_outfits
from logic.validation import ToggleRequest
from models.outfit import Outfit
from models.user import User
from storage.repositories import Repositories


def toggle_membership(values: List[str], value: str) -> List[str]:
    """Remove ``value`` if present, append it otherwise."""

    if value in values:
        return [existing for existing in values if existing != value]
    return values + [value]


class EngagementService:
    """Set-membership toggles on outfits and users.

    Each toggle is a read-modify-write done through ``Repository.modify``, so
    the read and the write of one toggle happen in a single engine unit of
    work and two interleaved toggles cannot overwrite each other.
    """

    def __init__(self, repositories: Repositories) -> None:
        self.repositories = repositories

    @instrument_operation("toggle_like", input_model=ToggleRequest)
    async def toggle_like(self, outfit_id: str, user_id: str) -> Outfit:
        def flip(outfit: Outfit) -> Outfit:
            outfit.likes = toggle_membership(outfit.likes, user_id)
            return outfit

        return await self.repositories.outfits.modify(outfit_id, flip)

    @instrument_operation("toggle_collect", input_model=ToggleRequest)
    async def toggle_collect(self, outfit_id: str, user_id: str) -> User:
        user = await self.repositories.users.get(user_id)
        if outfit_id not in user.collected_outfit_ids:
            # Collecting needs a live outfit; un-collecting a deleted one is fine.
            await self.repositories.outfits.get(outfit_id)

        def flip(current: User) -> User:
            current.collected_outfit_ids = toggle_membership(current.collected_outfit_ids, outfit_id)
            return current

        return await self.repositories.users.modify(user_id, flip)

    @instrument_operation("get_collected_outfits")
    async def get_collected_outfits(self, user_id: str) -> List[HydratedOutfit]:
        user = await self.repositories.users.get(user_id)
        outfits = []
        for outfit_id in user.collected_outfit_ids:
            outfit = await self.repositories.outfits.find(outfit_id)
            if outfit is not None:
                outfits.append(outfit)
        hydrated = await hydrate_outfits(outfits, self.repositories.items)
        return await attach_creators(hydrated, self.repositories.users)


__all__ = ["EngagementService", "toggle_membership"]
