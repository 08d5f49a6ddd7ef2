"""Deterministic ranking and pagination for the community feed."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from chroma_app.observability import instrument_operation
from logic.hydration import HydratedOutfit, hydrate_outfits, load_users
from logic.validation import FeedRequest
from models.outfit import Outfit
from storage.errors import ValidationFailure
from storage.repositories import Repositories

LIKE_WEIGHT = 2
SECONDS_PER_DAY = 86400
DEFAULT_PAGE_SIZE = 9

T = TypeVar("T")


def age_in_days(outfit: Outfit, now: float) -> float:
    return max(0.0, now - outfit.created_at) / SECONDS_PER_DAY


def score_outfit(outfit: Outfit, now: float) -> float:
    """Each like is worth as much as two days of freshness."""

    return outfit.like_count * LIKE_WEIGHT - age_in_days(outfit, now)


def rank_outfits(outfits: Sequence[Outfit], now: float) -> List[Outfit]:
    """Sort by score, highest first; equal scores put the newer id first."""

    return sorted(outfits, key=lambda outfit: (score_outfit(outfit, now), outfit.id), reverse=True)


def paginate(ranked: Sequence[T], page: int, page_size: int) -> Tuple[List[T], bool]:
    """Return the 1-based ``page`` slice and whether more entries follow it."""

    if page < 1 or page_size < 1:
        raise ValidationFailure(f"Invalid page {page} / page size {page_size}")
    start = (page - 1) * page_size
    end = page * page_size
    return list(ranked[start:end]), len(ranked) > end


@dataclass
class FeedPage:
    outfits: List[HydratedOutfit]
    page: int
    page_size: int
    total: int
    has_more: bool

    def to_view(self) -> Dict[str, Any]:
        return {
            "outfits": [entry.to_view() for entry in self.outfits],
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "has_more": self.has_more,
        }


class FeedService:
    """Serves published outfits as fixed-size, score-ordered pages."""

    def __init__(
        self,
        repositories: Repositories,
        page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.repositories = repositories
        self.page_size = page_size
        self.clock = clock

    @instrument_operation("get_public_outfits", input_model=FeedRequest)
    async def get_public_outfits(self, page: int = 1, page_size: Optional[int] = None) -> FeedPage:
        size = page_size or self.page_size
        now = self.clock()
        candidates = await self.repositories.outfits.get_public()
        creators = await load_users(self.repositories.users, (outfit.user_id for outfit in candidates))
        eligible = [outfit for outfit in candidates if outfit.user_id in creators]

        window, has_more = paginate(rank_outfits(eligible, now), page, size)
        hydrated = await hydrate_outfits(window, self.repositories.items)
        for entry in hydrated:
            entry.creator = creators[entry.outfit.user_id]
        return FeedPage(outfits=hydrated, page=page, page_size=size, total=len(eligible), has_more=has_more)


__all__ = [
    "LIKE_WEIGHT",
    "DEFAULT_PAGE_SIZE",
    "FeedPage",
    "FeedService",
    "age_in_days",
    "paginate",
    "rank_outfits",
    "score_outfit",
]
