"""Threshold rules that award badges at most once each."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from chroma_app.logging_config import get_logger, log_event
from chroma_app.observability import instrument_operation
from logic.validation import AchievementCheckRequest
from models.achievements import ACHIEVEMENTS_BY_ID, RULES, AchievementRule
from models.user import User
from storage.repositories import Repositories

LOGGER = get_logger(__name__)


def evaluate_achievements(
    held: Iterable[str],
    counters: Mapping[str, Any],
    rules: Sequence[AchievementRule] = RULES,
) -> List[str]:
    """Return ids earned by ``counters`` that are not already in ``held``.

    Counters that are missing or ``None`` are skipped. Rules are independent,
    so the order of the result follows the rule table only.
    """

    already = set(held)
    earned: List[str] = []
    for rule in rules:
        value = counters.get(rule.counter)
        if value is None:
            continue
        if int(value) >= rule.threshold and rule.achievement_id not in already:
            earned.append(rule.achievement_id)
            already.add(rule.achievement_id)
    return earned


class AchievementService:
    def __init__(self, repositories: Repositories) -> None:
        self.repositories = repositories

    @instrument_operation("check_and_award_achievements", input_model=AchievementCheckRequest)
    async def check_and_award(
        self,
        user_id: str,
        wardrobe_size: Optional[int] = None,
        saved_outfits_count: Optional[int] = None,
        has_shared: Optional[bool] = None,
    ) -> List[str]:
        """Persist newly earned achievements and return their ids."""

        counters = {
            "wardrobe_size": wardrobe_size,
            "saved_outfits_count": saved_outfits_count,
            "has_shared": has_shared,
        }
        user = await self.repositories.users.get(user_id)
        if not evaluate_achievements(user.achievements, counters):
            return []

        awarded: List[str] = []

        def award(current: User) -> User:
            new_ids = evaluate_achievements(current.achievements, counters)
            current.achievements = current.achievements + new_ids
            awarded.extend(new_ids)
            return current

        await self.repositories.users.modify(user_id, award)
        for achievement_id in awarded:
            log_event(
                LOGGER,
                logging.INFO,
                "achievement_unlocked",
                user_id=user_id,
                achievement=achievement_id,
                title=ACHIEVEMENTS_BY_ID[achievement_id].title,
            )
        return awarded

    async def check_from_store(self, user_id: str) -> List[str]:
        """Count the user's items, outfits and shares, then award."""

        items = await self.repositories.items.get_by_owner(user_id)
        outfits = await self.repositories.outfits.get_by_owner(user_id)
        return await self.check_and_award(
            user_id,
            wardrobe_size=len(items),
            saved_outfits_count=len(outfits),
            has_shared=any(outfit.is_public for outfit in outfits),
        )


__all__ = ["AchievementService", "evaluate_achievements"]
