"""Aggregates shown on the admin dashboard."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from chroma_app.observability import instrument_operation
from logic.validation import TopUsersRequest
from models.user import User
from storage.repositories import Repositories

ACTIVE_WINDOW_SECONDS = 24 * 60 * 60


@dataclass
class UserMetrics:
    user: User
    wardrobe_size: int
    saved_outfits: int

    def to_view(self) -> Dict[str, object]:
        return {
            "user": self.user.public_view(),
            "wardrobe_size": self.wardrobe_size,
            "saved_outfits": self.saved_outfits,
        }


def count_active(users: List[User], now: float, window: float = ACTIVE_WINDOW_SECONDS) -> int:
    return sum(1 for user in users if user.last_login is not None and user.last_login > now - window)


def daily_logins(users: List[User], now: float, days: int = 7) -> List[Tuple[str, int]]:
    """Login counts per UTC day for the last ``days`` days, oldest first."""

    today = datetime.fromtimestamp(now, tz=timezone.utc).date()
    window = [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]
    counts: Counter = Counter()
    for user in users:
        for timestamp in user.login_history:
            counts[datetime.fromtimestamp(timestamp, tz=timezone.utc).date().isoformat()] += 1
    return [(day, counts.get(day, 0)) for day in window]


class AdminStatsService:
    def __init__(self, repositories: Repositories, clock: Callable[[], float] = time.time) -> None:
        self.repositories = repositories
        self.clock = clock

    async def dashboard_stats(self, now: Optional[float] = None) -> Dict[str, int]:
        now = self.clock() if now is None else now
        users = await self.repositories.users.get_all()
        items = await self.repositories.items.get_all()
        return {
            "total_users": len(users),
            "active_users_24h": count_active(users, now),
            "total_items": len(items),
        }

    async def login_frequency(self, now: Optional[float] = None, days: int = 7) -> List[Tuple[str, int]]:
        now = self.clock() if now is None else now
        return daily_logins(await self.repositories.users.get_all(), now, days)

    async def user_metrics(self) -> List[UserMetrics]:
        users = await self.repositories.users.get_all()
        items_by_user = Counter(item.user_id for item in await self.repositories.items.get_all())
        outfits_by_user = Counter(outfit.user_id for outfit in await self.repositories.outfits.get_all())
        return [
            UserMetrics(user=user, wardrobe_size=items_by_user[user.id], saved_outfits=outfits_by_user[user.id])
            for user in users
        ]

    @instrument_operation("top_users", input_model=TopUsersRequest)
    async def top_users(self, sort_by: str = "wardrobe_size", limit: int = 5) -> List[UserMetrics]:
        metrics = await self.user_metrics()
        ranked = sorted(metrics, key=lambda entry: getattr(entry, sort_by), reverse=True)
        return ranked[:limit]


__all__ = ["AdminStatsService", "UserMetrics", "count_active", "daily_logins"]
