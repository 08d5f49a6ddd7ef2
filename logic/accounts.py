"""Sign-up, login bookkeeping and profile updates."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from chroma_app.observability import instrument_operation
from logic.passwords import hash_password, verify_password
from logic.validation import LoginRequest, SignUpRequest
from memory.session_holder import SessionHolder
from models.records import new_record_id
from models.user import User
from storage.errors import InvalidCredentials, NotFound, ValidationFailure
from storage.repositories import Repositories

PROFILE_FIELDS = {"name", "avatar_url", "try_on_image_url", "style_dna"}


def _utc_day(timestamp: float):
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()


def next_login_streak(last_login: Optional[float], streak: int, now: float) -> int:
    """Streak after a login at ``now``.

    A login on the day after the previous one extends the streak, a second
    login on the same day keeps it, anything else starts over at one.
    """

    if last_login is None:
        return 1
    today = _utc_day(now)
    previous = _utc_day(last_login)
    if previous == today:
        return max(streak, 1)
    if previous == today - timedelta(days=1):
        return streak + 1
    return 1


class AccountService:
    def __init__(
        self,
        repositories: Repositories,
        session: SessionHolder,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.repositories = repositories
        self.session = session
        self.clock = clock

    @instrument_operation("sign_up", input_model=SignUpRequest)
    async def sign_up(self, name: str, email: str, password: str) -> User:
        password_hash = await asyncio.to_thread(hash_password, password)
        user = User(
            id=new_record_id(self.clock()),
            name=name,
            email=email,
            password_hash=password_hash,
            roles=["user"],
        )
        return await self.repositories.users.add(user)

    @instrument_operation("login", input_model=LoginRequest)
    async def login(self, email: str, password: str) -> User:
        try:
            user = await self.repositories.users.get_by_email(email)
        except (NotFound, ValidationFailure):
            raise InvalidCredentials("Invalid email or password.") from None
        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            raise InvalidCredentials("Invalid email or password.")

        now = self.clock()

        def stamp(current: User) -> User:
            current.login_streak = next_login_streak(current.last_login, current.login_streak, now)
            current.record_login(now)
            return current

        updated = await self.repositories.users.modify(user.id, stamp)
        self.session.set(updated)
        return updated

    async def logout(self) -> None:
        self.session.clear()

    def current_user(self) -> Optional[Dict[str, Any]]:
        """Last signed-in user snapshot; readable before the store opens."""

        return self.session.get()

    async def get_profile(self, user_id: str) -> User:
        return await self.repositories.users.get(user_id)

    @instrument_operation("update_profile")
    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> User:
        """Apply profile edits; credentials and social state are not editable here."""

        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValidationFailure(f"Fields not editable through the profile: {sorted(unknown)}")

        def apply(current: User) -> User:
            merged = {**current.to_record(), **changes}
            return User.from_record(merged)

        saved = await self.repositories.users.modify(user_id, apply)
        self.session.refresh(saved)
        return saved


__all__ = ["AccountService", "next_login_streak"]
