"""Single-use, time-boxed password reset tokens stored on the user record.

A user moves from no token, to an issued token, to either a consumed or an
expired token, and both of those clear the token again.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import secrets
import time
from typing import Any, Callable, Optional

from chroma_app.logging_config import get_logger, log_event
from chroma_app.observability import instrument_operation
from logic.passwords import hash_password
from logic.validation import ResetConfirmRequest, ResetRequest
from models.user import User
from storage.errors import ExpiredToken, InvalidToken
from storage.repositories import Repositories

LOGGER = get_logger(__name__)

TOKEN_EXPIRY_MINUTES = 15

# Called with (email, token); may return an awaitable.
ResetDelivery = Callable[[str, str], Any]


def log_undelivered_reset(email: str, token: str) -> None:
    """Fallback hook when no mailer is wired in: the token is not written anywhere."""

    log_event(LOGGER, logging.WARNING, "password_reset_delivery_unconfigured", email=email)


class CredentialRecoveryService:
    def __init__(
        self,
        repositories: Repositories,
        ttl_minutes: int = TOKEN_EXPIRY_MINUTES,
        clock: Callable[[], float] = time.time,
        delivery: Optional[ResetDelivery] = None,
    ) -> None:
        self.repositories = repositories
        self.ttl_seconds = ttl_minutes * 60
        self.clock = clock
        self.delivery = delivery or log_undelivered_reset

    @instrument_operation("request_password_reset", input_model=ResetRequest)
    async def request_reset(self, email: str) -> str:
        """Issue a fresh token for the account and return it for delivery.

        Any earlier token for the same account stops working.
        """

        user = await self.repositories.users.get_by_email(email)
        token = secrets.token_urlsafe(32)
        expiry = self.clock() + self.ttl_seconds

        def issue(current: User) -> User:
            current.reset_token = token
            current.reset_token_expiry = expiry
            return current

        await self.repositories.users.modify(user.id, issue)
        log_event(LOGGER, logging.INFO, "password_reset_requested", user_id=user.id, expires_at=expiry)
        return token

    async def send_reset(self, email: str) -> None:
        """Issue a token and hand it to the delivery hook instead of the caller."""

        token = await self.request_reset(email)
        outcome = self.delivery(email, token)
        if inspect.isawaitable(outcome):
            await outcome

    @instrument_operation("reset_password", input_model=ResetConfirmRequest)
    async def reset_password(self, token: str, new_password: str) -> None:
        user = await self.repositories.users.find_by_reset_token(token)
        if user is None:
            raise InvalidToken("Invalid reset token.")

        if user.reset_token_expiry is None or self.clock() > user.reset_token_expiry:

            def expire(current: User) -> User:
                if current.reset_token == token:
                    current.clear_reset_token()
                return current

            await self.repositories.users.modify(user.id, expire)
            log_event(LOGGER, logging.INFO, "password_reset_expired", user_id=user.id)
            raise ExpiredToken("Reset token has expired. Please request a new one.")

        new_hash = await asyncio.to_thread(hash_password, new_password)

        def consume(current: User) -> User:
            if current.reset_token != token:
                raise InvalidToken("Invalid reset token.")
            current.password_hash = new_hash
            current.clear_reset_token()
            return current

        await self.repositories.users.modify(user.id, consume)
        log_event(LOGGER, logging.INFO, "password_reset_completed", user_id=user.id)


__all__ = ["CredentialRecoveryService", "ResetDelivery", "TOKEN_EXPIRY_MINUTES", "log_undelivered_reset"]
