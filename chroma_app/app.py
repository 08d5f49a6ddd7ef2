"""Application bootstrap: one store handle shared by every service."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from chroma_app.config import AppConfig
from chroma_app.logging_config import configure_logging, get_logger, log_event
from logic.accounts import AccountService
from logic.achievements import AchievementService
from logic.admin_stats import AdminStatsService
from logic.credential_recovery import CredentialRecoveryService, ResetDelivery
from logic.engagement import EngagementService
from logic.feed_ranking import FeedService
from logic.wardrobe_service import WardrobeService
from memory.session_holder import SessionHolder, build_session_holder
from storage.bootstrap import open_store
from storage.object_store import ObjectStore, build_store
from storage.repositories import Repositories

LOGGER = get_logger(__name__)


class ChromaApp:
    """Wires the object store, repositories, services and session holder.

    The store is injected rather than global: tests pass an
    ``InMemoryObjectStore`` and a fixed clock, production reads
    :class:`AppConfig`. ``reset_delivery`` receives ``(email, token)`` for
    every password reset request (a mailer in production).
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: ObjectStore | None = None,
        session: SessionHolder | None = None,
        clock: Callable[[], float] = time.time,
        reset_delivery: ResetDelivery | None = None,
    ) -> None:
        self.config = config or AppConfig.from_env()
        configure_logging(self.config.log_level)

        self.store = store or build_store(self.config.store_backend, self.config.store_path)
        self.session = session or build_session_holder(self.config.store_backend, self.config.session_path)
        self.repositories = Repositories(self.store)

        self.accounts = AccountService(self.repositories, self.session, clock=clock)
        self.wardrobe = WardrobeService(self.repositories, clock=clock)
        self.feed = FeedService(self.repositories, page_size=self.config.feed_page_size, clock=clock)
        self.engagement = EngagementService(self.repositories)
        self.recovery = CredentialRecoveryService(
            self.repositories,
            ttl_minutes=self.config.reset_token_ttl_minutes,
            clock=clock,
            delivery=reset_delivery,
        )
        self.achievements = AchievementService(self.repositories)
        self.admin = AdminStatsService(self.repositories, clock=clock)

    async def open(self) -> "ChromaApp":
        """Open the store (migrations and admin seed). Failure is fatal."""

        try:
            await open_store(
                self.store,
                admin_email=self.config.admin_email,
                admin_password=self.config.admin_password,
            )
        except Exception:
            log_event(LOGGER, logging.CRITICAL, "store_open_failed", backend=self.store.backend_name, exc_info=True)
            raise
        return self

    async def close(self) -> None:
        await self.store.close()

    @property
    def is_ready(self) -> bool:
        return self.store.is_open

    def current_user(self) -> Optional[Dict[str, Any]]:
        """Session snapshot, available even while the store is still opening."""

        return self.session.get()


__all__ = ["ChromaApp"]
