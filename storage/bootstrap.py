"""Open a store: run migrations, then seed the administrative account."""

from __future__ import annotations

import asyncio
import logging

from chroma_app.logging_config import get_logger, log_event
from logic.passwords import hash_password
from models.user import User
from storage.object_store import ObjectStore
from storage.schema import USERS

LOGGER = get_logger(__name__)

ADMIN_USER_ID = "admin-001"


async def seed_admin_user(store: ObjectStore, email: str, password: str) -> bool:
    """Insert the admin account when the user collection is empty."""

    if await store.get_all(USERS):
        return False
    password_hash = await asyncio.to_thread(hash_password, password)
    admin = User(
        id=ADMIN_USER_ID,
        name="Admin",
        email=email,
        password_hash=password_hash,
        roles=["user", "admin"],
    )
    await store.add(USERS, admin.to_record())
    log_event(LOGGER, logging.INFO, "admin_user_seeded", user_id=ADMIN_USER_ID)
    return True


async def open_store(store: ObjectStore, *, admin_email: str, admin_password: str) -> ObjectStore:
    await store.open()
    await seed_admin_user(store, admin_email, admin_password)
    return store


__all__ = ["ADMIN_USER_ID", "open_store", "seed_admin_user"]
