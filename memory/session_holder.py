"""Synchronous slot holding the signed-in user's last known snapshot.

The holder lives outside the object store so a caller can render the
signed-in user before the store has finished opening.
"""
from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from chroma_app.logging_config import get_logger, log_event
from models.user import User

LOGGER = get_logger(__name__)


def snapshot(user: User) -> Dict[str, Any]:
    """User record without the credential or reset-token fields."""

    return user.public_view()


class SessionHolder:
    """Interface for the current-session slot."""

    def get(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, user: User) -> Dict[str, Any]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    @property
    def user_id(self) -> Optional[str]:
        current = self.get()
        return current.get("id") if current else None

    def refresh(self, user: User) -> bool:
        """Replace the snapshot if it belongs to ``user``."""

        if self.user_id != user.id:
            return False
        self.set(user)
        return True


class InMemorySessionHolder(SessionHolder):
    def __init__(self) -> None:
        self._current: Optional[Dict[str, Any]] = None

    def get(self) -> Optional[Dict[str, Any]]:
        return dict(self._current) if self._current else None

    def set(self, user: User) -> Dict[str, Any]:
        self._current = snapshot(user)
        return dict(self._current)

    def clear(self) -> None:
        self._current = None


class JSONFileSessionHolder(SessionHolder):
    """JSON-file-backed holder suitable for local runs."""

    def __init__(self, path: str | Path = "data/session.json") -> None:
        self.path = Path(path)

    def get(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError):
            log_event(LOGGER, logging.WARNING, "session_unreadable", path=str(self.path))
            return None
        user = payload.get("user") if isinstance(payload, dict) else None
        return user if isinstance(user, dict) else None

    def set(self, user: User) -> Dict[str, Any]:
        current = snapshot(user)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"user": current, "saved_at": time.time()}, indent=2))
        return current

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def build_session_holder(backend: str, path: str | Path | None = None) -> SessionHolder:
    if backend == "memory":
        return InMemorySessionHolder()
    return JSONFileSessionHolder(path or "data/session.json")


__all__ = [
    "SessionHolder",
    "InMemorySessionHolder",
    "JSONFileSessionHolder",
    "build_session_holder",
    "snapshot",
]
