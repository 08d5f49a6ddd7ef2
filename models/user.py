"""User account model."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from models.records import dedupe, from_record, require_text
from models.taxonomy import validate_roles
from storage.errors import ValidationFailure

LOGIN_HISTORY_LIMIT = 100
PRIVATE_FIELDS = ("password_hash", "reset_token", "reset_token_expiry")
AVATAR_URL_TEMPLATE = "https://api.dicebear.com/8.x/initials/svg?seed={seed}"


def normalize_email(value: str) -> str:
    email = str(value or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationFailure(f"Invalid email address '{value}'")
    return email


def default_avatar_url(name: str) -> str:
    return AVATAR_URL_TEMPLATE.format(seed=name.replace(" ", "%20"))


@dataclass
class User:
    """An account, its social state and its credential-recovery slot."""

    id: str
    name: str
    email: str
    password_hash: str = ""
    avatar_url: str = ""
    roles: List[str] = field(default_factory=lambda: ["user"])
    try_on_image_url: Optional[str] = None
    style_dna: Optional[Dict[str, Any]] = None
    last_login: Optional[float] = None
    login_history: List[float] = field(default_factory=list)
    login_streak: int = 0
    achievements: List[str] = field(default_factory=list)
    collected_outfit_ids: List[str] = field(default_factory=list)
    reset_token: Optional[str] = None
    reset_token_expiry: Optional[float] = None

    def __post_init__(self) -> None:
        self.id = require_text(self.id, "id")
        self.name = require_text(self.name, "name")
        self.email = normalize_email(self.email)
        self.avatar_url = self.avatar_url or default_avatar_url(self.name)
        self.roles = validate_roles(self.roles)
        self.login_history = [float(value) for value in self.login_history or []][-LOGIN_HISTORY_LIMIT:]
        self.login_streak = max(0, int(self.login_streak or 0))
        self.achievements = dedupe(self.achievements)
        self.collected_outfit_ids = dedupe(self.collected_outfit_ids)

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def record_login(self, timestamp: float) -> None:
        """Append a login, keeping only the most recent entries."""

        self.last_login = timestamp
        self.login_history = (self.login_history + [timestamp])[-LOGIN_HISTORY_LIMIT:]

    def clear_reset_token(self) -> None:
        self.reset_token = None
        self.reset_token_expiry = None

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    def public_view(self) -> Dict[str, Any]:
        """Record without the credential or reset-token fields."""

        record = self.to_record()
        for key in PRIVATE_FIELDS:
            record.pop(key, None)
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        return from_record(cls, record)


__all__ = [
    "User",
    "LOGIN_HISTORY_LIMIT",
    "PRIVATE_FIELDS",
    "default_avatar_url",
    "normalize_email",
]
