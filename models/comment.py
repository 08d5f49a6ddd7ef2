"""Community comment model."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from models.records import from_record, require_text


@dataclass
class Comment:
    id: str
    outfit_id: str
    user_id: str
    text: str
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.id = require_text(self.id, "id")
        self.outfit_id = require_text(self.outfit_id, "outfit_id")
        self.user_id = require_text(self.user_id, "user_id")
        self.text = require_text(self.text, "text")
        self.created_at = float(self.created_at)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Comment":
        return from_record(cls, record)


__all__ = ["Comment"]
