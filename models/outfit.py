"""Saved and published outfit model."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from models.records import dedupe, from_record, require_text


@dataclass
class Outfit:
    """An ordered set of item references owned by one user.

    ``item_ids`` are weak references: deleting an item never touches the
    outfits that mention it.
    """

    id: str
    user_id: str
    name: str
    occasion: str = ""
    explanation: str = ""
    item_ids: List[str] = field(default_factory=list)
    is_public: bool = False
    likes: List[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.id = require_text(self.id, "id")
        self.user_id = require_text(self.user_id, "user_id")
        self.name = require_text(self.name, "name")
        self.occasion = str(self.occasion or "")
        self.explanation = str(self.explanation or "")
        self.item_ids = dedupe(str(item_id) for item_id in self.item_ids or [])
        self.is_public = bool(self.is_public)
        self.likes = dedupe(self.likes)
        self.created_at = float(self.created_at)

    @property
    def like_count(self) -> int:
        return len(self.likes)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Outfit":
        return from_record(cls, record)


__all__ = ["Outfit"]
