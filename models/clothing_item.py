"""Wardrobe item data model and helpers."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from models.records import from_record, new_record_id, require_text
from models.taxonomy import ClothingCategory, validate_category

DEFAULT_ITEM_NAME = "New Item"
UNKNOWN = "Unknown"


@dataclass
class ClothingItem:
    """Represents an item in the user's wardrobe."""

    id: str
    user_id: str
    name: str
    category: str
    color: str = UNKNOWN
    style: str = UNKNOWN
    image_url: str = ""
    purchase_date: float = field(default_factory=time.time)
    last_worn: Optional[float] = None

    def __post_init__(self) -> None:
        self.id = require_text(self.id, "id")
        self.user_id = require_text(self.user_id, "user_id")
        self.name = require_text(self.name, "name")
        self.category = validate_category(self.category)
        self.color = str(self.color or UNKNOWN).strip() or UNKNOWN
        self.style = str(self.style or UNKNOWN).strip() or UNKNOWN
        self.image_url = str(self.image_url or "")
        self.purchase_date = float(self.purchase_date)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ClothingItem":
        return from_record(cls, record)


def from_analysis(user_id: str, analysis: Dict[str, Any], now: Optional[float] = None) -> ClothingItem:
    """Build an item from loose AI analysis output.

    Missing fields fall back to defaults; a category outside the closed set is
    rejected rather than guessed.
    """

    timestamp = time.time() if now is None else now
    return ClothingItem(
        id=str(analysis.get("id") or new_record_id(timestamp)),
        user_id=user_id,
        name=str(analysis.get("name") or DEFAULT_ITEM_NAME),
        category=str(analysis.get("category") or ClothingCategory.TOP.value),
        color=str(analysis.get("color") or UNKNOWN),
        style=str(analysis.get("style") or UNKNOWN),
        image_url=str(analysis.get("image_url") or ""),
        purchase_date=float(analysis.get("purchase_date") or timestamp),
        last_worn=analysis.get("last_worn"),
    )


__all__ = ["ClothingItem", "from_analysis", "DEFAULT_ITEM_NAME"]
