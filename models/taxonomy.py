"""Canonical labels shared by the wardrobe models.

Categories form a closed set: AI item analysis may suggest anything, but only
these labels are ever persisted.
"""

from enum import Enum
from typing import Dict, List

from storage.errors import ValidationFailure


class ClothingCategory(str, Enum):
    TOP = "Top"
    BOTTOM = "Bottom"
    OUTERWEAR = "Outerwear"
    FOOTWEAR = "Footwear"
    ACCESSORY = "Accessory"
    DRESS = "Dress"


ROLES: List[str] = ["user", "admin"]

_CATEGORY_LOOKUP: Dict[str, ClothingCategory] = {
    category.value.lower(): category for category in ClothingCategory
}


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a lookup key."""

    return value.strip().lower()


def validate_category(value: str) -> str:
    """Validate a category value and return its canonical label.

    Raises :class:`ValidationFailure` (a ``ValueError``) if the category is
    not part of the closed set.
    """

    if isinstance(value, ClothingCategory):
        return value.value
    category = _CATEGORY_LOOKUP.get(_normalize_key(str(value)))
    if category is None:
        allowed = [category.value for category in ClothingCategory]
        raise ValidationFailure(f"Unsupported category '{value}'. Allowed: {allowed}")
    return category.value


def validate_roles(values: List[str]) -> List[str]:
    """Deduplicate roles, reject unknown ones and default to ``user``."""

    roles: List[str] = []
    for value in values or []:
        key = _normalize_key(str(value))
        if key not in ROLES:
            raise ValidationFailure(f"Unsupported role '{value}'. Allowed: {ROLES}")
        if key not in roles:
            roles.append(key)
    return roles or ["user"]


__all__ = ["ClothingCategory", "ROLES", "validate_category", "validate_roles"]
