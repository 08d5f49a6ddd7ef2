"""Model package exports."""

from models.achievements import ACHIEVEMENTS, ACHIEVEMENTS_BY_ID, Achievement, AchievementRule
from models.clothing_item import ClothingItem, from_analysis
from models.comment import Comment
from models.outfit import Outfit
from models.taxonomy import ClothingCategory, validate_category
from models.user import User

__all__ = [
    "ACHIEVEMENTS",
    "ACHIEVEMENTS_BY_ID",
    "Achievement",
    "AchievementRule",
    "ClothingCategory",
    "ClothingItem",
    "Comment",
    "Outfit",
    "User",
    "from_analysis",
    "validate_category",
]
