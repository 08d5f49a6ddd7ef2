"""Achievement catalogue and the threshold rules that unlock each badge."""

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str


@dataclass(frozen=True)
class AchievementRule:
    """Unlock ``achievement_id`` once ``counter`` reaches ``threshold``.

    Boolean counters use a threshold of ``1`` so ``True`` satisfies them.
    """

    counter: str
    threshold: int
    achievement_id: str


ACHIEVEMENTS: List[Achievement] = [
    Achievement(
        "novice_collector",
        "Novice Collector",
        "You've started your collection by adding 10 items to your wardrobe.",
    ),
    Achievement("fashionista", "Fashionista", "Your wardrobe has grown to an impressive 50 items."),
    Achievement("style_savant", "Style Savant", "A true connoisseur! You have cataloged over 100 items."),
    Achievement("outfit_architect", "Outfit Architect", "You've saved your first 10 custom outfits."),
    Achievement(
        "social_butterfly",
        "Social Butterfly",
        "You've shared your first outfit with the community.",
    ),
]

ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {achievement.id: achievement for achievement in ACHIEVEMENTS}

RULES: List[AchievementRule] = [
    AchievementRule("wardrobe_size", 10, "novice_collector"),
    AchievementRule("wardrobe_size", 50, "fashionista"),
    AchievementRule("wardrobe_size", 100, "style_savant"),
    AchievementRule("saved_outfits_count", 10, "outfit_architect"),
    AchievementRule("has_shared", 1, "social_butterfly"),
]


__all__ = ["Achievement", "AchievementRule", "ACHIEVEMENTS", "ACHIEVEMENTS_BY_ID", "RULES"]
