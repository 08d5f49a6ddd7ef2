"""Collection and index declarations plus the ordered schema migrations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

USERS = "users"
ITEMS = "items"
OUTFITS = "saved_outfits"
COMMENTS = "comments"


@dataclass(frozen=True)
class IndexSpec:
    """Secondary index over one top-level field of a record."""

    name: str
    key_path: str
    unique: bool = False


@dataclass(frozen=True)
class CollectionSpec:
    """Named record collection addressed by ``key_path``."""

    name: str
    key_path: str = "id"


@dataclass(frozen=True)
class Migration:
    """One additive schema step.

    Applying a migration twice must leave the store unchanged, so every step
    only ever creates collections or indexes that do not exist yet.
    """

    version: int
    collections: Tuple[CollectionSpec, ...] = ()
    indexes: Tuple[Tuple[str, IndexSpec], ...] = ()
    description: str = ""


MIGRATIONS: List[Migration] = [
    Migration(
        version=1,
        collections=(
            CollectionSpec(USERS),
            CollectionSpec(ITEMS),
            CollectionSpec(OUTFITS),
        ),
        indexes=(
            (USERS, IndexSpec("email", "email", unique=True)),
            (ITEMS, IndexSpec("user_id", "user_id")),
            (OUTFITS, IndexSpec("user_id", "user_id")),
        ),
        description="users, wardrobe items and saved outfits",
    ),
    Migration(
        version=2,
        collections=(CollectionSpec(COMMENTS),),
        indexes=(
            (OUTFITS, IndexSpec("is_public", "is_public")),
            (COMMENTS, IndexSpec("outfit_id", "outfit_id")),
        ),
        description="community feed and comments",
    ),
]


def ordered(migrations: Sequence[Migration]) -> List[Migration]:
    """Return migrations sorted by version, rejecting duplicate versions."""

    result = sorted(migrations, key=lambda migration: migration.version)
    versions = [migration.version for migration in result]
    if len(set(versions)) != len(versions):
        raise ValueError(f"Duplicate migration versions: {versions}")
    return result


SCHEMA_VERSION = max(migration.version for migration in MIGRATIONS)


__all__ = [
    "USERS",
    "ITEMS",
    "OUTFITS",
    "COMMENTS",
    "IndexSpec",
    "CollectionSpec",
    "Migration",
    "MIGRATIONS",
    "SCHEMA_VERSION",
    "ordered",
]
