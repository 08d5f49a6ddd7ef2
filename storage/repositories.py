"""Typed repositories over the object store, one per entity."""

from __future__ import annotations

from typing import Callable, Generic, Iterable, List, Optional, Type, TypeVar

from models.clothing_item import ClothingItem
from models.comment import Comment
from models.outfit import Outfit
from models.records import dedupe
from models.user import User, normalize_email
from storage.errors import NotFound
from storage.object_store import BatchOperation, ObjectStore, Record
from storage.schema import COMMENTS, ITEMS, OUTFITS, USERS

T = TypeVar("T", User, ClothingItem, Outfit, Comment)


class Repository(Generic[T]):
    """CRUD and owner lookups for one collection.

    Repositories never look at other collections; joins live in
    :mod:`logic.hydration`.
    """

    collection: str = ""
    model: Type[T]
    owner_index: Optional[str] = "user_id"

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def _to_model(self, record: Record) -> T:
        return self.model.from_record(record)

    async def get(self, entity_id: str) -> T:
        return self._to_model(await self.store.get(self.collection, entity_id))

    async def find(self, entity_id: str) -> Optional[T]:
        try:
            return await self.get(entity_id)
        except NotFound:
            return None

    async def get_all(self) -> List[T]:
        return [self._to_model(record) for record in await self.store.get_all(self.collection)]

    async def get_by_owner(self, owner_id: str) -> List[T]:
        if self.owner_index is None:
            raise NotImplementedError(f"{self.collection} has no owner index")
        records = await self.store.get_all_by_index(self.collection, self.owner_index, owner_id)
        return [self._to_model(record) for record in records]

    async def add(self, entity: T) -> T:
        return self._to_model(await self.store.add(self.collection, entity.to_record()))

    async def add_many(self, entities: Iterable[T]) -> List[T]:
        entities = list(entities)
        await self.store.apply_batch([BatchOperation.add(self.collection, entity.to_record()) for entity in entities])
        return entities

    async def update(self, entity: T) -> T:
        """Replace an existing record; ``NotFound`` if it was never stored."""

        record = entity.to_record()
        return self._to_model(await self.store.update(self.collection, entity.id, lambda _: record))

    async def modify(self, entity_id: str, mutator: Callable[[T], Optional[T]]) -> T:
        """Read-modify-write one entity as a single unit of work."""

        def apply(record: Record) -> Record:
            entity = self._to_model(record)
            result = mutator(entity)
            return (result if result is not None else entity).to_record()

        return self._to_model(await self.store.update(self.collection, entity_id, apply))

    async def delete(self, entity_id: str) -> None:
        await self.store.delete(self.collection, entity_id)

    async def delete_many(self, entity_ids: Iterable[str]) -> None:
        """Delete every id or none: one missing id aborts the whole batch."""

        await self.store.apply_batch(
            [BatchOperation.delete(self.collection, entity_id) for entity_id in dedupe(entity_ids)]
        )


class UserRepository(Repository[User]):
    collection = USERS
    model = User
    owner_index = None

    async def get_by_email(self, email: str) -> User:
        records = await self.store.get_all_by_index(self.collection, "email", normalize_email(email))
        if not records:
            raise NotFound("No account found with this email address.")
        return self._to_model(records[0])

    async def find_by_reset_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        for user in await self.get_all():
            if user.reset_token == token:
                return user
        return None


class ItemRepository(Repository[ClothingItem]):
    collection = ITEMS
    model = ClothingItem


class OutfitRepository(Repository[Outfit]):
    collection = OUTFITS
    model = Outfit

    async def get_public(self) -> List[Outfit]:
        records = await self.store.get_all_by_index(self.collection, "is_public", True)
        return [self._to_model(record) for record in records]


class CommentRepository(Repository[Comment]):
    collection = COMMENTS
    model = Comment
    owner_index = "outfit_id"

    async def get_by_owner(self, owner_id: str) -> List[Comment]:
        comments = await super().get_by_owner(owner_id)
        return sorted(comments, key=lambda comment: comment.created_at)


class Repositories:
    """The four repositories bound to one store handle."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store
        self.users = UserRepository(store)
        self.items = ItemRepository(store)
        self.outfits = OutfitRepository(store)
        self.comments = CommentRepository(store)


__all__ = [
    "Repository",
    "UserRepository",
    "ItemRepository",
    "OutfitRepository",
    "CommentRepository",
    "Repositories",
]
