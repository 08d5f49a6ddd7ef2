"""Object store engine: named record collections with secondary indexes.

Two backends share one contract. :class:`SQLiteObjectStore` keeps one table
per collection on local disk and :class:`InMemoryObjectStore` keeps plain
dictionaries, which makes it the fake used by tests. Every data operation is a
coroutine but runs on the event-loop thread without suspending, so a single
operation (including :meth:`ObjectStore.update`) is never interleaved with
another one.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from chroma_app.logging_config import get_logger, log_event
from storage.errors import Conflict, NotFound, StorageUnavailable, StoreError, ValidationFailure
from storage.schema import MIGRATIONS, CollectionSpec, IndexSpec, Migration, ordered

LOGGER = get_logger(__name__)

Record = Dict[str, Any]
Mutator = Callable[[Record], Record]

_BATCH_KINDS = {"add", "put", "delete"}


def index_value(value: Any) -> Any:
    """Normalise a field value into the form stored in an index."""

    if isinstance(value, bool):
        return int(value)
    if value is None or isinstance(value, (int, float, str)):
        return value
    return json.dumps(value, sort_keys=True)


@dataclass(frozen=True)
class BatchOperation:
    """A single-record mutation, applied alone or as part of a batch."""

    kind: str
    collection: str
    record: Optional[Record] = None
    key: Optional[str] = None

    @classmethod
    def add(cls, collection: str, record: Record) -> "BatchOperation":
        return cls("add", collection, record=record)

    @classmethod
    def put(cls, collection: str, record: Record) -> "BatchOperation":
        return cls("put", collection, record=record)

    @classmethod
    def delete(cls, collection: str, key: str) -> "BatchOperation":
        return cls("delete", collection, key=key)


class ObjectStore:
    """Engine interface plus the validation shared by every backend."""

    backend_name = "abstract"

    def __init__(self, migrations: Sequence[Migration] | None = None) -> None:
        self.migrations = ordered(migrations if migrations is not None else MIGRATIONS)
        self._collections: Dict[str, CollectionSpec] = {}
        self._indexes: Dict[str, Dict[str, IndexSpec]] = {}
        self._opened = False

    # ------------------------------------------------------------------ setup
    @property
    def is_open(self) -> bool:
        return self._opened

    @property
    def schema_version(self) -> int:
        return self._read_version()

    async def open(self) -> None:
        """Run pending migrations in version order and mark the store usable."""

        if self._opened:
            return
        current = self._read_version()
        for migration in self.migrations:
            self._register(migration)
            if migration.version > current:
                self._apply_migration(migration)
                log_event(
                    LOGGER,
                    logging.INFO,
                    "migration_applied",
                    backend=self.backend_name,
                    version=migration.version,
                    description=migration.description,
                )
        self._opened = True
        log_event(
            LOGGER,
            logging.INFO,
            "store_opened",
            backend=self.backend_name,
            schema_version=self._read_version(),
            collections=sorted(self._collections),
        )

    async def close(self) -> None:
        self._opened = False

    def _register(self, migration: Migration) -> None:
        for spec in migration.collections:
            self._collections[spec.name] = spec
            self._indexes.setdefault(spec.name, {})
        for collection, index in migration.indexes:
            if collection not in self._collections:
                raise StoreError(f"Index '{index.name}' declared on unknown collection '{collection}'")
            self._indexes[collection][index.name] = index

    # ------------------------------------------------------------------- reads
    async def get(self, collection: str, key: str) -> Record:
        self._check_collection(collection)
        record = self._get(collection, key)
        if record is None:
            raise NotFound(f"{collection}/{key} does not exist")
        return record

    async def get_all(self, collection: str) -> List[Record]:
        self._check_collection(collection)
        return self._get_all(collection)

    async def get_all_by_index(self, collection: str, index: str, value: Any) -> List[Record]:
        self._check_collection(collection)
        spec = self._indexes[collection].get(index)
        if spec is None:
            raise StoreError(f"Collection '{collection}' has no index '{index}'")
        return self._get_all_by_index(collection, spec, index_value(value))

    # ---------------------------------------------------------------- mutations
    async def add(self, collection: str, record: Record) -> Record:
        await self.apply_batch([BatchOperation.add(collection, record)])
        return copy.deepcopy(record)

    async def put(self, collection: str, record: Record) -> Record:
        await self.apply_batch([BatchOperation.put(collection, record)])
        return copy.deepcopy(record)

    async def delete(self, collection: str, key: str) -> None:
        await self.apply_batch([BatchOperation.delete(collection, key)])

    async def update(self, collection: str, key: str, mutator: Mutator) -> Record:
        """Read, transform and write back one record as a single unit of work."""

        spec = self._check_collection(collection)

        def checked(record: Record) -> Record:
            updated = mutator(record)
            if not isinstance(updated, dict) or updated.get(spec.key_path) != key:
                raise ValidationFailure(f"Update of {collection}/{key} must keep its primary key")
            return updated

        return self._update(collection, key, checked)

    async def apply_batch(self, operations: Sequence[BatchOperation]) -> None:
        """Apply every operation or none of them."""

        prepared = [self._prepare(operation) for operation in operations]
        if not prepared:
            return
        self._apply_batch(prepared)

    # ----------------------------------------------------------------- helpers
    def _check_collection(self, collection: str) -> CollectionSpec:
        if not self._opened:
            raise StorageUnavailable("Object store used before open()")
        spec = self._collections.get(collection)
        if spec is None:
            raise StoreError(f"Unknown collection '{collection}'")
        return spec

    def _key_of(self, collection: str, record: Record) -> str:
        key = record.get(self._collections[collection].key_path)
        if not isinstance(key, str) or not key:
            raise ValidationFailure(f"Record for '{collection}' is missing its primary key")
        return key

    def _prepare(self, operation: BatchOperation) -> BatchOperation:
        self._check_collection(operation.collection)
        if operation.kind not in _BATCH_KINDS:
            raise StoreError(f"Unsupported batch operation '{operation.kind}'")
        if operation.kind == "delete":
            if not operation.key:
                raise ValidationFailure("Delete requires a key")
            return operation
        if not isinstance(operation.record, dict):
            raise ValidationFailure(f"{operation.kind} requires a record")
        record = copy.deepcopy(operation.record)
        return BatchOperation(operation.kind, operation.collection, record=record, key=self._key_of(operation.collection, record))

    # ---------------------------------------------------------- backend hooks
    def _read_version(self) -> int:
        raise NotImplementedError

    def _apply_migration(self, migration: Migration) -> None:
        raise NotImplementedError

    def _get(self, collection: str, key: str) -> Optional[Record]:
        raise NotImplementedError

    def _get_all(self, collection: str) -> List[Record]:
        raise NotImplementedError

    def _get_all_by_index(self, collection: str, index: IndexSpec, value: Any) -> List[Record]:
        raise NotImplementedError

    def _apply_batch(self, operations: List[BatchOperation]) -> None:
        raise NotImplementedError

    def _update(self, collection: str, key: str, mutator: Mutator) -> Record:
        raise NotImplementedError


class SQLiteObjectStore(ObjectStore):
    """Local SQLite-backed engine; one table per collection."""

    backend_name = "sqlite"

    def __init__(self, database_path: str | Path = "data/chroma.db", migrations: Sequence[Migration] | None = None) -> None:
        super().__init__(migrations)
        self.database_path = Path(database_path)

    @staticmethod
    def _table(collection: str) -> str:
        return f'"{collection}"'

    @staticmethod
    def _column(index: IndexSpec) -> str:
        return f'"ix_{index.name}"'

    def _connect(self) -> sqlite3.Connection:
        try:
            if self.database_path.parent and not self.database_path.parent.exists():
                self.database_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.database_path, isolation_level=None)
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailable(f"Cannot open database at {self.database_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    @contextlib.contextmanager
    def _reader(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageUnavailable(str(exc)) from exc
        finally:
            conn.close()

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise Conflict(str(exc)) from exc
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.rollback()
            raise StorageUnavailable(str(exc)) from exc
        except BaseException:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()

    def _read_version(self) -> int:
        with self._reader() as conn:
            row = conn.execute("PRAGMA user_version").fetchone()
        return int(row[0]) if row else 0

    def _apply_migration(self, migration: Migration) -> None:
        with self._transaction() as conn:
            for spec in migration.collections:
                conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {self._table(spec.name)} ("
                    "pk TEXT PRIMARY KEY NOT NULL, body TEXT NOT NULL)"
                )
            for collection, index in migration.indexes:
                table = self._table(collection)
                column = self._column(index)
                existing = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
                if column.strip('"') not in existing:
                    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column}")
                for row in conn.execute(f"SELECT pk, body FROM {table}").fetchall():
                    value = index_value(json.loads(row["body"]).get(index.key_path))
                    conn.execute(f"UPDATE {table} SET {column} = ? WHERE pk = ?", (value, row["pk"]))
                unique = "UNIQUE " if index.unique else ""
                conn.execute(
                    f'CREATE {unique}INDEX IF NOT EXISTS "{collection}__{index.name}" ON {table} ({column})'
                )
            conn.execute(f"PRAGMA user_version = {int(migration.version)}")

    def _get(self, collection: str, key: str) -> Optional[Record]:
        with self._reader() as conn:
            row = conn.execute(f"SELECT body FROM {self._table(collection)} WHERE pk = ?", (key,)).fetchone()
        return json.loads(row["body"]) if row else None

    def _get_all(self, collection: str) -> List[Record]:
        with self._reader() as conn:
            rows = conn.execute(f"SELECT body FROM {self._table(collection)} ORDER BY rowid").fetchall()
        return [json.loads(row["body"]) for row in rows]

    def _get_all_by_index(self, collection: str, index: IndexSpec, value: Any) -> List[Record]:
        with self._reader() as conn:
            rows = conn.execute(
                f"SELECT body FROM {self._table(collection)} WHERE {self._column(index)} IS ? ORDER BY rowid",
                (value,),
            ).fetchall()
        return [json.loads(row["body"]) for row in rows]

    def _write(self, conn: sqlite3.Connection, operation: BatchOperation) -> None:
        table = self._table(operation.collection)
        if operation.kind == "delete":
            cursor = conn.execute(f"DELETE FROM {table} WHERE pk = ?", (operation.key,))
            if cursor.rowcount == 0:
                raise NotFound(f"{operation.collection}/{operation.key} does not exist")
            return

        record = operation.record or {}
        indexes = list(self._indexes.get(operation.collection, {}).values())
        columns = ["pk", "body"] + [self._column(index) for index in indexes]
        values = [operation.key, json.dumps(record)] + [index_value(record.get(index.key_path)) for index in indexes]
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        if operation.kind == "put":
            assignments = ", ".join(f"{column} = excluded.{column}" for column in columns[1:])
            sql += f" ON CONFLICT(pk) DO UPDATE SET {assignments}"
        conn.execute(sql, values)

    def _apply_batch(self, operations: List[BatchOperation]) -> None:
        with self._transaction() as conn:
            for operation in operations:
                self._write(conn, operation)

    def _update(self, collection: str, key: str, mutator: Mutator) -> Record:
        with self._transaction() as conn:
            row = conn.execute(f"SELECT body FROM {self._table(collection)} WHERE pk = ?", (key,)).fetchone()
            if row is None:
                raise NotFound(f"{collection}/{key} does not exist")
            updated = mutator(json.loads(row["body"]))
            self._write(conn, BatchOperation("put", collection, record=updated, key=key))
        return updated


class InMemoryObjectStore(ObjectStore):
    """Dictionary-backed engine with the same contract as the SQLite one."""

    backend_name = "memory"

    def __init__(self, migrations: Sequence[Migration] | None = None) -> None:
        super().__init__(migrations)
        self._data: Dict[str, Dict[str, Record]] = {}
        self._version = 0

    def _read_version(self) -> int:
        return self._version

    def _apply_migration(self, migration: Migration) -> None:
        for spec in migration.collections:
            self._data.setdefault(spec.name, {})
        self._version = migration.version

    def _get(self, collection: str, key: str) -> Optional[Record]:
        record = self._data[collection].get(key)
        return copy.deepcopy(record) if record is not None else None

    def _get_all(self, collection: str) -> List[Record]:
        return [copy.deepcopy(record) for record in self._data[collection].values()]

    def _get_all_by_index(self, collection: str, index: IndexSpec, value: Any) -> List[Record]:
        return [
            copy.deepcopy(record)
            for record in self._data[collection].values()
            if index_value(record.get(index.key_path)) == value
        ]

    def _check_unique(self, records: Dict[str, Record], collection: str, key: str, record: Record) -> None:
        for index in self._indexes.get(collection, {}).values():
            if not index.unique:
                continue
            value = index_value(record.get(index.key_path))
            if value is None:
                continue
            for other_key, other in records.items():
                if other_key != key and index_value(other.get(index.key_path)) == value:
                    raise Conflict(f"{collection}.{index.name} already holds {value!r}")

    def _apply(self, data: Dict[str, Dict[str, Record]], operation: BatchOperation) -> None:
        records = data[operation.collection]
        key = operation.key or ""
        if operation.kind == "delete":
            if key not in records:
                raise NotFound(f"{operation.collection}/{key} does not exist")
            del records[key]
            return
        if operation.kind == "add" and key in records:
            raise Conflict(f"{operation.collection}/{key} already exists")
        record = operation.record or {}
        self._check_unique(records, operation.collection, key, record)
        records[key] = copy.deepcopy(record)

    def _apply_batch(self, operations: List[BatchOperation]) -> None:
        # Stored records are never mutated in place, so copying each
        # collection's mapping is enough to stage the batch.
        staged = {name: dict(records) for name, records in self._data.items()}
        for operation in operations:
            self._apply(staged, operation)
        self._data = staged

    def _update(self, collection: str, key: str, mutator: Mutator) -> Record:
        current = self._data[collection].get(key)
        if current is None:
            raise NotFound(f"{collection}/{key} does not exist")
        updated = mutator(copy.deepcopy(current))
        self._apply_batch([BatchOperation("put", collection, record=copy.deepcopy(updated), key=key)])
        return copy.deepcopy(updated)


def build_store(backend: str, database_path: str | Path | None = None) -> ObjectStore:
    """Return the engine selected by configuration."""

    if backend == "memory":
        return InMemoryObjectStore()
    if backend == "sqlite":
        return SQLiteObjectStore(database_path or "data/chroma.db")
    raise ValueError(f"Unsupported store backend '{backend}'")


__all__ = [
    "BatchOperation",
    "ObjectStore",
    "SQLiteObjectStore",
    "InMemoryObjectStore",
    "build_store",
    "index_value",
]
