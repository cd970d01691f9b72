"""
SQLite implementation of the document store.

Lightweight persistence for both logical databases using aiosqlite. All
documents live in one table keyed by ``(database_name, collection_name,
doc_id)`` with the document body stored as JSON text.

SQLite-specific adaptations:
- Datetimes are stored as TEXT (ISO 8601) and read back as strings
- Filters, updates and pipelines are evaluated in Python by
  :mod:`kolmigrate.stores.query`, so behavior matches the in-memory store
- Positional parameters (?) throughout

Suitable for local dry runs and tests; every read loads the whole
collection, which is fine at the scale of one customer's projects.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import aiosqlite

from kolmigrate.exceptions import DocumentWriteError, DuplicateKeyError
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_BATCH_SIZE,
    ATTR_DB_COLLECTION,
    ATTR_DB_NAME,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
)
from kolmigrate.serialization import json_dumps, json_loads
from kolmigrate.stores.interface import (
    DeleteResult,
    Document,
    Filter,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)
from kolmigrate.stores.query import apply_update, matches, run_pipeline

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    database_name TEXT NOT NULL,
    collection_name TEXT NOT NULL,
    doc_id TEXT,
    body TEXT NOT NULL,
    UNIQUE (database_name, collection_name, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection
    ON documents (database_name, collection_name, seq);
"""


async def initialize_schema(connection: aiosqlite.Connection) -> None:
    """
    Create the documents table if it does not exist.

    This function is idempotent - safe to call multiple times.
    """
    await connection.executescript(SCHEMA)
    await connection.commit()


def _doc_id(document: Mapping[str, Any]) -> str | None:
    document_id = document.get("id")
    return None if document_id is None else str(document_id)


class SQLiteCollection:
    """One collection of a SQLiteDocumentStore."""

    def __init__(
        self,
        connection: aiosqlite.Connection,
        database: str,
        name: str,
        lock: asyncio.Lock,
        tracer: Tracer,
    ) -> None:
        self._connection = connection
        self._database = database
        self._name = name
        self._lock = lock
        self._tracer = tracer

    @property
    def name(self) -> str:
        return self._name

    def _attributes(self, operation: str, **extra: Any) -> dict[str, Any]:
        attributes: dict[str, Any] = {
            ATTR_DB_SYSTEM: "sqlite",
            ATTR_DB_NAME: self._database,
            ATTR_DB_COLLECTION: self._name,
            ATTR_DB_OPERATION: operation,
        }
        attributes.update(extra)
        return attributes

    async def _load(self, filter: Filter | None) -> list[tuple[int, Document]]:
        cursor = await self._connection.execute(
            """
            SELECT seq, body
            FROM documents
            WHERE database_name = ? AND collection_name = ?
            ORDER BY seq
            """,
            (self._database, self._name),
        )
        rows = await cursor.fetchall()
        loaded = [(row[0], json_loads(row[1])) for row in rows]
        return [(seq, document) for seq, document in loaded if matches(document, filter)]

    async def _insert_row(self, document: Mapping[str, Any]) -> None:
        await self._connection.execute(
            """
            INSERT INTO documents (database_name, collection_name, doc_id, body)
            VALUES (?, ?, ?, ?)
            """,
            (self._database, self._name, _doc_id(document), json_dumps(dict(document))),
        )

    async def find(
        self,
        filter: Filter | None = None,
        *,
        limit: int | None = None,
    ) -> list[Document]:
        with self._tracer.span("kolmigrate.store.find", self._attributes("SELECT")):
            results = [document for _, document in await self._load(filter)]
            if limit is not None:
                results = results[:limit]
            return results

    async def find_one(self, filter: Filter | None = None) -> Document | None:
        with self._tracer.span("kolmigrate.store.find_one", self._attributes("SELECT")):
            results = await self._load(filter)
            return results[0][1] if results else None

    async def insert_one(self, document: Document) -> InsertOneResult:
        result = await self.insert_many([document])
        return InsertOneResult(inserted_id=result.inserted_ids[0])

    async def insert_many(self, documents: Sequence[Document]) -> InsertManyResult:
        """
        Insert documents in order.

        Rows inserted before a failing document are committed, matching an
        ordered bulk insert in a document database.

        Raises:
            DuplicateKeyError: If a document's ``id`` already exists
            DocumentWriteError: If SQLite rejects a row for another reason
        """
        with self._tracer.span(
            "kolmigrate.store.insert_many",
            self._attributes("INSERT", **{ATTR_BATCH_SIZE: len(documents)}),
        ):
            inserted_ids: list[Any] = []
            async with self._lock:
                try:
                    for document in documents:
                        await self._insert_row(document)
                        inserted_ids.append(document.get("id"))
                except aiosqlite.IntegrityError as e:
                    await self._connection.commit()
                    failed = documents[len(inserted_ids)]
                    raise DuplicateKeyError(
                        failed.get("id"),
                        inserted_count=len(inserted_ids),
                        database=self._database,
                        collection=self._name,
                    ) from e
                except aiosqlite.Error as e:
                    await self._connection.commit()
                    raise DocumentWriteError(
                        f"Insert into {self._database}.{self._name} failed: {e}",
                        inserted_count=len(inserted_ids),
                        database=self._database,
                        collection=self._name,
                    ) from e
                await self._connection.commit()

            logger.debug(
                "Inserted %d documents into %s.%s",
                len(inserted_ids),
                self._database,
                self._name,
            )
            return InsertManyResult(inserted_ids=inserted_ids)

    async def update_one(self, filter: Filter, update: Mapping[str, Any]) -> UpdateResult:
        with self._tracer.span("kolmigrate.store.update_one", self._attributes("UPDATE")):
            async with self._lock:
                candidates = await self._load(filter)
                if not candidates:
                    return UpdateResult(matched_count=0, modified_count=0)

                seq, document = candidates[0]
                updated = apply_update(document, update)
                if updated == document:
                    return UpdateResult(matched_count=1, modified_count=0)

                await self._connection.execute(
                    "UPDATE documents SET doc_id = ?, body = ? WHERE seq = ?",
                    (_doc_id(updated), json_dumps(updated), seq),
                )
                await self._connection.commit()
                return UpdateResult(matched_count=1, modified_count=1)

    async def _delete(self, filter: Filter, *, first_only: bool) -> DeleteResult:
        async with self._lock:
            candidates = await self._load(filter)
            if first_only:
                candidates = candidates[:1]
            if not candidates:
                return DeleteResult(deleted_count=0)

            await self._connection.executemany(
                "DELETE FROM documents WHERE seq = ?",
                [(seq,) for seq, _ in candidates],
            )
            await self._connection.commit()
            return DeleteResult(deleted_count=len(candidates))

    async def delete_one(self, filter: Filter) -> DeleteResult:
        with self._tracer.span("kolmigrate.store.delete_one", self._attributes("DELETE")):
            return await self._delete(filter, first_only=True)

    async def delete_many(self, filter: Filter) -> DeleteResult:
        with self._tracer.span("kolmigrate.store.delete_many", self._attributes("DELETE")):
            return await self._delete(filter, first_only=False)

    async def count_documents(self, filter: Filter | None = None) -> int:
        with self._tracer.span("kolmigrate.store.count", self._attributes("SELECT")):
            return len(await self._load(filter))

    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]]) -> list[Document]:
        with self._tracer.span("kolmigrate.store.aggregate", self._attributes("SELECT")):
            documents = [document for _, document in await self._load(None)]
            return run_pipeline(documents, pipeline)


class SQLiteDocumentStore:
    """
    SQLite implementation of DocumentStore.

    Several stores (one per logical database) can share one connection; pass
    the same ``lock`` to all of them so writes never interleave.

    Example:
        >>> async with aiosqlite.connect("migration.db") as db:
        ...     await initialize_schema(db)
        ...     source = SQLiteDocumentStore(db, "kol_data")
        ...     await source.collection("projects").find({"id": "p1"})

    Note:
        - The schema must exist; call ``initialize_schema`` first
        - Datetime values come back as ISO 8601 strings
    """

    def __init__(
        self,
        connection: aiosqlite.Connection,
        name: str,
        *,
        lock: asyncio.Lock | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the SQLite store.

        Args:
            connection: aiosqlite database connection
            name: Logical database name
            lock: Write lock shared with other stores on the same connection
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._connection = connection
        self._name = name
        self._lock = lock or asyncio.Lock()
        self._collections: dict[str, SQLiteCollection] = {}

    @property
    def name(self) -> str:
        return self._name

    def collection(self, name: str) -> SQLiteCollection:
        collection = self._collections.get(name)
        if collection is None:
            collection = SQLiteCollection(
                self._connection, self._name, name, self._lock, self._tracer
            )
            self._collections[name] = collection
        return collection


__all__ = [
    "SCHEMA",
    "initialize_schema",
    "SQLiteCollection",
    "SQLiteDocumentStore",
]
