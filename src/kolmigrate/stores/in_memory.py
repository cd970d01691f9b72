"""
In-memory implementation of the document store.

Provides a simple, fast store for testing and development. All data is
stored in memory and lost when the process terminates.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping, Sequence
from typing import Any

from kolmigrate.exceptions import DuplicateKeyError
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_BATCH_SIZE,
    ATTR_DB_COLLECTION,
    ATTR_DB_NAME,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
)
from kolmigrate.stores.interface import (
    DeleteResult,
    Document,
    Filter,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)
from kolmigrate.stores.query import apply_update, matches, run_pipeline


class InMemoryCollection:
    """
    One collection of an InMemoryDocumentStore.

    Documents are kept in insertion order and deep-copied on the way in and
    on the way out, so callers never share state with the store.
    """

    def __init__(self, database: str, name: str, lock: asyncio.Lock, tracer: Tracer) -> None:
        self._database = database
        self._name = name
        self._lock = lock
        self._tracer = tracer
        self._documents: list[Document] = []

    @property
    def name(self) -> str:
        return self._name

    def _attributes(self, operation: str, **extra: Any) -> dict[str, Any]:
        attributes: dict[str, Any] = {
            ATTR_DB_SYSTEM: "memory",
            ATTR_DB_NAME: self._database,
            ATTR_DB_COLLECTION: self._name,
            ATTR_DB_OPERATION: operation,
        }
        attributes.update(extra)
        return attributes

    def _has_id(self, document_id: Any) -> bool:
        return any(existing.get("id") == document_id for existing in self._documents)

    def _insert_locked(self, document: Mapping[str, Any], inserted_count: int) -> Any:
        document_id = document.get("id")
        if document_id is not None and self._has_id(document_id):
            raise DuplicateKeyError(
                document_id,
                inserted_count=inserted_count,
                database=self._database,
                collection=self._name,
            )
        self._documents.append(copy.deepcopy(dict(document)))
        return document_id

    async def find(
        self,
        filter: Filter | None = None,
        *,
        limit: int | None = None,
    ) -> list[Document]:
        with self._tracer.span("kolmigrate.store.find", self._attributes("find")):
            async with self._lock:
                results = [
                    copy.deepcopy(document)
                    for document in self._documents
                    if matches(document, filter)
                ]
            if limit is not None:
                results = results[:limit]
            return results

    async def find_one(self, filter: Filter | None = None) -> Document | None:
        with self._tracer.span("kolmigrate.store.find_one", self._attributes("find_one")):
            async with self._lock:
                for document in self._documents:
                    if matches(document, filter):
                        return copy.deepcopy(document)
            return None

    async def insert_one(self, document: Document) -> InsertOneResult:
        with self._tracer.span("kolmigrate.store.insert_one", self._attributes("insert_one")):
            async with self._lock:
                return InsertOneResult(inserted_id=self._insert_locked(document, 0))

    async def insert_many(self, documents: Sequence[Document]) -> InsertManyResult:
        with self._tracer.span(
            "kolmigrate.store.insert_many",
            self._attributes("insert_many", **{ATTR_BATCH_SIZE: len(documents)}),
        ):
            inserted_ids: list[Any] = []
            async with self._lock:
                for document in documents:
                    inserted_ids.append(self._insert_locked(document, len(inserted_ids)))
            return InsertManyResult(inserted_ids=inserted_ids)

    async def update_one(self, filter: Filter, update: Mapping[str, Any]) -> UpdateResult:
        with self._tracer.span("kolmigrate.store.update_one", self._attributes("update_one")):
            async with self._lock:
                for index, document in enumerate(self._documents):
                    if not matches(document, filter):
                        continue
                    updated = apply_update(document, update)
                    if updated == document:
                        return UpdateResult(matched_count=1, modified_count=0)
                    self._documents[index] = updated
                    return UpdateResult(matched_count=1, modified_count=1)
            return UpdateResult(matched_count=0, modified_count=0)

    async def delete_one(self, filter: Filter) -> DeleteResult:
        with self._tracer.span("kolmigrate.store.delete_one", self._attributes("delete_one")):
            async with self._lock:
                for index, document in enumerate(self._documents):
                    if matches(document, filter):
                        del self._documents[index]
                        return DeleteResult(deleted_count=1)
            return DeleteResult(deleted_count=0)

    async def delete_many(self, filter: Filter) -> DeleteResult:
        with self._tracer.span("kolmigrate.store.delete_many", self._attributes("delete_many")):
            async with self._lock:
                kept = [document for document in self._documents if not matches(document, filter)]
                deleted = len(self._documents) - len(kept)
                self._documents = kept
            return DeleteResult(deleted_count=deleted)

    async def count_documents(self, filter: Filter | None = None) -> int:
        with self._tracer.span("kolmigrate.store.count", self._attributes("count_documents")):
            async with self._lock:
                return sum(1 for document in self._documents if matches(document, filter))

    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]]) -> list[Document]:
        with self._tracer.span("kolmigrate.store.aggregate", self._attributes("aggregate")):
            async with self._lock:
                snapshot = list(self._documents)
            return run_pipeline(snapshot, pipeline)

    def __len__(self) -> int:
        return len(self._documents)


class InMemoryDocumentStore:
    """
    In-memory implementation of DocumentStore for testing.

    Collections are created on first access. A single asyncio.Lock guards
    all collections of the store.

    Example:
        >>> source = InMemoryDocumentStore("kol_data")
        >>> await source.collection("projects").insert_one({"id": "p1", "name": "Spring Launch"})
        >>> await source.collection("projects").count_documents({})
        1

    Note:
        - All data is lost when the store instance is garbage collected
        - Use `clear()` for test teardown
    """

    def __init__(
        self,
        name: str,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the in-memory store.

        Args:
            name: Logical database name
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._name = name
        self._lock = asyncio.Lock()
        self._collections: dict[str, InMemoryCollection] = {}

    @property
    def name(self) -> str:
        return self._name

    def collection(self, name: str) -> InMemoryCollection:
        collection = self._collections.get(name)
        if collection is None:
            collection = InMemoryCollection(self._name, name, self._lock, self._tracer)
            self._collections[name] = collection
        return collection

    def collection_names(self) -> list[str]:
        """Names of the collections accessed so far."""
        return list(self._collections)

    async def clear(self) -> None:
        """Drop every collection."""
        async with self._lock:
            for collection in self._collections.values():
                collection._documents.clear()


__all__ = [
    "InMemoryCollection",
    "InMemoryDocumentStore",
]
