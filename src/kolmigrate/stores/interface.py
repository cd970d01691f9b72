"""
Document store protocols.

The migration pipeline talks to two logical document databases through these
protocols. They model the small MongoDB-style surface the pipeline uses:
filter documents, ``$set`` updates, and a handful of aggregation stages
(see :mod:`kolmigrate.stores.query`).

Implementations:
- InMemoryDocumentStore: dictionaries guarded by an asyncio.Lock
- SQLiteDocumentStore: JSON bodies in one SQLite table via aiosqlite
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]
Filter = Mapping[str, Any]


@dataclass(frozen=True)
class InsertOneResult:
    """Result of inserting a single document."""

    inserted_id: Any


@dataclass(frozen=True)
class InsertManyResult:
    """
    Result of inserting a batch of documents.

    Attributes:
        inserted_ids: The ``id`` of each inserted document, in order.
    """

    inserted_ids: list[Any] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted_ids)


@dataclass(frozen=True)
class UpdateResult:
    """
    Result of an update.

    Attributes:
        matched_count: Documents that matched the filter.
        modified_count: Documents whose content actually changed.
    """

    matched_count: int
    modified_count: int


@dataclass(frozen=True)
class DeleteResult:
    """Result of a delete."""

    deleted_count: int


@runtime_checkable
class DocumentCollection(Protocol):
    """
    Protocol for one collection of documents.

    Documents are plain dicts. The ``id`` field, when present, is unique
    within the collection. Every method returns copies: mutating a returned
    document never changes stored data.
    """

    @property
    def name(self) -> str:
        """Collection name."""
        ...

    async def find(
        self,
        filter: Filter | None = None,
        *,
        limit: int | None = None,
    ) -> list[Document]:
        """
        Find documents matching a filter, in insertion order.

        Args:
            filter: MongoDB-style filter; None matches everything
            limit: Maximum number of documents to return

        Returns:
            Matching documents
        """
        ...

    async def find_one(self, filter: Filter | None = None) -> Document | None:
        """Return the first matching document, or None."""
        ...

    async def insert_one(self, document: Document) -> InsertOneResult:
        """
        Insert a document.

        Raises:
            DuplicateKeyError: If a document with the same ``id`` exists
        """
        ...

    async def insert_many(self, documents: Sequence[Document]) -> InsertManyResult:
        """
        Insert documents in order, stopping at the first failure.

        Documents before the failing one stay committed; the raised error
        reports how many.

        Raises:
            DuplicateKeyError: If a document's ``id`` already exists
        """
        ...

    async def update_one(self, filter: Filter, update: Mapping[str, Any]) -> UpdateResult:
        """Apply an update document (``$set``/``$unset``) to the first match."""
        ...

    async def delete_one(self, filter: Filter) -> DeleteResult:
        """Delete the first matching document."""
        ...

    async def delete_many(self, filter: Filter) -> DeleteResult:
        """Delete every matching document."""
        ...

    async def count_documents(self, filter: Filter | None = None) -> int:
        """Count documents matching a filter."""
        ...

    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]]) -> list[Document]:
        """Run an aggregation pipeline over the collection."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for one logical database.

    Example:
        >>> store = InMemoryDocumentStore("kol_data")
        >>> projects = store.collection("projects")
        >>> await projects.insert_one({"id": "p1", "name": "Spring Launch"})
    """

    @property
    def name(self) -> str:
        """Logical database name."""
        ...

    def collection(self, name: str) -> DocumentCollection:
        """Get a collection by name; collections exist implicitly."""
        ...


__all__ = [
    "Document",
    "Filter",
    "InsertOneResult",
    "InsertManyResult",
    "UpdateResult",
    "DeleteResult",
    "DocumentCollection",
    "DocumentStore",
]
