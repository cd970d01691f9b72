"""
Document stores for the source and target databases.

Implementations:
- InMemoryDocumentStore: for tests and dry runs
- SQLiteDocumentStore: aiosqlite-backed, one table of JSON documents
"""

from kolmigrate.stores.in_memory import InMemoryCollection, InMemoryDocumentStore
from kolmigrate.stores.interface import (
    DeleteResult,
    Document,
    DocumentCollection,
    DocumentStore,
    Filter,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)
from kolmigrate.stores.query import apply_update, get_path, matches, run_pipeline
from kolmigrate.stores.sqlite import SQLiteCollection, SQLiteDocumentStore, initialize_schema

__all__ = [
    # Protocols and results
    "Document",
    "Filter",
    "DocumentCollection",
    "DocumentStore",
    "InsertOneResult",
    "InsertManyResult",
    "UpdateResult",
    "DeleteResult",
    # Implementations
    "InMemoryCollection",
    "InMemoryDocumentStore",
    "SQLiteCollection",
    "SQLiteDocumentStore",
    "initialize_schema",
    # Query evaluation
    "get_path",
    "matches",
    "apply_update",
    "run_pipeline",
]
