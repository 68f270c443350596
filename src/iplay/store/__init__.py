"""Document store accessor: interface, adapters and change events."""

from iplay.store.base import (
    DELETE_FIELD,
    BatchTooLargeError,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Filter,
    StoreError,
    WriteBatch,
    array_remove,
    array_union,
    where,
)
from iplay.store.events import ChangeEvent, ChangePublisher, RedisChangePublisher
from iplay.store.memory import InMemoryDocumentStore
from iplay.store.sql import SqlDocumentStore

__all__ = [
    "DELETE_FIELD",
    "BatchTooLargeError",
    "ChangeEvent",
    "ChangePublisher",
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "Filter",
    "InMemoryDocumentStore",
    "RedisChangePublisher",
    "SqlDocumentStore",
    "StoreError",
    "WriteBatch",
    "array_remove",
    "array_union",
    "where",
]
