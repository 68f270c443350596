"""Document store interface shared by the in-memory and SQL adapters.

Collections hold JSON-like documents keyed by string id. Writes go through
``WriteBatch`` so that every mutation, single or multi-document, commits
all-or-nothing. Updates accept field transforms (``ArrayRemove``,
``ArrayUnion``, ``DELETE_FIELD``) that are resolved against the current
document at commit time.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from iplay.store.events import ChangeEvent, ChangePublisher

logger = logging.getLogger(__name__)

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "array-contains", "in"]
WriteKind = Literal["set", "update", "delete"]

DEFAULT_MAX_BATCH_WRITES = 500


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Base class for document store failures."""


class DocumentNotFoundError(StoreError):
    """An update targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"No document to update: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class BatchTooLargeError(StoreError):
    """A batch exceeded the store's write limit."""


# ---------------------------------------------------------------------------
# Field transforms
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArrayRemove:
    values: tuple[Any, ...]


@dataclass(frozen=True)
class ArrayUnion:
    values: tuple[Any, ...]


class _DeleteField:
    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


def array_remove(*values: Any) -> ArrayRemove:
    """Remove every occurrence of the values from an array field."""
    return ArrayRemove(tuple(values))


def array_union(*values: Any) -> ArrayUnion:
    """Append the values to an array field unless already present."""
    return ArrayUnion(tuple(values))


def _resolve_field(current: Any, value: Any) -> Any:
    if isinstance(value, ArrayRemove):
        existing = current if isinstance(current, list) else []
        return [item for item in existing if item not in value.values]
    if isinstance(value, ArrayUnion):
        merged = list(current) if isinstance(current, list) else []
        for item in value.values:
            if item not in merged:
                merged.append(item)
        return merged
    return copy.deepcopy(value)


def apply_update(data: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with ``fields`` (and their transforms) applied."""
    updated = copy.deepcopy(data)
    for name, value in fields.items():
        if value is DELETE_FIELD:
            updated.pop(name, None)
        else:
            updated[name] = _resolve_field(updated.get(name), value)
    return updated


def resolve_set(fields: dict[str, Any]) -> dict[str, Any]:
    """Resolve transforms for a full-document write (no prior content)."""
    return apply_update({}, fields)


# ---------------------------------------------------------------------------
# Documents and filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Document:
    """A snapshot of one stored document."""

    collection: str
    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Document body with its id, as exported by backups."""
        return {"id": self.id, **self.data}


_MISSING = object()


@dataclass(frozen=True)
class Filter:
    """A single field predicate used by ``DocumentStore.query``."""

    field: str
    op: FilterOp
    value: Any

    def matches(self, data: dict[str, Any]) -> bool:
        actual = data.get(self.field, _MISSING)
        if actual is _MISSING:
            return False
        try:
            if self.op == "==":
                return actual == self.value
            if self.op == "!=":
                return actual != self.value
            if self.op == "array-contains":
                return isinstance(actual, list) and self.value in actual
            if self.op == "in":
                return actual in self.value
            if actual is None:
                return False
            if self.op == "<":
                return actual < self.value
            if self.op == "<=":
                return actual <= self.value
            if self.op == ">":
                return actual > self.value
            if self.op == ">=":
                return actual >= self.value
        except TypeError:
            # Mismatched types never satisfy a range filter.
            return False
        raise ValueError(f"Unknown filter operator: {self.op}")


def where(field_name: str, op: FilterOp, value: Any) -> Filter:
    """Build a query filter."""
    return Filter(field_name, op, value)


def apply_filters(
    documents: Iterable[Document],
    filters: Iterable[Filter],
    limit: int | None = None,
) -> list[Document]:
    """Filter documents in id order and truncate to ``limit``."""
    filters = list(filters)
    matched = [
        doc for doc in sorted(documents, key=lambda d: d.id)
        if all(f.matches(doc.data) for f in filters)
    ]
    return matched if limit is None else matched[:limit]


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WriteOp:
    kind: WriteKind
    collection: str
    doc_id: str
    data: dict[str, Any] | None = None


@dataclass
class StagedWrite:
    """Net effect of a batch on one document."""

    collection: str
    doc_id: str
    before: dict[str, Any] | None
    after: dict[str, Any] | None

    def to_event(self) -> ChangeEvent | None:
        if self.before is None and self.after is None:
            return None
        if self.before is None:
            kind = "created"
        elif self.after is None:
            kind = "deleted"
        else:
            kind = "updated"
        return ChangeEvent(
            collection=self.collection,
            document_id=self.doc_id,
            kind=kind,
            before=self.before,
            after=self.after,
        )


class WriteBatch:
    """Accumulates writes and commits them atomically."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._ops: list[WriteOp] = []

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        self._ops.append(WriteOp("set", collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> WriteBatch:
        self._ops.append(WriteOp("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self._ops.append(WriteOp("delete", collection, doc_id))
        return self

    @property
    def ops(self) -> list[WriteOp]:
        return list(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    async def commit(self) -> list[ChangeEvent]:
        return await self._store.commit(self)


DocumentLoader = Callable[[str, str], Awaitable[dict[str, Any] | None]]


async def stage_writes(ops: list[WriteOp], load: DocumentLoader) -> list[StagedWrite]:
    """Resolve a batch against current contents without writing anything.

    Raises ``DocumentNotFoundError`` when an update targets a missing
    document, which aborts the whole batch.
    """
    staged: dict[tuple[str, str], StagedWrite] = {}
    for op in ops:
        key = (op.collection, op.doc_id)
        if key not in staged:
            original = await load(op.collection, op.doc_id)
            staged[key] = StagedWrite(op.collection, op.doc_id, original, copy.deepcopy(original))
        entry = staged[key]

        if op.kind == "set":
            entry.after = resolve_set(op.data or {})
        elif op.kind == "update":
            if entry.after is None:
                raise DocumentNotFoundError(op.collection, op.doc_id)
            entry.after = apply_update(entry.after, op.data or {})
        else:
            entry.after = None
    return list(staged.values())


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------


class DocumentStore(ABC):
    """Abstract document store with atomic batched writes."""

    def __init__(
        self,
        publisher: ChangePublisher | None = None,
        max_batch_writes: int = DEFAULT_MAX_BATCH_WRITES,
    ) -> None:
        self.publisher = publisher
        self.max_batch_writes = max_batch_writes

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document, or None if absent."""
        ...

    @abstractmethod
    async def list_documents(self, collection: str) -> list[Document]:
        """Fetch every document of a collection."""
        ...

    @abstractmethod
    async def _apply(self, ops: list[WriteOp]) -> list[StagedWrite]:
        """Apply the batch atomically and return its net effect."""
        ...

    async def query(
        self,
        collection: str,
        *filters: Filter,
        limit: int | None = None,
    ) -> list[Document]:
        """Documents of ``collection`` matching every filter, in id order."""
        documents = await self.list_documents(collection)
        return apply_filters(documents, filters, limit)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self.batch().set(collection, doc_id, data).commit()

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self.batch().update(collection, doc_id, fields).commit()

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.batch().delete(collection, doc_id).commit()

    async def commit(self, batch: WriteBatch) -> list[ChangeEvent]:
        """Commit a batch; nothing is written if any operation is invalid."""
        ops = batch.ops
        if len(ops) > self.max_batch_writes:
            raise BatchTooLargeError(
                f"Batch has {len(ops)} writes, limit is {self.max_batch_writes}"
            )
        if not ops:
            return []

        staged = await self._apply(ops)
        events = [event for event in (s.to_event() for s in staged) if event is not None]
        await self._publish(events)
        return events

    async def _publish(self, events: list[ChangeEvent]) -> None:
        if self.publisher is None:
            return
        for event in events:
            try:
                await self.publisher.publish(event)
            except Exception:
                logger.exception(
                    "Failed to publish change event %s for %s/%s",
                    event.kind, event.collection, event.document_id,
                )
