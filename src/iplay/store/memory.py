"""In-process document store for tests and local development."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from iplay.store.base import Document, DocumentStore, StagedWrite, WriteOp, stage_writes


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Batches are staged first, then applied under a lock."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def get(self, collection: str, doc_id: str) -> Document | None:
        data = self._collections.get(collection, {}).get(doc_id)
        if data is None:
            return None
        return Document(collection, doc_id, copy.deepcopy(data))

    async def list_documents(self, collection: str) -> list[Document]:
        return [
            Document(collection, doc_id, copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
        ]

    async def _load(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def _apply(self, ops: list[WriteOp]) -> list[StagedWrite]:
        async with self._lock:
            staged = await stage_writes(ops, self._load)
            for write in staged:
                documents = self._collections.setdefault(write.collection, {})
                if write.after is None:
                    documents.pop(write.doc_id, None)
                else:
                    documents[write.doc_id] = copy.deepcopy(write.after)
            return staged

    def seed(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Insert a document directly, bypassing batches and change events."""
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def dump(self, collection: str) -> dict[str, dict[str, Any]]:
        """Copy of a collection's raw contents, keyed by id."""
        return copy.deepcopy(self._collections.get(collection, {}))
