"""SQLAlchemy-backed document store.

Every collection lives in the shared ``documents`` table. A batch is staged
and written inside one database transaction, so it commits all-or-nothing.
Rows touched by a batch are read ``FOR UPDATE``; field transforms such as
``array_remove`` are computed from the committed value and concurrent
batches on one document serialize.

Queries run the full filter set in Python. On Postgres, string ``==`` and
``array-contains`` filters are also pushed down as JSONB containment so the
GIN index on ``data`` narrows the rows loaded. Datetimes are tagged on the
way into JSON and restored on the way out so range filters compare real
datetimes.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, Select, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iplay.db.models import DocumentRecord
from iplay.store.base import (
    Document,
    DocumentStore,
    Filter,
    StagedWrite,
    WriteOp,
    apply_filters,
    stage_writes,
)

_DATETIME_TAG = "$datetime"


def encode_value(value: Any) -> Any:
    """Convert a document value into JSON-safe form."""
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    """Inverse of ``encode_value``."""
    if isinstance(value, dict):
        if len(value) == 1 and _DATETIME_TAG in value:
            return datetime.fromisoformat(value[_DATETIME_TAG])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def select_collection(collection: str) -> Select[tuple[DocumentRecord]]:
    return (
        select(DocumentRecord)
        .where(DocumentRecord.collection == collection)
        .order_by(DocumentRecord.id)
    )


def select_for_write(collection: str, doc_id: str) -> Select[tuple[DocumentRecord]]:
    """Row-locking read used inside write transactions."""
    return (
        select(DocumentRecord)
        .where(DocumentRecord.collection == collection, DocumentRecord.id == doc_id)
        .with_for_update()
    )


def containment_clauses(filters: Iterable[Filter]) -> list[ColumnElement[bool]]:
    """JSONB ``@>`` predicates for the filters the GIN index can answer.

    Only string values qualify; every match is re-checked in Python.
    """
    data = type_coerce(DocumentRecord.data, JSONB)
    clauses: list[ColumnElement[bool]] = []
    for f in filters:
        if not isinstance(f.value, str):
            continue
        if f.op == "==":
            clauses.append(data.contains({f.field: f.value}))
        elif f.op == "array-contains":
            clauses.append(data.contains({f.field: [f.value]}))
    return clauses


class SqlDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *args: Any,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._session_factory = session_factory

    async def get(self, collection: str, doc_id: str) -> Document | None:
        async with self._session_factory() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                return None
            return Document(collection, doc_id, decode_value(record.data))

    async def list_documents(self, collection: str) -> list[Document]:
        return await self._load_collection(select_collection(collection))

    async def query(
        self,
        collection: str,
        *filters: Filter,
        limit: int | None = None,
    ) -> list[Document]:
        stmt = select_collection(collection)
        if self._is_postgres():
            clauses = containment_clauses(filters)
            if clauses:
                stmt = stmt.where(*clauses)
        documents = await self._load_collection(stmt)
        return apply_filters(documents, filters, limit)

    def _is_postgres(self) -> bool:
        return self._session_factory.kw["bind"].dialect.name == "postgresql"

    async def _load_collection(self, stmt: Select[tuple[DocumentRecord]]) -> list[Document]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                Document(record.collection, record.id, decode_value(record.data))
                for record in result.scalars().all()
            ]

    async def _apply(self, ops: list[WriteOp]) -> list[StagedWrite]:
        async with self._session_factory() as session, session.begin():
            records: dict[tuple[str, str], DocumentRecord | None] = {}

            async def load(collection: str, doc_id: str) -> dict[str, Any] | None:
                result = await session.execute(select_for_write(collection, doc_id))
                record = result.scalar_one_or_none()
                records[(collection, doc_id)] = record
                return decode_value(record.data) if record is not None else None

            staged = await stage_writes(ops, load)

            for write in staged:
                record = records.get((write.collection, write.doc_id))
                if write.after is None:
                    if record is not None:
                        await session.delete(record)
                elif record is None:
                    session.add(DocumentRecord(
                        collection=write.collection,
                        id=write.doc_id,
                        data=encode_value(write.after),
                    ))
                else:
                    record.data = encode_value(write.after)
            return staged
