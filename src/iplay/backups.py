"""Weekly backup: one JSON array snapshot per collection.

Layout: ``backups/{YYYY-MM-DD}/{collection}.json``
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any

from iplay.storage import Bucket
from iplay.store import Document, DocumentStore

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def backup_path(day: date, collection: str) -> str:
    return f"backups/{day.isoformat()}/{collection}.json"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_documents(documents: Iterable[Document]) -> bytes:
    """Pretty-printed JSON array of ``{"id": ..., **data}`` objects."""
    payload = [doc.to_dict() for doc in documents]
    return json.dumps(payload, indent=2, ensure_ascii=False, default=_json_default).encode("utf-8")


async def run_backup(
    store: DocumentStore,
    bucket: Bucket,
    collections: Iterable[str],
    *,
    now: datetime | None = None,
) -> dict[str, int]:
    """Snapshot each collection into the bucket. Returns document counts per collection."""
    if now is None:
        now = datetime.now(timezone.utc)
    day = now.date()

    counts: dict[str, int] = {}
    for collection in collections:
        documents = await store.list_documents(collection)
        await bucket.save(backup_path(day, collection), serialize_documents(documents), JSON_CONTENT_TYPE)
        counts[collection] = len(documents)
        logger.info("Backed up %s: %d documents", collection, len(documents))

    logger.info("Backup complete")
    return counts
