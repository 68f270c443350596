"""Routes document change events to their trigger handlers.

Handler failures are logged and swallowed: one bad event must not stop the
consumer, and nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from iplay import collection_names as cn
from iplay.certificates import issue_certificates
from iplay.cleanup import cleanup_deleted_classroom, cleanup_deleted_user
from iplay.storage import Bucket
from iplay.store import ChangeEvent, DocumentStore
from iplay.store.events import stream_name

logger = logging.getLogger(__name__)

Handler = Callable[[ChangeEvent], Awaitable[Any]]


class TriggerDispatcher:
    """Maps ``(collection, kind)`` pairs to handlers bound to explicit handles."""

    def __init__(self, store: DocumentStore, bucket: Bucket, *, verify_base_url: str) -> None:
        self.store = store
        self.bucket = bucket
        self.verify_base_url = verify_base_url
        self._routes: dict[tuple[str, str], Handler] = {
            (cn.USERS, "created"): self.on_user_created,
            (cn.USERS, "deleted"): self.on_user_deleted,
            (cn.CLASSROOMS, "deleted"): self.on_classroom_deleted,
        }

    @property
    def streams(self) -> list[str]:
        """Stream keys the consumer must read."""
        return [stream_name(collection, kind) for collection, kind in self._routes]

    async def dispatch(self, event: ChangeEvent) -> bool:
        """Run the handler for ``event``. Returns False if no handler matched."""
        handler = self._routes.get((event.collection, event.kind))
        if handler is None:
            return False
        try:
            await handler(event)
        except Exception:
            logger.exception(
                "Trigger failed for %s/%s (%s)",
                event.collection, event.document_id, event.kind,
            )
        return True

    async def on_user_created(self, event: ChangeEvent) -> list[str]:
        return await issue_certificates(
            self.store,
            self.bucket,
            event.document_id,
            event.after or {},
            verify_base_url=self.verify_base_url,
        )

    async def on_user_deleted(self, event: ChangeEvent) -> Any:
        return await cleanup_deleted_user(self.store, event.document_id)

    async def on_classroom_deleted(self, event: ChangeEvent) -> Any:
        return await cleanup_deleted_classroom(self.store, event.document_id, event.before)
