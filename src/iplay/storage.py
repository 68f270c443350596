"""
Object storage with provider abstraction.

Objects are addressed by bucket-relative path and reported as
``gs://{bucket}/{path}`` URIs. The SQL provider keeps blobs in the
``blobs`` table; the in-memory provider serves tests and local runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iplay.db.models import BlobRecord

logger = structlog.get_logger()


class ObjectNotFoundError(KeyError):
    """No object stored at the requested path."""


@dataclass(frozen=True)
class StoredObject:
    path: str
    data: bytes
    content_type: str


class Bucket(ABC):
    """Abstract base class for object storage providers."""

    def __init__(self, name: str) -> None:
        self.name = name

    def uri(self, path: str) -> str:
        return f"gs://{self.name}/{path}"

    @abstractmethod
    async def save(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` at ``path`` (overwriting). Returns the object URI."""
        ...

    @abstractmethod
    async def read(self, path: str) -> StoredObject:
        """Fetch an object. Raises ObjectNotFoundError if absent."""
        ...


class InMemoryBucket(Bucket):
    """Dict-backed bucket."""

    def __init__(self, name: str = "local-bucket") -> None:
        super().__init__(name)
        self._objects: dict[str, StoredObject] = {}

    async def save(self, path: str, data: bytes, content_type: str) -> str:
        self._objects[path] = StoredObject(path, bytes(data), content_type)
        return self.uri(path)

    async def read(self, path: str) -> StoredObject:
        try:
            return self._objects[path]
        except KeyError:
            raise ObjectNotFoundError(path) from None

    def paths(self) -> list[str]:
        return sorted(self._objects)


class SqlBucket(Bucket):
    """Bucket persisted in the ``blobs`` table."""

    def __init__(self, name: str, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(name)
        self._session_factory = session_factory

    async def save(self, path: str, data: bytes, content_type: str) -> str:
        async with self._session_factory() as session, session.begin():
            record = await session.get(BlobRecord, (self.name, path))
            if record is None:
                session.add(BlobRecord(
                    bucket=self.name,
                    path=path,
                    content_type=content_type,
                    size=len(data),
                    data=data,
                ))
            else:
                record.content_type = content_type
                record.size = len(data)
                record.data = data
        logger.debug("object_saved", bucket=self.name, path=path, size=len(data))
        return self.uri(path)

    async def read(self, path: str) -> StoredObject:
        async with self._session_factory() as session:
            record = await session.get(BlobRecord, (self.name, path))
            if record is None:
                raise ObjectNotFoundError(path)
            return StoredObject(record.path, record.data, record.content_type)
