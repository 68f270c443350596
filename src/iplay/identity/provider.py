"""Identity provider: sign-in accounts and their custom claims."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iplay.db.models import IdentityRecord


class IdentityNotFoundError(LookupError):
    """No identity matches the lookup."""


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str | None = None
    display_name: str | None = None
    custom_claims: dict[str, Any] = field(default_factory=dict)
    disabled: bool = False


class IdentityProvider(ABC):
    """Abstract identity lookup and claim management."""

    @abstractmethod
    async def get_user(self, uid: str) -> Identity:
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Identity:
        ...

    @abstractmethod
    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        """Replace the identity's custom claims."""
        ...


class InMemoryIdentityProvider(IdentityProvider):
    def __init__(self, identities: list[Identity] | None = None) -> None:
        self._by_uid: dict[str, Identity] = {i.uid: i for i in identities or []}

    def add(self, identity: Identity) -> None:
        self._by_uid[identity.uid] = identity

    async def get_user(self, uid: str) -> Identity:
        try:
            return self._by_uid[uid]
        except KeyError:
            raise IdentityNotFoundError(f"No user record for uid {uid}") from None

    async def get_user_by_email(self, email: str) -> Identity:
        for identity in self._by_uid.values():
            if identity.email and identity.email.lower() == email.lower():
                return identity
        raise IdentityNotFoundError(f"No user record for email {email}")

    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        current = await self.get_user(uid)
        self._by_uid[uid] = Identity(
            uid=current.uid,
            email=current.email,
            display_name=current.display_name,
            custom_claims=copy.deepcopy(claims),
            disabled=current.disabled,
        )


def _to_identity(record: IdentityRecord) -> Identity:
    return Identity(
        uid=record.uid,
        email=record.email,
        display_name=record.display_name,
        custom_claims=dict(record.custom_claims or {}),
        disabled=record.disabled,
    )


class SqlIdentityProvider(IdentityProvider):
    """Identities persisted in the ``identities`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user(self, uid: str) -> Identity:
        async with self._session_factory() as session:
            record = await session.get(IdentityRecord, uid)
            if record is None:
                raise IdentityNotFoundError(f"No user record for uid {uid}")
            return _to_identity(record)

    async def get_user_by_email(self, email: str) -> Identity:
        async with self._session_factory() as session:
            result = await session.execute(
                select(IdentityRecord).where(func.lower(IdentityRecord.email) == email.lower())
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise IdentityNotFoundError(f"No user record for email {email}")
            return _to_identity(record)

    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        async with self._session_factory() as session, session.begin():
            record = await session.get(IdentityRecord, uid)
            if record is None:
                raise IdentityNotFoundError(f"No user record for uid {uid}")
            record.custom_claims = dict(claims)
