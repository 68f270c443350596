"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient

from iplay.config import Settings
from iplay.identity import TokenVerifier, create_id_token
from iplay.main import create_app
from iplay.storage import InMemoryBucket
from iplay.store import InMemoryDocumentStore

TEST_ISSUER = "iplay.test"


@pytest.fixture(scope="session")
def rsa_keys() -> tuple[str, str]:
    """(private PEM, public PEM) generated once per test session."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def token_verifier(rsa_keys: tuple[str, str]) -> TokenVerifier:
    return TokenVerifier(public_key=rsa_keys[1], issuer=TEST_ISSUER)


@pytest.fixture
def make_token(rsa_keys: tuple[str, str]) -> Callable[..., str]:
    """Issue a signed ID token for a uid."""

    def _make(uid: str, claims: dict[str, Any] | None = None, **kwargs: Any) -> str:
        return create_id_token(rsa_keys[0], uid, claims, issuer=TEST_ISSUER, **kwargs)

    return _make


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def bucket() -> InMemoryBucket:
    return InMemoryBucket("iplay-test")


@pytest_asyncio.fixture
async def client(
    store: InMemoryDocumentStore,
    bucket: InMemoryBucket,
    token_verifier: TokenVerifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against an app wired to in-memory handles."""
    app = create_app(
        Settings(log_format="console", environment="test"),
        store=store,
        bucket=bucket,
        token_verifier=token_verifier,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
