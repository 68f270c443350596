"""Shared FastAPI dependencies. Handles live on ``app.state``."""

from __future__ import annotations

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from iplay.callables.errors import CallableError
from iplay.config import Settings
from iplay.identity import CallerIdentity, TokenVerifier
from iplay.storage import Bucket
from iplay.store import DocumentStore

_bearer = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_bucket(request: Request) -> Bucket:
    return request.app.state.bucket


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


async def get_optional_caller(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> CallerIdentity | None:
    """
    Verify the bearer ID token if one is present.

    No token yields None; operations that need a caller reject it themselves.
    An invalid token is always rejected as unauthenticated.
    """
    if credentials is None:
        return None
    try:
        return verifier.verify(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise CallableError("unauthenticated", str(e)) from e
