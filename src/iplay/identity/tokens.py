"""
Caller identity tokens (RS256).

Callable requests carry an ID token issued by the identity provider. The
``sub`` claim is the caller's uid; any custom claims (``isAdmin``) set by
the admin CLI ride along in the payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from iplay.config import Settings

_RESERVED_CLAIMS = frozenset({"sub", "iss", "aud", "iat", "exp", "nbf", "jti"})


@dataclass(frozen=True)
class CallerIdentity:
    """Verified caller of a callable operation."""

    uid: str
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return bool(self.claims.get("isAdmin"))


class TokenVerifier:
    """Verifies caller ID tokens against the provider's public key."""

    def __init__(
        self,
        public_key: str,
        algorithm: str = "RS256",
        issuer: str | None = None,
        audience: str | None = None,
    ) -> None:
        self._public_key = public_key
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenVerifier:
        return cls(
            public_key=Path(settings.jwt_public_key_path).read_text(),
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )

    def verify(self, token: str) -> CallerIdentity:
        """
        Verify and decode an ID token.

        Raises:
            jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
        """
        options = {"require": ["exp", "sub"], "verify_aud": self._audience is not None}
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._public_key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            msg = "Token has expired"
            raise jwt.InvalidTokenError(msg) from None

        uid = str(payload["sub"])
        if not uid:
            msg = "Token has an empty subject"
            raise jwt.InvalidTokenError(msg)
        claims = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
        return CallerIdentity(uid=uid, claims=claims)


def create_id_token(
    private_key: str,
    uid: str,
    claims: dict[str, Any] | None = None,
    *,
    issuer: str,
    algorithm: str = "RS256",
    audience: str | None = None,
    expire_minutes: int = 60,
) -> str:
    """Create a signed ID token (local development and tests)."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        **(claims or {}),
        "sub": uid,
        "iat": now,
        "exp": now + timedelta(minutes=expire_minutes),
        "iss": issuer,
    }
    if audience is not None:
        payload["aud"] = audience
    return jwt.encode(payload, private_key, algorithm=algorithm)
