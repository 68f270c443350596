from iplay.identity.provider import (
    Identity,
    IdentityNotFoundError,
    IdentityProvider,
    InMemoryIdentityProvider,
    SqlIdentityProvider,
)
from iplay.identity.tokens import CallerIdentity, TokenVerifier, create_id_token

__all__ = [
    "CallerIdentity",
    "Identity",
    "IdentityNotFoundError",
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "SqlIdentityProvider",
    "TokenVerifier",
    "create_id_token",
]
