"""Grant the ``isAdmin`` custom claim to a user, looked up by email.

Usage:
    iplay-set-admin <email>
    python -m iplay.cli.set_admin admin@example.com
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

from pydantic import EmailStr, TypeAdapter, ValidationError

from iplay.config import get_settings
from iplay.database import create_engine, create_session_factory
from iplay.identity import IdentityNotFoundError, IdentityProvider, SqlIdentityProvider
from iplay.middleware.logging import setup_logging

logger = logging.getLogger(__name__)

USAGE = "Usage: iplay-set-admin <email>\nExample: iplay-set-admin admin@example.com"

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


def is_valid_email(email: str) -> bool:
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return False
    return True


async def set_admin_claim(provider: IdentityProvider, email: str) -> dict[str, Any]:
    """Merge ``isAdmin: true`` into the user's claims and return the stored claims.

    Raises:
        IdentityNotFoundError: If no account has this email.
    """
    print(f"Looking up user: {email}")
    user = await provider.get_user_by_email(email)
    print(f"Found user: {user.uid}")

    await provider.set_custom_claims(user.uid, {**user.custom_claims, "isAdmin": True})
    print(f"Set admin claim for {email}")

    updated = await provider.get_user(user.uid)
    return updated.custom_claims


async def run(email: str, provider: IdentityProvider | None = None) -> int:
    """Grant the claim and report. Returns the process exit code."""
    engine = None
    if provider is None:
        settings = get_settings()
        setup_logging(settings, service="cli")
        engine = create_engine(settings.database_url)
        provider = SqlIdentityProvider(create_session_factory(engine))

    try:
        claims = await set_admin_claim(provider, email)
    except IdentityNotFoundError as e:
        print(f"Error setting admin claim: {e}", file=sys.stderr)
        print("\nTip: Make sure the user has signed up in the app first.")
        return 1
    except Exception as e:
        logger.exception("Failed to set admin claim for %s", email)
        print(f"Error setting admin claim: {e}", file=sys.stderr)
        return 1
    finally:
        if engine is not None:
            await engine.dispose()

    print(f"\nUser custom claims: {claims}")
    print(f"\nSuccess! {email} is now an admin.")
    print("\nImportant: the user must sign out and sign back in for changes to take effect.")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Grant admin access (the isAdmin claim) to an iPlay user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s admin@example.com
        """,
    )
    parser.add_argument("email", nargs="?", help="Email address of the user to promote")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, provider: IdentityProvider | None = None) -> int:
    args = parse_args(argv)

    if not args.email:
        print("Error: Email address required", file=sys.stderr)
        print(f"\n{USAGE}")
        return 1

    if not is_valid_email(args.email):
        print("Error: Invalid email format", file=sys.stderr)
        return 1

    return asyncio.run(run(args.email, provider))


if __name__ == "__main__":
    sys.exit(main())
