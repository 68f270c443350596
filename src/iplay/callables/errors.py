"""Typed errors for callable operations.

Caller errors (bad arguments, missing auth, permissions, missing targets)
surface with their own code. Anything else raised inside an operation is
logged and re-signaled as a generic ``internal`` error.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, Literal, ParamSpec, TypeVar

import structlog

logger = structlog.get_logger()

ErrorCode = Literal["invalid-argument", "unauthenticated", "permission-denied", "not-found", "internal"]

# code -> (wire status, HTTP status)
_STATUS: dict[str, tuple[str, int]] = {
    "invalid-argument": ("INVALID_ARGUMENT", 400),
    "unauthenticated": ("UNAUTHENTICATED", 401),
    "permission-denied": ("PERMISSION_DENIED", 403),
    "not-found": ("NOT_FOUND", 404),
    "internal": ("INTERNAL", 500),
}

P = ParamSpec("P")
R = TypeVar("R")


class CallableError(Exception):
    """An error returned to the caller with a stable code and message."""

    def __init__(self, code: ErrorCode, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    @property
    def status(self) -> str:
        return _STATUS[self.code][0]

    @property
    def http_status(self) -> int:
        return _STATUS[self.code][1]

    def to_payload(self) -> dict[str, Any]:
        error: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


def callable_operation(name: str) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Wrap an operation so unexpected failures become ``internal`` errors."""

    def decorator(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await fn(*args, **kwargs)
            except CallableError:
                raise
            except Exception as exc:
                logger.error("callable_failed", operation=name, error=str(exc), exc_info=exc)
                raise CallableError("internal", "Internal error") from exc

        return wrapper

    return decorator
