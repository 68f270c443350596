"""Join code generation for classrooms and schools.

Codes are a type prefix plus 5 characters from an alphabet without the
look-alikes I, O, 0 and 1, generated server-side with a cryptographic
random source. Collisions are retried a bounded number of times.
"""

from __future__ import annotations

import secrets

from iplay import collection_names as cn
from iplay.callables.errors import CallableError, callable_operation
from iplay.callables.schemas import JoinCodeResult
from iplay.identity import CallerIdentity
from iplay.store import DocumentStore, where

CODE_CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 5
MAX_ATTEMPTS = 10

CLASSROOM_CODE_PREFIX = "CLS-"
SCHOOL_CODE_PREFIX = "SCH-"


def generate_join_code(prefix: str, length: int = CODE_LENGTH, charset: str = CODE_CHARSET) -> str:
    """Generate a random join code such as 'CLS-7KQ2M'."""
    return prefix + "".join(secrets.choice(charset) for _ in range(length))


async def generate_unique_join_code(
    store: DocumentStore,
    collection: str,
    field: str,
    prefix: str,
    *,
    length: int = CODE_LENGTH,
    charset: str = CODE_CHARSET,
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """Generate a code not already used by any document's ``field``."""
    for _ in range(max_attempts):
        code = generate_join_code(prefix, length, charset)
        existing = await store.query(collection, where(field, "==", code), limit=1)
        if not existing:
            return code
    raise CallableError("internal", f"Failed to generate unique code after {max_attempts} attempts")


@callable_operation("generateClassroomCode")
async def generate_classroom_code(
    store: DocumentStore,
    caller: CallerIdentity | None = None,
    *,
    length: int = CODE_LENGTH,
    charset: str = CODE_CHARSET,
    max_attempts: int = MAX_ATTEMPTS,
) -> JoinCodeResult:
    code = await generate_unique_join_code(
        store, cn.CLASSROOMS, "joinCode", CLASSROOM_CODE_PREFIX,
        length=length, charset=charset, max_attempts=max_attempts,
    )
    return JoinCodeResult(code=code)


@callable_operation("generateSchoolCode")
async def generate_school_code(
    store: DocumentStore,
    caller: CallerIdentity | None = None,
    *,
    length: int = CODE_LENGTH,
    charset: str = CODE_CHARSET,
    max_attempts: int = MAX_ATTEMPTS,
) -> JoinCodeResult:
    code = await generate_unique_join_code(
        store, cn.SCHOOLS, "schoolCode", SCHOOL_CODE_PREFIX,
        length=length, charset=charset, max_attempts=max_attempts,
    )
    return JoinCodeResult(code=code)
