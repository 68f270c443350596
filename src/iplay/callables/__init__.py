from iplay.callables.errors import CallableError, callable_operation
from iplay.callables.join_codes import generate_classroom_code, generate_school_code
from iplay.callables.moderation import ban_user, moderate_content
from iplay.callables.schools import transfer_school_ownership

__all__ = [
    "CallableError",
    "ban_user",
    "callable_operation",
    "generate_classroom_code",
    "generate_school_code",
    "moderate_content",
    "transfer_school_ownership",
]
