from iplay.cleanup.service import (
    CleanupResult,
    cleanup_deleted_classroom,
    cleanup_deleted_user,
    sweep_stale_records,
)

__all__ = [
    "CleanupResult",
    "cleanup_deleted_classroom",
    "cleanup_deleted_user",
    "sweep_stale_records",
]
