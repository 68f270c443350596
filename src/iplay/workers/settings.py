"""arq worker settings module.

Import paths for the arq CLI:
    arq iplay.workers.settings.WorkerSettings         (scheduled jobs)
    arq iplay.workers.settings.TriggerWorkerSettings  (change triggers)
"""

from __future__ import annotations

from iplay.triggers.worker import TriggerWorkerSettings
from iplay.workers.scheduler import WorkerSettings

__all__ = ["TriggerWorkerSettings", "WorkerSettings"]
