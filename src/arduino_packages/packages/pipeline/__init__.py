"""Installation plan executor with a live progress display.

Downloads the archives of an installation plan concurrently, then extracts
them one at a time and moves each archive's top-level directory into place.

Public API:
    PlanExecutor: Runs an InstallationPlan and returns an ExecutionResult.
    InstallProgress: Rich progress bars implementing ProgressCallback.
"""

from .callbacks import LoggingCallback, NullCallback, ProgressCallback
from .executor import PlanExecutor
from .models import ExecutionResult, PlanTask, TaskPhase
from .pools import ArchiveExtractor, DownloadPool
from .progress_display import InstallProgress

__all__ = [
    "ArchiveExtractor",
    "DownloadPool",
    "ExecutionResult",
    "InstallProgress",
    "LoggingCallback",
    "NullCallback",
    "PlanExecutor",
    "PlanTask",
    "ProgressCallback",
    "TaskPhase",
]
