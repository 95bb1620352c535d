"""Progress callback protocol for the plan executor.

Defines the callback interface used by the download pool and the archive
extractor to report progress to the display layer.
"""

import logging
import threading
from typing import Protocol, runtime_checkable

from .models import TaskPhase

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressCallback(Protocol):
    """Protocol for receiving progress updates from the executor.

    Implementations receive real-time updates as plan entries move through
    the download and extraction phases. Download updates arrive from worker
    threads, so implementations must be thread-safe.
    """

    def on_progress(self, task_name: str, phase: TaskPhase, progress: float, total: float, detail: str) -> None:
        """Called when a task makes progress within a phase.

        Args:
            task_name: Name of the plan task (e.g. "arduino/tools/bossac/1.7.0").
            phase: Current executor phase.
            progress: Current progress value (e.g. bytes downloaded, files extracted).
            total: Total expected value (e.g. total bytes, total files). May be 0 if unknown.
            detail: Human-readable status detail (e.g. "2.1 MB/s", "Already installed").
        """
        ...


class NullCallback:
    """No-op callback implementation for testing and non-interactive use."""

    def on_progress(self, task_name: str, phase: TaskPhase, progress: float, total: float, detail: str) -> None:
        """Discard progress update."""
        pass


class LoggingCallback:
    """Callback that reports phase changes through the logging module.

    Byte-level download updates are dropped; only the first update of each
    phase and terminal updates are logged.
    """

    def __init__(self) -> None:
        self._last_phase: dict[str, TaskPhase] = {}
        self._lock = threading.Lock()

    def on_progress(self, task_name: str, phase: TaskPhase, progress: float, total: float, detail: str) -> None:
        with self._lock:
            if self._last_phase.get(task_name) == phase and phase not in (TaskPhase.PLACED, TaskPhase.FAILED):
                return
            self._last_phase[task_name] = phase
        if phase == TaskPhase.FAILED:
            logger.error("%s: %s - %s", task_name, phase.value, detail)
        else:
            logger.info("%s: %s - %s", task_name, phase.value, detail)
