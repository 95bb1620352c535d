"""Data models for the plan executor.

Defines the core dataclasses used throughout the executor:
- TaskPhase: Enum tracking which state a plan entry is in
- PlanTask: Mutable execution state for one installation plan entry
- ExecutionResult: Aggregated result of running a whole plan
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from arduino_packages.errors import PackagesError
from arduino_packages.packages.plan import InstallFile


class TaskPhase(Enum):
    """State of a plan entry in the executor.

    PENDING -> DOWNLOADING -> DOWNLOADED -> EXTRACTING -> PLACED, with
    PENDING -> PLACED when the destination already exists and
    PENDING -> DOWNLOADED when the archive is already cached.
    """

    PENDING = "pending"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    EXTRACTING = "extracting"
    PLACED = "placed"
    FAILED = "failed"


TERMINAL_PHASES = (TaskPhase.PLACED, TaskPhase.FAILED)


@dataclass
class PlanTask:
    """Execution state of a single plan entry.

    Attributes:
        name: Unique display name (e.g. "arduino/tools/bossac/1.7.0")
        url: Download URL for the archive
        version: Platform or tool version
        dest_path: Final installation path
        archive_path: Local path of the cached archive
        size: Declared archive size in bytes (advisory)
        phase: Current executor phase
        error_message: Error detail if phase is FAILED
        start_time: Timestamp when the task started processing (None if not started)
        elapsed: Elapsed time in seconds since the task started
        downloaded_bytes: Bytes downloaded so far
    """

    name: str
    url: str
    version: str
    dest_path: str
    archive_path: str
    size: int = 0
    phase: TaskPhase = TaskPhase.PENDING
    error_message: str = ""
    start_time: Optional[float] = None
    elapsed: float = 0.0
    downloaded_bytes: int = 0

    @classmethod
    def from_install_file(cls, entry: InstallFile, archive_path: str) -> "PlanTask":
        return cls(
            name=entry.name or entry.path,
            url=entry.url,
            version=entry.version,
            dest_path=entry.path,
            archive_path=archive_path,
            size=entry.size,
        )

    def mark_started(self) -> None:
        """Record the start time for elapsed time tracking."""
        self.start_time = time.monotonic()

    def update_elapsed(self) -> None:
        """Update elapsed time from start_time."""
        if self.start_time is not None:
            self.elapsed = time.monotonic() - self.start_time

    def fail(self, error: str) -> None:
        """Mark this task as failed with an error message."""
        self.phase = TaskPhase.FAILED
        self.error_message = error
        self.update_elapsed()

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


@dataclass
class ExecutionResult:
    """Aggregated result of executing an installation plan.

    Attributes:
        tasks: Final state of all tasks, in plan order
        total_elapsed: Total wall-clock time in seconds
        downloads: Number of archives fetched over the network
        extractions: Number of archives extracted and placed
        error: The fatal error that stopped the run, if any
    """

    tasks: list[PlanTask]
    total_elapsed: float
    downloads: int = 0
    extractions: int = 0
    error: Optional[PackagesError] = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        """True if every task was placed."""
        return self.error is None and all(t.phase == TaskPhase.PLACED for t in self.tasks)

    @property
    def placed_count(self) -> int:
        """Number of tasks whose destination is in place."""
        return sum(1 for t in self.tasks if t.phase == TaskPhase.PLACED)

    def raise_for_error(self) -> None:
        """Re-raise the fatal error, if the run stopped on one."""
        if self.error is not None:
            raise self.error
