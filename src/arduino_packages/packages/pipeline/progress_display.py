"""Rich progress bars for the plan executor.

Each plan entry gets one bar. The bar tracks the bytes the download pool
reports; once an entry is downloaded the bar stays full and the status column
follows it through extraction and placement. on_progress() is called from
download worker threads; rich.progress.Progress serializes its own updates.
"""

import threading
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from .models import TaskPhase

_STATUS = {
    TaskPhase.PENDING: "[dim]pending",
    TaskPhase.DOWNLOADING: "[blue]downloading",
    TaskPhase.DOWNLOADED: "[cyan]downloaded",
    TaskPhase.EXTRACTING: "[yellow]extracting",
    TaskPhase.PLACED: "[green]✓ placed",
    TaskPhase.FAILED: "[red]✗ failed",
}


class InstallProgress:
    """ProgressCallback rendering one Rich progress bar per plan entry.

    Args:
        console: Console to render on. If None, Rich's default console is used.
        title: Line printed above the bars when the display starts.
        verbose: Print the URL and destination of an entry when its download starts.
    """

    def __init__(self, console: Optional[Console] = None, title: str = "", verbose: bool = False) -> None:
        self._title = title
        self._verbose = verbose
        self._progress = Progress(
            SpinnerColumn(finished_text=" "),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TextColumn("{task.fields[status]}"),
            console=console,
        )
        self._ids: dict[str, TaskID] = {}
        self._phases: dict[str, TaskPhase] = {}
        self._bytes: dict[str, float] = {}
        self._sources: dict[str, tuple[str, str]] = {}
        self._lock = threading.Lock()

    def register_task(self, name: str, size: int = 0, url: str = "", dest_path: str = "") -> None:
        """Add a row for a plan entry before the executor starts."""
        with self._lock:
            self._task_id(name, size)
            self._sources[name] = (url, dest_path)

    def _task_id(self, name: str, size: int = 0) -> TaskID:
        # Caller holds self._lock
        task_id = self._ids.get(name)
        if task_id is None:
            task_id = self._progress.add_task(name, total=size or None, status=_STATUS[TaskPhase.PENDING])
            self._ids[name] = task_id
            self._phases[name] = TaskPhase.PENDING
            self._bytes[name] = 0
        return task_id

    def on_progress(self, task_name: str, phase: TaskPhase, progress: float, total: float, detail: str) -> None:
        """Move the entry's bar and status. Thread-safe."""
        with self._lock:
            task_id = self._task_id(task_name)
            first_download = phase == TaskPhase.DOWNLOADING and self._phases[task_name] == TaskPhase.PENDING
            self._phases[task_name] = phase
            if phase == TaskPhase.DOWNLOADING:
                self._bytes[task_name] = progress
            downloaded = self._bytes[task_name]
            url, dest_path = self._sources.get(task_name, ("", ""))

        status = _STATUS[phase]
        if phase == TaskPhase.DOWNLOADING:
            self._progress.update(task_id, completed=progress, total=total or None, status=status)
        elif phase == TaskPhase.EXTRACTING:
            files = f" {int(progress)}/{int(total)}" if total else ""
            self._progress.update(task_id, completed=downloaded, total=downloaded, status=status + files)
        elif phase == TaskPhase.FAILED:
            self._progress.update(task_id, status=f"{status}: {escape(detail)}")
        elif detail in ("Already installed", "Using cached archive"):
            self._progress.update(task_id, completed=0, total=0, status=f"{status} [dim]({detail.lower()})")
        else:
            self._progress.update(task_id, completed=downloaded, total=downloaded, status=status)

        if self._verbose and first_download and (url or dest_path):
            self._progress.console.print(f"  {task_name}: {url} -> {dest_path}", style="dim", highlight=False)

    def phase_counts(self) -> dict[TaskPhase, int]:
        """Number of entries in each phase."""
        with self._lock:
            counts = {phase: 0 for phase in TaskPhase}
            for phase in self._phases.values():
                counts[phase] += 1
            return counts

    def start(self) -> None:
        if self._title:
            self._progress.console.print(self._title, style="bold", highlight=False)
        self._progress.start()

    def stop(self) -> None:
        """Stop the live display and print a one-line summary."""
        self._progress.stop()
        counts = self.phase_counts()
        parts = [f"{sum(counts.values())} archives", f"{counts[TaskPhase.PLACED]} placed"]
        if counts[TaskPhase.FAILED]:
            parts.append(f"{counts[TaskPhase.FAILED]} failed")
        self._progress.console.print("  " + ", ".join(parts), style="dim", highlight=False)

    def __enter__(self) -> "InstallProgress":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
