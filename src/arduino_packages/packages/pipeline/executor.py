"""Plan executor: concurrent downloads, then sequential extraction.

Runs an InstallationPlan in two phases separated by a barrier:
1. Every entry whose destination is missing and whose archive is not cached
   is downloaded concurrently through a DownloadPool
2. Once all downloads have finished, entries are extracted one at a time, in
   plan order, and their single top-level directory is moved into place

The first failure stops the run. Entries already placed stay in place; a
failed entry leaves at most a cached archive behind, which a later run reuses.
"""

import hashlib
import logging
import shutil
import tempfile
import time
from concurrent.futures import FIRST_EXCEPTION, Future, wait
from pathlib import Path
from typing import Optional

from arduino_packages.errors import PackagesError
from arduino_packages.packages.plan import InstallationPlan

from .callbacks import NullCallback, ProgressCallback
from .models import ExecutionResult, PlanTask, TaskPhase
from .pools import ArchiveExtractor, DownloadPool, cleanup_partial_download

logger = logging.getLogger(__name__)


class PlanExecutor:
    """Downloads, extracts, and places the archives of an installation plan.

    Running the same plan twice is idempotent: entries whose destination
    exists are skipped without network access or extraction.

    Args:
        cache_dir: Directory holding downloaded archives.
        max_download_workers: Cap on concurrent downloads. None runs one
            download per archive with no cap.
    """

    def __init__(self, cache_dir: Path, max_download_workers: Optional[int] = None) -> None:
        self._cache_dir = Path(cache_dir)
        self._max_download_workers = max_download_workers

    def run(self, plan: InstallationPlan, callback: Optional[ProgressCallback] = None) -> ExecutionResult:
        """Execute the plan.

        Never raises for the four fatal error kinds; they are returned in
        ExecutionResult.error. KeyboardInterrupt propagates after pending
        downloads are cancelled and partial files removed.

        Args:
            plan: Plan to execute.
            callback: Progress callback for reporting updates.

        Returns:
            ExecutionResult with final task states, counters, and timing.
        """
        callback = callback if callback is not None else NullCallback()
        start_time = time.monotonic()
        tasks = self.create_tasks(plan)
        downloads = 0
        extractions = 0
        error: Optional[PackagesError] = None
        scratch_dir: Optional[Path] = None

        try:
            pending_download = self._classify(tasks, callback)
            downloads = self._download_all(tasks, pending_download, callback)

            scratch_dir = Path(tempfile.mkdtemp(prefix="arduino-packages-"))
            extractor = ArchiveExtractor(scratch_dir)
            for task in tasks:
                if task.phase != TaskPhase.DOWNLOADED:
                    continue
                if Path(task.dest_path).exists():
                    task.phase = TaskPhase.PLACED
                    callback.on_progress(task.name, TaskPhase.PLACED, 1, 1, "Already installed")
                    continue
                task.phase = TaskPhase.EXTRACTING
                try:
                    extractor.extract(task, callback)
                except PackagesError as e:
                    task.fail(str(e))
                    callback.on_progress(task.name, TaskPhase.FAILED, 0, 0, str(e))
                    raise
                task.phase = TaskPhase.PLACED
                task.update_elapsed()
                extractions += 1

        except PackagesError as e:
            logger.error("%s", e)
            error = e
            self._fail_remaining_tasks(tasks, "Aborted: " + str(e))
        finally:
            if scratch_dir is not None:
                shutil.rmtree(scratch_dir, ignore_errors=True)

        return ExecutionResult(
            tasks=tasks,
            total_elapsed=time.monotonic() - start_time,
            downloads=downloads,
            extractions=extractions,
            error=error,
        )

    def create_tasks(self, plan: InstallationPlan) -> list[PlanTask]:
        """Create one task per plan entry and assign cache paths.

        Archives are cached under their file name. When two entries share a
        file name but not a URL, the later one is cached in a sub-directory
        named after its URL hash so they never overwrite each other.
        """
        tasks: list[PlanTask] = []
        claimed: dict[str, str] = {}
        for entry in plan.files:
            archive_path = self._cache_dir / entry.file_name
            owner = claimed.setdefault(entry.file_name, entry.url)
            if owner != entry.url:
                digest = hashlib.sha256(entry.url.encode("utf-8")).hexdigest()[:16]
                archive_path = self._cache_dir / digest / entry.file_name
            tasks.append(PlanTask.from_install_file(entry, str(archive_path)))
        return tasks

    def _classify(self, tasks: list[PlanTask], callback: ProgressCallback) -> list[PlanTask]:
        """Apply the fast paths and return the tasks that need a download."""
        needs_download: list[PlanTask] = []
        for task in tasks:
            task.mark_started()
            if Path(task.dest_path).exists():
                task.phase = TaskPhase.PLACED
                callback.on_progress(task.name, TaskPhase.PLACED, 1, 1, "Already installed")
            elif Path(task.archive_path).exists():
                task.phase = TaskPhase.DOWNLOADED
                callback.on_progress(task.name, TaskPhase.DOWNLOADED, 1, 1, "Using cached archive")
            else:
                needs_download.append(task)
        return needs_download

    def _download_all(self, tasks: list[PlanTask], needs_download: list[PlanTask], callback: ProgressCallback) -> int:
        """Download archives concurrently and wait for all of them.

        Tasks sharing an archive path share one download.

        Returns:
            Number of archives downloaded.

        Raises:
            PackagesError: The first download failure, in plan order.
        """
        owners: dict[str, PlanTask] = {}
        for task in needs_download:
            owners.setdefault(task.archive_path, task)
        if not owners:
            return 0

        workers = self._max_download_workers or len(owners)
        active_futures: dict[Future[Path], PlanTask] = {}

        try:
            with DownloadPool(max_workers=workers) as pool:
                for task in owners.values():
                    task.phase = TaskPhase.DOWNLOADING
                    callback.on_progress(task.name, TaskPhase.DOWNLOADING, 0, task.size, "Queued for download")
                    active_futures[pool.submit_download(task, callback)] = task

                _done, not_done = wait(active_futures, return_when=FIRST_EXCEPTION)
                for future in not_done:
                    future.cancel()
                # Leaving the pool waits for in-flight downloads (the barrier)
        except KeyboardInterrupt:
            for future in active_futures:
                future.cancel()
            for task in owners.values():
                cleanup_partial_download(Path(task.archive_path))
            self._fail_remaining_tasks(tasks, "Interrupted by user")
            raise

        first_error: Optional[PackagesError] = None
        for future, task in active_futures.items():
            if future.cancelled():
                task.fail("Download cancelled")
                continue
            exc = future.exception()
            if exc is None:
                task.phase = TaskPhase.DOWNLOADED
                continue
            task.fail(str(exc))
            callback.on_progress(task.name, TaskPhase.FAILED, 0, 0, str(exc))
            if not isinstance(exc, PackagesError):
                raise exc
            if first_error is None:
                first_error = exc

        if first_error is not None:
            raise first_error

        for task in needs_download:
            if task.phase == TaskPhase.PENDING:
                task.phase = TaskPhase.DOWNLOADED

        return sum(1 for t in owners.values() if t.phase == TaskPhase.DOWNLOADED)

    def _fail_remaining_tasks(self, tasks: list[PlanTask], reason: str) -> None:
        """Mark all non-terminal tasks as FAILED."""
        for task in tasks:
            if not task.is_terminal:
                task.fail(reason)
