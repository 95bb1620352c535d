"""Download pool and archive extractor for the plan executor.

- DownloadPool: Network I/O (concurrent HTTP downloads with progress tracking)
- ArchiveExtractor: Disk I/O (archive extraction into a scratch directory and
  placement of the single top-level directory at its destination)

Downloads write to a ``.download`` temp file next to the cached archive and
only rename it into place once the transfer completed, so an interrupted run
never leaves a truncated archive that a later run would mistake for a cached one.
"""

import errno
import logging
import os
import shutil
import tarfile
import tempfile
import threading
import time
import zipfile
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

import requests

from arduino_packages.errors import DownloadError, ExtractionError

from .callbacks import ProgressCallback
from .models import PlanTask, TaskPhase

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192
_REQUEST_TIMEOUT = 30

_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz", ".tar")


class DownloadPool:
    """Thread pool for downloading plan archives over the network.

    Wraps ThreadPoolExecutor with download-specific logic: streaming HTTP
    downloads with chunk-based progress reporting through a ProgressCallback.
    Failures are not retried.

    Args:
        max_workers: Maximum concurrent downloads.
    """

    def __init__(self, max_workers: int) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="download")
        self._shutdown = False
        self._completed = 0
        self._lock = threading.Lock()

    def submit_download(self, task: PlanTask, callback: ProgressCallback) -> Future[Path]:
        """Submit a download job for the given plan task.

        Downloads task.url to task.archive_path, reporting chunk-level
        progress through the callback.

        Args:
            task: Plan task containing url and archive_path.
            callback: Progress callback for reporting download progress.

        Returns:
            Future resolving to the path of the downloaded archive file.

        Raises:
            RuntimeError: If the pool has been shut down.
        """
        with self._lock:
            if self._shutdown:
                raise RuntimeError("DownloadPool has been shut down")
        return self._executor.submit(self._do_download, task, callback)

    def _do_download(self, task: PlanTask, callback: ProgressCallback) -> Path:
        """Execute the actual download in a worker thread.

        Args:
            task: Plan task to download.
            callback: Progress callback.

        Returns:
            Path to the downloaded archive file.

        Raises:
            DownloadError: On network failure, non-success status, or write error.
        """
        archive_path = Path(task.archive_path)
        temp_file = Path(str(archive_path) + ".download")

        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            self._do_download_attempt(task, callback, archive_path, temp_file)
        except requests.RequestException as e:
            _cleanup_temp_file(temp_file)
            raise DownloadError(f"Failed to download {task.url}: {e}") from e
        except OSError as e:
            _cleanup_temp_file(temp_file)
            raise DownloadError(f"Failed to write {archive_path}: {e}") from e
        except KeyboardInterrupt:
            _cleanup_temp_file(temp_file)
            raise
        except Exception as e:
            _cleanup_temp_file(temp_file)
            raise DownloadError(f"Failed to download {task.url}: {e}") from e

        with self._lock:
            self._completed += 1
        return archive_path

    def _do_download_attempt(
        self,
        task: PlanTask,
        callback: ProgressCallback,
        archive_path: Path,
        temp_file: Path,
    ) -> None:
        """Stream one archive to temp_file, then rename it to archive_path."""
        response = requests.get(task.url, stream=True, timeout=_REQUEST_TIMEOUT)
        try:
            response.raise_for_status()

            total_size = _content_length(response, task.size)
            downloaded = 0

            callback.on_progress(task.name, TaskPhase.DOWNLOADING, 0, total_size, "Starting download...")

            with open(temp_file, "wb") as f:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        downloaded += len(chunk)
                        task.downloaded_bytes = downloaded
                        detail = _format_transfer_speed(downloaded, task)
                        callback.on_progress(task.name, TaskPhase.DOWNLOADING, downloaded, total_size, detail)
        finally:
            response.close()

        os.replace(temp_file, archive_path)
        logger.debug("Downloaded %s (%s)", archive_path, _format_size(downloaded))
        callback.on_progress(task.name, TaskPhase.DOWNLOADED, downloaded, downloaded, "Download complete")

    def shutdown(self, cancel_pending: bool = False) -> None:
        """Shut down the thread pool, waiting for running downloads to finish.

        Args:
            cancel_pending: Cancel downloads that have not started yet.
        """
        with self._lock:
            self._shutdown = True
        self._executor.shutdown(wait=True, cancel_futures=cancel_pending)

    @property
    def completed(self) -> int:
        """Number of downloads that finished successfully."""
        with self._lock:
            return self._completed

    def __enter__(self) -> "DownloadPool":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown(cancel_pending=exc_type is not None)


class ArchiveExtractor:
    """Extracts archives and moves their top-level directory into place.

    Every archive must contain exactly one top-level directory; that
    directory (not the archive root) becomes the destination path.

    Args:
        scratch_dir: Directory under which fresh per-archive extraction
            directories are created. The caller owns its cleanup.
    """

    def __init__(self, scratch_dir: Path) -> None:
        self._scratch_dir = Path(scratch_dir)

    def extract(self, task: PlanTask, callback: ProgressCallback) -> Path:
        """Extract task.archive_path and place it at task.dest_path.

        Args:
            task: Plan task being extracted.
            callback: Progress callback.

        Returns:
            The destination path.

        Raises:
            ExtractionError: If the archive cannot be read, does not contain
                exactly one top-level directory, or cannot be moved into place.
        """
        archive_path = Path(task.archive_path)
        dest_path = Path(task.dest_path)

        logger.info("Extracting: %s to %s", archive_path.name, dest_path)
        callback.on_progress(task.name, TaskPhase.EXTRACTING, 0, 0, "Starting extraction...")

        work_dir = Path(tempfile.mkdtemp(prefix="extract-", dir=self._scratch_dir))
        try:
            self._unpack(archive_path, work_dir, task, callback)
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(f"Unable to unarchive {archive_path}: {e}") from e

        items = list(work_dir.iterdir())
        if len(items) > 1:
            names = ", ".join(sorted(i.name for i in items))
            raise ExtractionError(f"Extracted more than one directory from {archive_path.name}: {names}")
        if not items:
            raise ExtractionError(f"Archive {archive_path.name} is empty")
        if not items[0].is_dir():
            raise ExtractionError(f"Archive {archive_path.name} has no top-level directory (found file {items[0].name})")

        _move_into_place(items[0], dest_path)
        callback.on_progress(task.name, TaskPhase.PLACED, 1, 1, "Extraction complete")
        return dest_path

    def _unpack(self, archive_path: Path, dest: Path, task: PlanTask, callback: ProgressCallback) -> None:
        archive_str = archive_path.name.lower()

        if archive_str.endswith(_TAR_SUFFIXES):
            self._extract_tar(archive_path, dest, task, callback)
        elif archive_str.endswith(".zip"):
            self._extract_zip(archive_path, dest, task, callback)
        else:
            raise ExtractionError(f"Unsupported archive format: {archive_path.name}")

    def _extract_tar(self, archive_path: Path, dest: Path, task: PlanTask, callback: ProgressCallback) -> None:
        """Extract a tar archive (any compression) with progress reporting."""
        with tarfile.open(archive_path, "r:*") as tar:
            members = tar.getmembers()
            total = len(members)
            for i, member in enumerate(members):
                tar.extract(member, dest, filter="data")
                if (i + 1) % max(1, total // 20) == 0 or i == total - 1:
                    callback.on_progress(task.name, TaskPhase.EXTRACTING, i + 1, total, f"Extracting files ({i + 1}/{total})")

    def _extract_zip(self, archive_path: Path, dest: Path, task: PlanTask, callback: ProgressCallback) -> None:
        """Extract a zip archive with progress reporting.

        Unix permission bits stored in the archive are restored, since
        zipfile drops them and tool archives ship executables.
        """
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            total = len(members)
            for i, info in enumerate(members):
                extracted = zf.extract(info, dest)
                mode = (info.external_attr >> 16) & 0o777
                if mode and not info.is_dir():
                    os.chmod(extracted, mode)
                if (i + 1) % max(1, total // 20) == 0 or i == total - 1:
                    callback.on_progress(task.name, TaskPhase.EXTRACTING, i + 1, total, f"Extracting files ({i + 1}/{total})")


def _move_into_place(source: Path, dest_path: Path) -> None:
    """Rename source to dest_path, creating parent directories as needed.

    Falls back to a copying move when the scratch directory lives on a
    different filesystem than the destination.

    Raises:
        ExtractionError: If the destination cannot be created.
    """
    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.rename(source, dest_path)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            shutil.move(str(source), str(dest_path))
    except OSError as e:
        raise ExtractionError(f"Unable to move {source.name} to {dest_path}: {e}") from e


def _content_length(response: requests.Response, fallback: int) -> int:
    """Return the advertised body size, or fallback when it is missing or malformed."""
    try:
        return int(response.headers.get("content-length") or 0) or fallback
    except ValueError:
        logger.debug("Ignoring malformed content-length %r", response.headers.get("content-length"))
        return fallback


def cleanup_partial_download(archive_path: Path) -> None:
    """Remove the temp file of an interrupted download, if any."""
    _cleanup_temp_file(Path(str(archive_path) + ".download"))


def _cleanup_temp_file(temp_file: Path) -> None:
    """Remove a temporary download file if it exists.

    Args:
        temp_file: Path to the temporary file to remove.
    """
    try:
        if temp_file.exists():
            temp_file.unlink()
    except OSError as e:
        logger.debug("Could not remove %s: %s", temp_file, e)


def _format_transfer_speed(downloaded_bytes: int, task: PlanTask) -> str:
    """Format a human-readable transfer speed string.

    Args:
        downloaded_bytes: Total bytes downloaded so far.
        task: The plan task (uses start_time for rate calculation).

    Returns:
        Formatted string like "2.1 MB/s" or byte count if speed unavailable.
    """
    if task.start_time is not None:
        elapsed = time.monotonic() - task.start_time
        if elapsed > 0:
            speed = downloaded_bytes / elapsed
            return f"{_format_size(int(speed))}/s"
    return _format_size(downloaded_bytes)


def _format_size(size_bytes: Optional[int]) -> str:
    """Format a byte count as a human-readable size string.

    Args:
        size_bytes: Number of bytes.

    Returns:
        Formatted string like "2.1 MB", "512 KB", etc.
    """
    size_bytes = size_bytes or 0
    if size_bytes >= 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
    if size_bytes >= 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes} B"
