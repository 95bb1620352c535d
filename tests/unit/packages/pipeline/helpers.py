"""Helpers shared by the executor tests."""

import io
import tarfile
import threading
import zipfile
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock

from arduino_packages.packages.pipeline.models import TaskPhase


class RecordingCallback:
    """Thread-safe callback that records all progress updates."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, TaskPhase, float, float, str]] = []
        self._lock = threading.Lock()

    def on_progress(self, task_name: str, phase: TaskPhase, progress: float, total: float, detail: str) -> None:
        with self._lock:
            self.calls.append((task_name, phase, progress, total, detail))

    def get_calls(self) -> list[tuple[str, TaskPhase, float, float, str]]:
        with self._lock:
            return list(self.calls)

    def get_phases_for(self, task_name: str) -> list[TaskPhase]:
        with self._lock:
            return [c[1] for c in self.calls if c[0] == task_name]


def tar_bytes(files: dict[str, bytes], mode: str = "w:gz") -> bytes:
    """Build a tar archive in memory. Names ending in '/' become directories."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as tar:
        for name, content in files.items():
            if name.endswith("/"):
                info = tarfile.TarInfo(name=name.rstrip("/"))
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
                continue
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            info.mode = 0o755 if name.endswith(".sh") else 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def zip_bytes(files: dict[str, bytes]) -> bytes:
    """Build a zip archive in memory, marking *.sh entries executable."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            info = zipfile.ZipInfo(name)
            mode = 0o755 if name.endswith(".sh") else 0o644
            info.external_attr = (0o100000 | mode) << 16
            zf.writestr(info, content)
    return buffer.getvalue()


def write_archive(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def make_response(data: bytes, status_error: Exception | None = None, chunk_size: int = 1024) -> MagicMock:
    """Create a mock streaming requests response."""
    response = MagicMock()
    response.headers = {"content-length": str(len(data))}
    response.iter_content.return_value = [data[i : i + chunk_size] for i in range(0, len(data), chunk_size)]
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    else:
        response.raise_for_status.return_value = None
    return response


def fake_get(archives: dict[str, bytes], errors: dict[str, Exception] | None = None) -> Callable[..., Any]:
    """Return a requests.get replacement serving archives by URL."""
    errors = errors or {}
    lock = threading.Lock()
    calls: list[str] = []

    def _get(url: str, stream: bool = False, timeout: int = 0) -> MagicMock:
        with lock:
            calls.append(url)
        if url in errors:
            raise errors[url]
        return make_response(archives[url])

    _get.calls = calls  # type: ignore[attr-defined]
    return _get
