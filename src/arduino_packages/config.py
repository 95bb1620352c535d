"""
Installer configuration.

InstallConfig gathers everything one installer run needs. The defaults
reproduce the toolchain tree this tool was written for: the Arduino and
Adafruit SAMD cores installed into /tmp/working.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

DEFAULT_ROOT_DIRECTORY = Path("/tmp/working")
DEFAULT_INDICES = ["package_adafruit_index.json", "package_index.json"]
DEFAULT_SELECTIONS = ["arduino:samd@1.6.17", "adafruit:samd@1.2.9"]
DEFAULT_BOARD = "adafruit_feather_m0"

CACHE_DIR_ENV = "ARDUINO_PACKAGES_CACHE_DIR"


def get_cache_root(override: Optional[Path] = None) -> Path:
    """Get the archive cache directory.

    Precedence: explicit override, then ARDUINO_PACKAGES_CACHE_DIR, then
    ~/.arduino-packages/cache.

    Returns:
        Path to the cache directory (not created)
    """
    if override is not None:
        return Path(override).resolve()

    cache_env = os.environ.get(CACHE_DIR_ENV)
    if cache_env:
        return Path(cache_env).resolve()
    return Path.home() / ".arduino-packages" / "cache"


@dataclass(frozen=True)
class PlatformSelection:
    """Packages, architecture and optional pin resolved together.

    Attributes:
        packages: Package names (e.g. ["arduino"])
        architecture: Target architecture (e.g. "samd")
        version: Pinned version, or "" for the latest
    """

    packages: List[str]
    architecture: str
    version: str = ""

    @classmethod
    def parse(cls, text: str) -> "PlatformSelection":
        """Parse "PACKAGE[,PACKAGE...]:ARCH[@VERSION]".

        Examples:
            "arduino:samd@1.6.17" -> (["arduino"], "samd", "1.6.17")
            "adafruit:samd"       -> (["adafruit"], "samd", "")

        Raises:
            ValueError: If the text is not in the expected form
        """
        names, sep, rest = text.partition(":")
        if not sep or not names or not rest:
            raise ValueError(f"Invalid selection '{text}', expected PACKAGE:ARCH[@VERSION]")
        architecture, _, version = rest.partition("@")
        if not architecture:
            raise ValueError(f"Invalid selection '{text}', missing architecture")
        packages = [n.strip() for n in names.split(",") if n.strip()]
        return cls(packages=packages, architecture=architecture, version=version)

    def __str__(self) -> str:
        pin = f"@{self.version}" if self.version else ""
        return f"{','.join(self.packages)}:{self.architecture}{pin}"


@dataclass
class InstallConfig:
    """Settings for one installer run.

    Attributes:
        root_directory: Root of the produced toolchain tree
        cache_dir: Directory holding downloaded archives
        indices: Package index files, in load order
        selections: Platform selections, in installation order
        hosts: Accepted tool host triples (empty: detect from the running host)
        board: Board id whose properties are narrowed after installation
        strict_pin: Fail when a pinned version does not exist
        jobs: Cap on concurrent downloads (None: one per archive)
        dry_run: Resolve and print the plan without executing it
        use_tui: Live progress display (None: auto-detect TTY)
        verbose: Verbose output
    """

    root_directory: Path = DEFAULT_ROOT_DIRECTORY
    cache_dir: Path = field(default_factory=get_cache_root)
    indices: List[Path] = field(default_factory=lambda: [Path(p) for p in DEFAULT_INDICES])
    selections: List[PlatformSelection] = field(default_factory=lambda: [PlatformSelection.parse(s) for s in DEFAULT_SELECTIONS])
    hosts: List[str] = field(default_factory=list)
    board: str = DEFAULT_BOARD
    strict_pin: bool = False
    jobs: Optional[int] = None
    dry_run: bool = False
    use_tui: Optional[bool] = None
    verbose: bool = False
