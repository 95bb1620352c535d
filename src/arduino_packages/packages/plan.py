"""
Installation plan construction.

Expands resolved platforms and their tool dependencies into a flat, ordered
list of InstallFile entries. Destination paths are derived from package name,
role ("hardware" or "tools"), and version, so no two entries share one.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Union
from urllib.parse import urlsplit

from arduino_packages.errors import ManifestError, ToolNotFoundError, ToolVariantNotFoundError

from .index import ResolvedPlatform
from .store import ManifestStore

logger = logging.getLogger(__name__)

HARDWARE = "hardware"
TOOLS = "tools"


def archive_file_name(url: str) -> str:
    """Return the archive file name for a download URL.

    The name is the final segment of the URL path; the host and any query
    string or fragment never contribute to it.

    Examples:
        >>> archive_file_name("https://downloads.arduino.cc/cores/samd-1.6.17.tar.bz2?x=1")
        'samd-1.6.17.tar.bz2'
    """
    return posixpath.basename(urlsplit(url).path)


def _parse_size(size: Union[str, int], url: str) -> int:
    if isinstance(size, int):
        return size
    if size == "":
        return 0
    try:
        return int(size)
    except ValueError as e:
        raise ManifestError(f"Invalid size '{size}' for {url}") from e


@dataclass(frozen=True)
class InstallFile:
    """One archive to download and place.

    Attributes:
        path: Destination directory the archive's top-level directory becomes
        file_name: Archive file name (final URL path segment)
        url: Download URL
        size: Declared archive size in bytes (advisory, used for progress)
        name: Display name (e.g., "arduino/tools/bossac/1.7.0")
        version: Platform or tool version
    """

    path: str
    file_name: str
    url: str
    size: int
    name: str = ""
    version: str = ""


@dataclass
class InstallationPlan:
    """Ordered list of archives to install."""

    files: List[InstallFile] = field(default_factory=list)

    def add(self, path: str, url: str, size: Union[str, int], name: str = "", version: str = "") -> InstallFile:
        """Append an entry for an archive.

        Args:
            path: Destination directory
            url: Download URL
            size: Declared size as published in the manifest
            name: Display name
            version: Platform or tool version

        Returns:
            The new entry

        Raises:
            ManifestError: If size is not an integer
            ValueError: If path is already planned
        """
        if self.contains(path):
            raise ValueError(f"Destination already planned: {path}")
        entry = InstallFile(
            path=path,
            file_name=archive_file_name(url),
            url=url,
            size=_parse_size(size, url),
            name=name or path,
            version=version,
        )
        self.files.append(entry)
        return entry

    def contains(self, path: str) -> bool:
        return any(f.path == path for f in self.files)

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)


def hardware_path(root_directory: Path, resolved: ResolvedPlatform) -> Path:
    return root_directory / resolved.package.name / HARDWARE / resolved.platform.architecture / resolved.platform.version


def tool_path(root_directory: Path, package_name: str, tool_name: str, tool_version: str) -> Path:
    return root_directory / package_name / TOOLS / tool_name / tool_version


def build_plan(
    store: ManifestStore,
    resolved: Iterable[ResolvedPlatform],
    root_directory: Path,
    allowed_hosts: List[str],
) -> InstallationPlan:
    """Build the installation plan for resolved platforms.

    Each platform contributes its hardware archive followed by one archive
    per tool dependency. Tool dependencies are looked up by exact name and
    version, then matched to a download for one of the allowed hosts.

    Args:
        store: Loaded manifests used for tool lookup
        resolved: Selected platform releases, in installation order
        root_directory: Root of the produced directory tree
        allowed_hosts: Host triples accepted for tool downloads

    Returns:
        The complete plan

    Raises:
        ToolNotFoundError: If no index provides a required tool version
        ToolVariantNotFoundError: If a tool has no download for the allowed hosts
        ManifestError: If a declared size is not an integer
    """
    plan = InstallationPlan()
    root_directory = Path(root_directory)

    for item in resolved:
        hw_path = hardware_path(root_directory, item)
        if plan.contains(str(hw_path)):
            # Two platform names can share package, architecture and version
            logger.warning("Skipping %s, %s is already planned", item.key, hw_path)
            continue

        logger.info("Hardware: %s", hw_path)
        plan.add(
            str(hw_path),
            item.platform.url,
            item.platform.size,
            name=f"{item.package.name}/{HARDWARE}/{item.platform.architecture}/{item.platform.version}",
            version=item.platform.version,
        )

        for dependency in item.platform.tools_dependencies:
            tool = store.find_tool(dependency)
            if tool is None:
                raise ToolNotFoundError(f"Unable to find tool {dependency} required by {item.key}")

            system = tool.select_variant(allowed_hosts)
            if system is None:
                hosts = ", ".join(s.host for s in tool.systems)
                raise ToolVariantNotFoundError(f"Tool {tool.name}@{tool.version} has no download for hosts {allowed_hosts} (available: {hosts})")

            path = tool_path(root_directory, item.package.name, tool.name, tool.version)
            if plan.contains(str(path)):
                logger.debug("Tool already planned: %s", path)
                continue

            logger.info("Tool: %s", path)
            plan.add(
                str(path),
                system.url,
                system.size,
                name=f"{item.package.name}/{TOOLS}/{tool.name}/{tool.version}",
                version=tool.version,
            )

    return plan


def hardware_paths(plan: InstallationPlan) -> List[Path]:
    """Return the hardware destinations of a plan, in plan order."""
    return [Path(f.path) for f in plan.files if Path(f.path).parent.parent.name == HARDWARE]
