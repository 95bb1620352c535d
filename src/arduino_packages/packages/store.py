"""
Manifest store.

Holds every loaded package index in load order and answers the lookups the
resolver and plan builder need. Documents are immutable after load.
"""

import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from arduino_packages.errors import ManifestError

from .index import Package, PackagesIndex, Tool, ToolDependency

logger = logging.getLogger(__name__)


class ManifestStore:
    """Collection of loaded package indices.

    Usage:
        store = ManifestStore()
        store.load("package_adafruit_index.json")
        store.load("package_index.json")
        tool = store.find_tool(dependency)
    """

    def __init__(self) -> None:
        self._indices: List[PackagesIndex] = []

    def load(self, path: Union[str, Path]) -> PackagesIndex:
        """Load a JSON package index and append it to the store.

        Args:
            path: Path to the index file

        Returns:
            The parsed index

        Raises:
            ManifestError: If the file is missing, unreadable, not JSON, or
                does not match the package index schema
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(f"Cannot read package index {path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid JSON in package index {path}: {e}") from e

        index = PackagesIndex.from_dict(data, source=str(path))
        self.add_index(index)
        logger.debug("Loaded %s (%d packages)", path, len(index.packages))
        return index

    def add_index(self, index: PackagesIndex) -> None:
        """Append an already-parsed index."""
        self._indices.append(index)

    @property
    def indices(self) -> List[PackagesIndex]:
        return list(self._indices)

    def packages(self) -> Iterator[Tuple[PackagesIndex, Package]]:
        """Iterate packages in load order, then document order."""
        for index in self._indices:
            for package in index.packages:
                yield index, package

    def find_tool(self, dependency: ToolDependency) -> Optional[Tool]:
        """Find the first tool matching a dependency's name and version.

        The packager named by the dependency is not consulted; tools are
        matched by exact name and version across every loaded index.

        Args:
            dependency: Tool dependency from a platform release

        Returns:
            The first matching Tool, or None if no index provides it
        """
        for _index, package in self.packages():
            for tool in package.tools:
                if tool.name == dependency.name and tool.version == dependency.version:
                    return tool
        return None
