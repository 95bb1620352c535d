"""Package index loading, platform resolution, and installation planning."""

from .index import (
    Package,
    PackagePlatform,
    PackagesIndex,
    ResolvedPlatform,
    Tool,
    ToolDependency,
    ToolSystem,
)
from .plan import InstallationPlan, InstallFile, archive_file_name, build_plan, hardware_paths
from .resolver import host_identifiers, select_by_architecture
from .store import ManifestStore

__all__ = [
    "InstallFile",
    "InstallationPlan",
    "ManifestStore",
    "Package",
    "PackagePlatform",
    "PackagesIndex",
    "ResolvedPlatform",
    "Tool",
    "ToolDependency",
    "ToolSystem",
    "archive_file_name",
    "build_plan",
    "hardware_paths",
    "host_identifiers",
    "select_by_architecture",
]
