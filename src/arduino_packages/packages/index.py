"""
Manifest document models.

This module provides frozen dataclasses for the Arduino package index format
(package_index.json and third-party package_*_index.json files). Fields the
installer never interprets (checksums, help links, maintainer details, board
lists) are carried through unchanged so that to_dict() reproduces the source
document, and unknown keys are kept in each model's ``extra`` mapping.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Union

from arduino_packages.errors import ManifestError


def _require_str(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key, "")
    if not isinstance(value, str):
        raise ManifestError(f"{where}: field '{key}' must be a string, got {type(value).__name__}")
    return value


def _require_list(data: Dict[str, Any], key: str, where: str) -> List[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ManifestError(f"{where}: field '{key}' must be a list, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, dict):
            raise ManifestError(f"{where}: entries of '{key}' must be objects")
    return value


def _size_value(data: Dict[str, Any], where: str) -> Union[str, int]:
    # Some indices publish size as a number instead of a string; keep it as published
    value = data.get("size", "")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ManifestError(f"{where}: field 'size' must be a string or integer")
    return value


def _extra(data: Dict[str, Any], known: tuple) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


def _present(data: Dict[str, Any], known: tuple) -> FrozenSet[str]:
    return frozenset(k for k in known if k in data)


def _emit(fields: Dict[str, Any], present: Optional[FrozenSet[str]], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize known fields, limited to the keys the source document had."""
    if present is None:
        fields = {k: v for k, v in fields.items() if v is not None}
    else:
        fields = {k: v for k, v in fields.items() if k in present}
    return {**fields, **extra}


@dataclass(frozen=True)
class ToolDependency:
    """Reference from a platform to a tool release.

    Attributes:
        packager: Package that publishes the tool (informational only)
        name: Tool name (e.g., "arm-none-eabi-gcc")
        version: Exact tool version required
    """

    packager: str
    name: str
    version: str
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)
    present: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    _KEYS = ("packager", "name", "version")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolDependency":
        where = "toolsDependencies"
        return cls(
            packager=_require_str(data, "packager", where),
            name=_require_str(data, "name", where),
            version=_require_str(data, "version", where),
            extra=_extra(data, cls._KEYS),
            present=_present(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _emit({"packager": self.packager, "name": self.name, "version": self.version}, self.present, self.extra)

    def __str__(self) -> str:
        return f"{self.packager}:{self.name}@{self.version}"


@dataclass(frozen=True)
class ToolSystem:
    """Host-specific download of a tool release."""

    host: str
    url: str
    archive_file_name: str = ""
    checksum: str = ""
    size: Union[str, int] = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)
    present: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    _KEYS = ("host", "url", "archiveFileName", "checksum", "size")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolSystem":
        where = "systems"
        return cls(
            host=_require_str(data, "host", where),
            url=_require_str(data, "url", where),
            archive_file_name=_require_str(data, "archiveFileName", where),
            checksum=_require_str(data, "checksum", where),
            size=_size_value(data, where),
            extra=_extra(data, cls._KEYS),
            present=_present(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _emit(
            {
                "host": self.host,
                "url": self.url,
                "archiveFileName": self.archive_file_name,
                "checksum": self.checksum,
                "size": self.size,
            },
            self.present,
            self.extra,
        )


@dataclass(frozen=True)
class Tool:
    """A versioned tool release with one download per host."""

    name: str
    version: str
    systems: List[ToolSystem] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)
    present: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    _KEYS = ("name", "version", "systems")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tool":
        where = f"tool '{data.get('name', '?')}'"
        return cls(
            name=_require_str(data, "name", where),
            version=_require_str(data, "version", where),
            systems=[ToolSystem.from_dict(s) for s in _require_list(data, "systems", where)],
            extra=_extra(data, cls._KEYS),
            present=_present(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _emit(
            {
                "name": self.name,
                "version": self.version,
                "systems": [s.to_dict() for s in self.systems],
            },
            self.present,
            self.extra,
        )

    def select_variant(self, allowed_hosts: List[str]) -> Optional[ToolSystem]:
        """Return the first system whose host is in allowed_hosts.

        Systems are scanned in declared order, so the manifest order decides
        between several acceptable hosts, not the order of allowed_hosts.

        Args:
            allowed_hosts: Host triples accepted for the running machine

        Returns:
            Matching ToolSystem, or None if no system is allowed
        """
        for system in self.systems:
            for candidate in allowed_hosts:
                if candidate == system.host:
                    return system
        return None


@dataclass(frozen=True)
class PackagePlatform:
    """A versioned hardware platform release (cores, variants, boards.txt)."""

    name: str
    architecture: str
    version: str
    url: str
    archive_file_name: str = ""
    checksum: str = ""
    size: Union[str, int] = ""
    category: str = ""
    help: Optional[Dict[str, Any]] = None
    boards: List[Dict[str, Any]] = field(default_factory=list)
    tools_dependencies: List[ToolDependency] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)
    present: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    _KEYS = (
        "name",
        "architecture",
        "version",
        "category",
        "help",
        "url",
        "archiveFileName",
        "checksum",
        "size",
        "boards",
        "toolsDependencies",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackagePlatform":
        where = f"platform '{data.get('name', '?')}'"
        help_data = data.get("help")
        if help_data is not None and not isinstance(help_data, dict):
            raise ManifestError(f"{where}: field 'help' must be an object")
        boards = _require_list(data, "boards", where)
        for board in boards:
            _require_str(board, "name", where)
        return cls(
            name=_require_str(data, "name", where),
            architecture=_require_str(data, "architecture", where),
            version=_require_str(data, "version", where),
            url=_require_str(data, "url", where),
            archive_file_name=_require_str(data, "archiveFileName", where),
            checksum=_require_str(data, "checksum", where),
            size=_size_value(data, where),
            category=_require_str(data, "category", where),
            help=help_data,
            boards=boards,
            tools_dependencies=[ToolDependency.from_dict(d) for d in _require_list(data, "toolsDependencies", where)],
            extra=_extra(data, cls._KEYS),
            present=_present(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _emit(
            {
                "name": self.name,
                "architecture": self.architecture,
                "version": self.version,
                "category": self.category,
                "help": self.help,
                "url": self.url,
                "archiveFileName": self.archive_file_name,
                "checksum": self.checksum,
                "size": self.size,
                "boards": self.boards,
                "toolsDependencies": [d.to_dict() for d in self.tools_dependencies],
            },
            self.present,
            self.extra,
        )


@dataclass(frozen=True)
class Package:
    """A vendor entry in a package index."""

    name: str
    maintainer: str = ""
    website_url: str = ""
    email: str = ""
    platforms: List[PackagePlatform] = field(default_factory=list)
    tools: List[Tool] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)
    present: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    _KEYS = ("name", "maintainer", "websiteURL", "email", "platforms", "tools")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        where = f"package '{data.get('name', '?')}'"
        return cls(
            name=_require_str(data, "name", where),
            maintainer=_require_str(data, "maintainer", where),
            website_url=_require_str(data, "websiteURL", where),
            email=_require_str(data, "email", where),
            platforms=[PackagePlatform.from_dict(p) for p in _require_list(data, "platforms", where)],
            tools=[Tool.from_dict(t) for t in _require_list(data, "tools", where)],
            extra=_extra(data, cls._KEYS),
            present=_present(data, cls._KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _emit(
            {
                "name": self.name,
                "maintainer": self.maintainer,
                "websiteURL": self.website_url,
                "email": self.email,
                "platforms": [p.to_dict() for p in self.platforms],
                "tools": [t.to_dict() for t in self.tools],
            },
            self.present,
            self.extra,
        )


@dataclass(frozen=True)
class PackagesIndex:
    """One loaded manifest document.

    Attributes:
        packages: Packages in document order
        source: Path the document was loaded from (empty for in-memory indices)
    """

    packages: List[Package] = field(default_factory=list)
    source: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)
    present: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Any, source: str = "") -> "PackagesIndex":
        if not isinstance(data, dict):
            raise ManifestError(f"{source or 'index'}: top level must be an object")
        where = source or "index"
        return cls(
            packages=[Package.from_dict(p) for p in _require_list(data, "packages", where)],
            source=source,
            extra=_extra(data, ("packages",)),
            present=_present(data, ("packages",)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _emit({"packages": [p.to_dict() for p in self.packages]}, self.present, self.extra)


@dataclass(frozen=True)
class ResolvedPlatform:
    """A package paired with the platform release chosen for it."""

    package: Package
    platform: PackagePlatform

    @property
    def key(self) -> str:
        return f"{self.package.name}:{self.platform.name}@{self.platform.version}"
