"""
Platform and host resolution.

select_by_architecture() collapses every loaded index into one platform
release per platform name, preferring the highest semantic version unless a
pinned version is requested. host_identifiers() provides the default list of
host triples accepted when choosing a tool download.
"""

import logging
import platform as platform_module
from typing import Dict, Iterable, List, Optional

import semantic_version

from arduino_packages.errors import PinnedVersionNotFoundError, ResolutionError

from .index import ResolvedPlatform
from .store import ManifestStore

logger = logging.getLogger(__name__)

# Host triples published in Arduino package indices, by (system, machine)
HOST_IDENTIFIERS: Dict[tuple, List[str]] = {
    ("linux", "x86_64"): ["x86_64-pc-linux-gnu", "x86_64-linux-gnu"],
    ("linux", "i686"): ["i686-pc-linux-gnu", "i686-linux-gnu"],
    ("linux", "aarch64"): ["aarch64-linux-gnu"],
    ("linux", "armv7l"): ["arm-linux-gnueabihf"],
    ("darwin", "x86_64"): ["x86_64-apple-darwin", "i386-apple-darwin11"],
    ("darwin", "arm64"): ["arm64-apple-darwin", "x86_64-apple-darwin", "i386-apple-darwin11"],
    ("windows", "x86_64"): ["x86_64-mingw32", "i686-mingw32"],
    ("windows", "i686"): ["i686-mingw32"],
}

_MACHINE_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "i686",
    "x86": "i686",
    "arm64": "aarch64",
}


def host_identifiers(system: Optional[str] = None, machine: Optional[str] = None) -> List[str]:
    """Return the host triples accepted for a machine.

    Args:
        system: OS name as reported by platform.system() (default: current host)
        machine: CPU name as reported by platform.machine() (default: current host)

    Returns:
        Ordered list of acceptable host triples

    Raises:
        ResolutionError: If the host is not a known Arduino tool host
    """
    system = (system or platform_module.system()).lower()
    machine = (machine or platform_module.machine()).lower()

    # Apple reports arm64 natively; everyone else calls it aarch64
    if not (system == "darwin" and machine == "arm64"):
        machine = _MACHINE_ALIASES.get(machine, machine)

    hosts = HOST_IDENTIFIERS.get((system, machine))
    if hosts is None:
        raise ResolutionError(f"No known tool host identifiers for {system}/{machine}")
    return list(hosts)


def parse_version(value: str, where: str) -> semantic_version.Version:
    """Parse a platform version string.

    Versions are coerced to semantic versions, so "1.6" reads as 1.6.0 and a
    suffix such as "-arduino" is a pre-release tag. Pre-releases sort below
    their release: 1.0.0-rc1 < 1.0.0 < 1.0.1-arduino.

    Raises:
        ResolutionError: If the version has no leading numeric component
    """
    try:
        return semantic_version.Version.coerce(value)
    except ValueError as e:
        raise ResolutionError(f"Invalid version '{value}' for {where}") from e


def select_by_architecture(
    store: ManifestStore,
    package_names: Iterable[str],
    architecture: str,
    pinned_version: str = "",
    strict_pin: bool = False,
) -> Dict[str, ResolvedPlatform]:
    """Select one platform release per platform name.

    Candidates are the platforms of the named packages that target the
    requested architecture, grouped by platform name. Each group is sorted by
    version, highest first; the sort is stable, so among equal versions the
    first one scanned (earliest loaded index) is kept.

    A pinned version replaces the default with the first candidate whose
    version string equals the pin exactly. When no candidate matches, the
    highest version is kept and a warning is logged, unless strict_pin is set.

    Args:
        store: Loaded manifests
        package_names: Package names to consider (e.g., {"arduino"})
        architecture: Target architecture (e.g., "samd")
        pinned_version: Exact version to select, or "" for the latest
        strict_pin: Raise instead of falling back when the pin does not match

    Returns:
        Mapping of platform name to the selected ResolvedPlatform

    Raises:
        ResolutionError: If a candidate version cannot be parsed
        PinnedVersionNotFoundError: If strict_pin is set and the pin misses
    """
    wanted = set(package_names)
    by_name: Dict[str, List[ResolvedPlatform]] = {}

    for _index, package in store.packages():
        if package.name not in wanted:
            continue
        for release in package.platforms:
            if release.architecture == architecture:
                by_name.setdefault(release.name, []).append(ResolvedPlatform(package=package, platform=release))

    selected: Dict[str, ResolvedPlatform] = {}
    for name, candidates in by_name.items():
        keys = [parse_version(c.platform.version, f"{c.package.name}:{name}") for c in candidates]
        ordered = [c for _key, c in sorted(zip(keys, candidates), key=lambda pair: pair[0], reverse=True)]
        choice = ordered[0]

        if pinned_version:
            pinned = next((c for c in ordered if c.platform.version == pinned_version), None)
            if pinned is not None:
                choice = pinned
            elif strict_pin:
                available = ", ".join(c.platform.version for c in ordered)
                raise PinnedVersionNotFoundError(f"Platform '{name}' ({architecture}) has no version {pinned_version}; available: {available}")
            else:
                logger.warning(
                    "Pinned version %s not found for platform '%s' (%s), using %s",
                    pinned_version,
                    name,
                    architecture,
                    choice.platform.version,
                )

        selected[name] = choice
        logger.debug("Selected %s", choice.key)

    return selected
