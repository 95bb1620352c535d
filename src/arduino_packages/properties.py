"""
Flat key=value property files (boards.txt, platform.txt).

parse_properties() is pure: it returns the parsed mapping together with the
keys that were overwritten, and leaves it to the caller to log them.

Only whole lines whose first non-blank character is "#" are comments. A "#"
after the start of a line is part of the value, so "build.extra_flags=-DX #1"
keeps "-DX #1". Every reassignment of a key is reported as a collision, even
when the earlier value was empty or equal to the new one.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from arduino_packages.errors import PropertiesError


@dataclass(frozen=True)
class KeyCollision:
    """A key that was assigned more than once.

    Attributes:
        key: Dotted property key
        old_value: Value that was overwritten
        new_value: Value that won
        source: File that provided the winning value (empty for in-memory input)
    """

    key: str
    old_value: str
    new_value: str
    source: str = ""


def parse_properties(
    lines: Iterable[str],
    base: Optional[Dict[str, str]] = None,
    source: str = "",
) -> Tuple[Dict[str, str], List[KeyCollision]]:
    """Parse key=value lines into a flat mapping.

    Blank lines and lines starting with '#' are skipped. Each line is split at
    the first '='; lines without one are ignored. Later assignments overwrite
    earlier ones, including those already present in base.

    Args:
        lines: Lines of a properties file
        base: Existing mapping to merge into (not modified)
        source: Name reported in collisions

    Returns:
        Tuple of (merged mapping, collisions in encounter order)
    """
    merged = dict(base or {})
    collisions: List[KeyCollision] = []

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if key in merged:
            collisions.append(KeyCollision(key=key, old_value=merged[key], new_value=value, source=source))
        merged[key] = value

    return merged, collisions


class Properties:
    """Flat property map loaded from one or more files."""

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self.map: Dict[str, str] = dict(values or {})

    def add(self, path: Union[str, Path]) -> List[KeyCollision]:
        """Merge a properties file into this map.

        Args:
            path: File to read

        Returns:
            Keys overwritten by this file

        Raises:
            PropertiesError: If the file cannot be read
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PropertiesError(f"Cannot read {path}: {e}") from e

        self.map, collisions = parse_properties(text.splitlines(), base=self.map, source=str(path))
        return collisions

    def add_under(self, parent: Union[str, Path], name: str) -> List[KeyCollision]:
        """Merge every file called name found below parent.

        Files are visited in sorted walk order so the result is stable.

        Args:
            parent: Directory to search recursively
            name: File name to match (e.g. "boards.txt")

        Returns:
            Collisions from all merged files
        """
        collisions: List[KeyCollision] = []
        for dirpath, dirnames, filenames in os.walk(parent):
            dirnames.sort()
            if name in filenames:
                collisions.extend(self.add(Path(dirpath) / name))
        return collisions

    def narrow(self, prefix: str) -> "Properties":
        """Return the keys under prefix with the prefix stripped.

        Example:
            {"uno.name": "Arduino Uno", "uno.build.mcu": "atmega328p"}
            narrowed to "uno" gives {"name": "Arduino Uno", "build.mcu": "atmega328p"}
        """
        dotted = prefix + "."
        return Properties({key[len(dotted) :]: value for key, value in self.map.items() if key.startswith(dotted)})

    def get(self, key: str, default: str = "") -> str:
        return self.map.get(key, default)

    def __len__(self) -> int:
        return len(self.map)

    def __contains__(self, key: object) -> bool:
        return key in self.map


class Boards(Properties):
    """Properties loaded from boards.txt files."""

    FILE_NAME = "boards.txt"


class Platforms(Properties):
    """Properties loaded from platform.txt files."""

    FILE_NAME = "platform.txt"
