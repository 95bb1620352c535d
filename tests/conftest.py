"""Shared package index fixtures.

The indices mirror the layout of the real Arduino and Adafruit package
indices, trimmed to the SAMD platforms and the tools they depend on.
"""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from arduino_packages.packages.index import PackagesIndex
from arduino_packages.packages.store import ManifestStore


def make_platform(
    name: str,
    version: str,
    architecture: str = "samd",
    deps: list[tuple[str, str, str]] | None = None,
    url: str | None = None,
) -> dict[str, Any]:
    """Build a platform entry as found in a package index."""
    file_name = f"{name.lower().replace(' ', '-')}-{version}.tar.bz2"
    return {
        "name": name,
        "architecture": architecture,
        "version": version,
        "category": "Arduino",
        "help": {"online": "http://www.arduino.cc/en/Reference/HomePage"},
        "url": url or f"https://downloads.example.com/cores/{file_name}",
        "archiveFileName": file_name,
        "checksum": "SHA-256:" + "0" * 64,
        "size": "1234567",
        "boards": [{"name": "Arduino Zero"}, {"name": "Arduino MKR1000"}],
        "toolsDependencies": [{"packager": p, "name": n, "version": v} for p, n, v in (deps or [])],
    }


def make_tool(name: str, version: str, hosts: list[str]) -> dict[str, Any]:
    """Build a tool entry with one system per host."""
    return {
        "name": name,
        "version": version,
        "systems": [
            {
                "host": host,
                "url": f"https://downloads.example.com/tools/{name}-{version}-{host}.tar.bz2",
                "archiveFileName": f"{name}-{version}-{host}.tar.bz2",
                "checksum": "SHA-256:" + "1" * 64,
                "size": "4096",
            }
            for host in hosts
        ],
    }


LINUX_AND_MAC = ["i386-apple-darwin11", "x86_64-pc-linux-gnu", "i686-mingw32"]

SAMD_DEPS = [
    ("arduino", "arm-none-eabi-gcc", "4.8.3-2014q1"),
    ("arduino", "bossac", "1.7.0"),
]


@pytest.fixture
def arduino_index_data() -> dict[str, Any]:
    return {
        "packages": [
            {
                "name": "arduino",
                "maintainer": "Arduino",
                "websiteURL": "http://www.arduino.cc/",
                "email": "packages@arduino.cc",
                "help": {"online": "http://www.arduino.cc/en/Reference/HomePage"},
                "platforms": [
                    make_platform("Arduino SAMD Boards", "1.6.15", deps=SAMD_DEPS),
                    make_platform("Arduino SAMD Boards", "1.6.20", deps=SAMD_DEPS),
                    make_platform("Arduino SAMD Boards", "1.6.17", deps=SAMD_DEPS),
                    make_platform("Arduino AVR Boards", "1.6.20", architecture="avr"),
                ],
                "tools": [
                    make_tool("arm-none-eabi-gcc", "4.8.3-2014q1", LINUX_AND_MAC),
                    make_tool("bossac", "1.6.1-arduino", LINUX_AND_MAC),
                    make_tool("bossac", "1.7.0", LINUX_AND_MAC),
                ],
            }
        ]
    }


@pytest.fixture
def adafruit_index_data() -> dict[str, Any]:
    return {
        "packages": [
            {
                "name": "adafruit",
                "maintainer": "Adafruit",
                "websiteURL": "https://adafruit.com",
                "email": "support@adafruit.com",
                "platforms": [
                    make_platform("Adafruit SAMD Boards", "1.2.8", deps=SAMD_DEPS),
                    make_platform("Adafruit SAMD Boards", "1.2.9", deps=SAMD_DEPS),
                ],
                "tools": [],
            }
        ]
    }


@pytest.fixture
def write_index(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Return a function writing index data to a JSON file under tmp_path."""

    def _write(file_name: str, data: Any) -> Path:
        path = tmp_path / file_name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def store(adafruit_index_data: dict[str, Any], arduino_index_data: dict[str, Any]) -> ManifestStore:
    """Store loaded the same way the installer does: Adafruit first."""
    store = ManifestStore()
    store.add_index(PackagesIndex.from_dict(adafruit_index_data, source="package_adafruit_index.json"))
    store.add_index(PackagesIndex.from_dict(arduino_index_data, source="package_index.json"))
    return store
