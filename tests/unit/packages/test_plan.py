"""Unit tests for installation plan construction."""

from pathlib import Path

import pytest

from arduino_packages.errors import ManifestError, ToolNotFoundError, ToolVariantNotFoundError
from arduino_packages.packages.index import PackagesIndex
from arduino_packages.packages.plan import InstallationPlan, archive_file_name, build_plan, hardware_paths
from arduino_packages.packages.resolver import select_by_architecture
from arduino_packages.packages.store import ManifestStore

from ...conftest import make_platform, make_tool

LINUX_HOSTS = ["x86_64-pc-linux-gnu", "x86_64-linux-gnu"]


class TestArchiveFileName:
    """Tests for archive_file_name()."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://downloads.arduino.cc/cores/samd-1.6.17.tar.bz2", "samd-1.6.17.tar.bz2"),
            ("https://downloads.arduino.cc/cores/samd-1.6.17.tar.bz2?token=abc/def.zip", "samd-1.6.17.tar.bz2"),
            ("http://mirror.example.org:8080/a/b/samd-1.6.17.tar.bz2#frag", "samd-1.6.17.tar.bz2"),
            ("https://github.com/owner/repo/releases/download/v1.0/tool%20x.zip", "tool%20x.zip"),
        ],
    )
    def test_final_path_segment(self, url, expected):
        assert archive_file_name(url) == expected


class TestInstallationPlan:
    """Tests for InstallationPlan.add()."""

    def test_add_derives_file_name_and_size(self):
        plan = InstallationPlan()
        entry = plan.add("/tmp/working/arduino/hardware/samd/1.6.17", "https://x/y/samd.tar.bz2?a=b", "1234")

        assert entry.file_name == "samd.tar.bz2"
        assert entry.size == 1234
        assert len(plan) == 1

    def test_empty_size_is_zero(self):
        assert InstallationPlan().add("/p", "https://x/a.zip", "").size == 0

    def test_invalid_size(self):
        with pytest.raises(ManifestError, match="Invalid size"):
            InstallationPlan().add("/p", "https://x/a.zip", "12kb")

    def test_duplicate_destination_rejected(self):
        plan = InstallationPlan()
        plan.add("/p", "https://x/a.zip", "1")
        with pytest.raises(ValueError, match="already planned"):
            plan.add("/p", "https://x/b.zip", "1")

    def test_integer_size(self):
        """Indices that publish size as a JSON number are accepted as is."""
        assert InstallationPlan().add("/p", "https://x/a.zip", 4096).size == 4096


class TestBuildPlan:
    """Tests for build_plan()."""

    def test_hardware_then_tools(self, store, tmp_path):
        resolved = select_by_architecture(store, {"arduino"}, "samd", pinned_version="1.6.17")

        plan = build_plan(store, resolved.values(), tmp_path, LINUX_HOSTS)

        paths = [Path(f.path).relative_to(tmp_path).as_posix() for f in plan.files]
        assert paths == [
            "arduino/hardware/samd/1.6.17",
            "arduino/tools/arm-none-eabi-gcc/4.8.3-2014q1",
            "arduino/tools/bossac/1.7.0",
        ]
        assert plan.files[0].file_name == "arduino-samd-boards-1.6.17.tar.bz2"
        assert plan.files[0].size == 1234567
        assert plan.files[2].url.endswith("bossac-1.7.0-x86_64-pc-linux-gnu.tar.bz2")

    def test_tools_are_placed_under_the_requesting_package(self, store, tmp_path):
        resolved = select_by_architecture(store, {"adafruit"}, "samd")

        plan = build_plan(store, resolved.values(), tmp_path, LINUX_HOSTS)

        paths = [Path(f.path).relative_to(tmp_path).as_posix() for f in plan.files]
        assert paths == [
            "adafruit/hardware/samd/1.2.9",
            "adafruit/tools/arm-none-eabi-gcc/4.8.3-2014q1",
            "adafruit/tools/bossac/1.7.0",
        ]

    def test_resolved_tools_match_dependencies(self, store, tmp_path):
        resolved = list(select_by_architecture(store, {"arduino"}, "samd").values())
        plan = build_plan(store, resolved, tmp_path, LINUX_HOSTS)

        for dependency in resolved[0].platform.tools_dependencies:
            tool = store.find_tool(dependency)
            assert tool is not None
            assert (tool.name, tool.version) == (dependency.name, dependency.version)
            assert plan.contains(str(tmp_path / "arduino" / "tools" / tool.name / tool.version))

    def test_missing_tool_aborts(self, tmp_path):
        store = ManifestStore()
        store.add_index(
            PackagesIndex.from_dict(
                {
                    "packages": [
                        {
                            "name": "arduino",
                            "platforms": [make_platform("Boards", "1.0.0", deps=[("arduino", "openocd", "0.9.0")])],
                            "tools": [make_tool("openocd", "0.10.0", LINUX_HOSTS)],
                        }
                    ]
                }
            )
        )
        resolved = select_by_architecture(store, {"arduino"}, "samd")

        with pytest.raises(ToolNotFoundError, match="openocd@0.9.0"):
            build_plan(store, resolved.values(), tmp_path, LINUX_HOSTS)

    def test_missing_host_variant_aborts(self, store, tmp_path):
        resolved = select_by_architecture(store, {"arduino"}, "samd")
        with pytest.raises(ToolVariantNotFoundError, match="arm-none-eabi-gcc"):
            build_plan(store, resolved.values(), tmp_path, ["aarch64-linux-gnu"])

    def test_shared_tool_is_planned_once(self, tmp_path):
        deps = [("arduino", "bossac", "1.7.0")]
        store = ManifestStore()
        store.add_index(
            PackagesIndex.from_dict(
                {
                    "packages": [
                        {
                            "name": "arduino",
                            "platforms": [
                                make_platform("SAMD Boards", "1.0.0", deps=deps),
                                make_platform("SAMD Beta Boards", "1.1.0", deps=deps),
                            ],
                            "tools": [make_tool("bossac", "1.7.0", LINUX_HOSTS)],
                        }
                    ]
                }
            )
        )
        resolved = select_by_architecture(store, {"arduino"}, "samd")

        plan = build_plan(store, resolved.values(), tmp_path, LINUX_HOSTS)

        assert len(plan) == 3
        assert len({f.path for f in plan.files}) == 3

    def test_hardware_paths(self, store, tmp_path):
        resolved = list(select_by_architecture(store, {"arduino"}, "samd").values())
        resolved += list(select_by_architecture(store, {"adafruit"}, "samd").values())

        plan = build_plan(store, resolved, tmp_path, LINUX_HOSTS)

        assert hardware_paths(plan) == [
            tmp_path / "arduino" / "hardware" / "samd" / "1.6.20",
            tmp_path / "adafruit" / "hardware" / "samd" / "1.2.9",
        ]
