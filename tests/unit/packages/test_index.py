"""Unit tests for the package index models."""

import copy

import pytest

from arduino_packages.errors import ErrorKind, ManifestError
from arduino_packages.packages.index import PackagePlatform, PackagesIndex, Tool, ToolSystem


class TestPackagesIndexParsing:
    """Tests for PackagesIndex.from_dict()."""

    def test_parses_packages_platforms_and_tools(self, arduino_index_data):
        index = PackagesIndex.from_dict(arduino_index_data, source="package_index.json")

        assert index.source == "package_index.json"
        assert len(index.packages) == 1
        package = index.packages[0]
        assert package.name == "arduino"
        assert package.email == "packages@arduino.cc"
        assert len(package.platforms) == 4
        assert len(package.tools) == 3

        platform = package.platforms[0]
        assert platform.architecture == "samd"
        assert platform.version == "1.6.15"
        assert [b["name"] for b in platform.boards] == ["Arduino Zero", "Arduino MKR1000"]
        assert [d.name for d in platform.tools_dependencies] == ["arm-none-eabi-gcc", "bossac"]

    def test_round_trip_keeps_uninterpreted_fields(self, arduino_index_data):
        """Checksums, help links, maintainer details and unknown keys survive to_dict()."""
        original = copy.deepcopy(arduino_index_data)

        index = PackagesIndex.from_dict(arduino_index_data)

        assert index.to_dict() == original

    def test_round_trip_of_sparse_document(self):
        """Keys absent from the source are not invented, and published values keep their type."""
        data = {
            "packages": [
                {
                    "name": "a",
                    "platforms": [
                        {
                            "name": "A Boards",
                            "architecture": "samd",
                            "version": "1.0.0",
                            "url": "https://a/boards-1.0.0.zip",
                            "size": 1234,
                            "help": {"online": "u", "offline": "v"},
                            "boards": [{"name": "Zero", "id": "zero"}],
                        }
                    ],
                    "tools": [{"name": "bossac", "version": "1.7.0", "systems": [{"host": "x86_64-pc-linux-gnu", "url": "https://a/bossac.zip"}]}],
                }
            ]
        }
        original = copy.deepcopy(data)

        assert PackagesIndex.from_dict(data).to_dict() == original

    def test_numeric_size_is_kept_as_published(self, arduino_index_data):
        arduino_index_data["packages"][0]["platforms"][0]["size"] = 1234567
        index = PackagesIndex.from_dict(arduino_index_data)
        assert index.packages[0].platforms[0].size == 1234567

    def test_in_memory_models_omit_unset_help(self):
        data = PackagePlatform(name="Boards", architecture="samd", version="1.0.0", url="https://x/boards.zip").to_dict()

        assert "help" not in data
        assert data["boards"] == []
        assert data["size"] == ""

    def test_missing_optional_lists(self):
        index = PackagesIndex.from_dict({"packages": [{"name": "empty"}]})
        assert index.packages[0].platforms == []
        assert index.packages[0].tools == []

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"packages": {"name": "arduino"}},
            {"packages": ["arduino"]},
            {"packages": [{"name": 42}]},
            {"packages": [{"name": "arduino", "platforms": [{"name": "x", "help": "not-an-object"}]}]},
            {"packages": [{"name": "arduino", "tools": [{"name": "bossac", "systems": "none"}]}]},
        ],
    )
    def test_schema_errors(self, data):
        with pytest.raises(ManifestError) as exc_info:
            PackagesIndex.from_dict(data)
        assert exc_info.value.kind == ErrorKind.CONFIGURATION


class TestToolSelectVariant:
    """Tests for Tool.select_variant()."""

    def _tool(self, *hosts):
        return Tool(name="bossac", version="1.7.0", systems=[ToolSystem(host=h, url=f"https://x/{h}.tar.gz") for h in hosts])

    def test_selects_allowed_host(self):
        tool = self._tool("i386-apple-darwin11", "x86_64-pc-linux-gnu")
        system = tool.select_variant(["x86_64-pc-linux-gnu", "x86_64-linux-gnu"])
        assert system is not None
        assert system.host == "x86_64-pc-linux-gnu"

    def test_declared_order_wins_over_allowed_order(self):
        tool = self._tool("x86_64-linux-gnu", "x86_64-pc-linux-gnu")
        system = tool.select_variant(["x86_64-pc-linux-gnu", "x86_64-linux-gnu"])
        assert system is not None
        assert system.host == "x86_64-linux-gnu"

    def test_no_allowed_host(self):
        tool = self._tool("i386-apple-darwin11", "i686-mingw32")
        assert tool.select_variant(["x86_64-pc-linux-gnu"]) is None

    def test_empty_allow_list(self):
        assert self._tool("x86_64-pc-linux-gnu").select_variant([]) is None
