"""Tests for PluginManager — discovery and schema collection."""

import logging
from pathlib import Path
from typing import ClassVar

import pytest

from metaagent.domain.records import Record
from metaagent.plugins import PluginManager, hookimpl


class Planet(Record):
    schema_name: ClassVar[str] = "planet"

    name: str = ""
    moons: int = 0


class _SchemaPlugin:
    @hookimpl
    def metaagent_register_schemas(self) -> list[type[Record]]:
        return [Planet]


class _MixedPlugin:
    @hookimpl
    def metaagent_register_schemas(self) -> list[object]:
        return [Planet, dict, "planet"]


class _NotAListPlugin:
    @hookimpl
    def metaagent_register_schemas(self) -> object:
        return Planet


class _RaisingPlugin:
    @hookimpl
    def metaagent_register_schemas(self) -> list[type[Record]]:
        raise RuntimeError("plugin exploded")


class _SilentPlugin:
    @hookimpl
    def metaagent_register_schemas(self) -> None:
        return None


_LOCAL_PLUGIN_SRC = """\
from typing import ClassVar

from metaagent.domain.records import Record
from metaagent.plugins import hookimpl


class Moon(Record):
    schema_name: ClassVar[str] = "moon"

    name: str = ""


class MoonPlugin:
    @hookimpl
    def metaagent_register_schemas(self):
        return [Moon]
"""

_SYNTAX_ERROR_SRC = """\
def broken(
"""

_NO_HOOKS_SRC = """\
class PlainClass:
    def hello(self) -> str:
        return "world"
"""


class TestPluginManager:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "metaagent_register_schemas")

    def test_register_plugin_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_SchemaPlugin())
        assert "_SchemaPlugin" in pm.list_plugin_names()

    def test_collect_schemas(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_SchemaPlugin(), name="planets")
        assert pm.collect_schemas() == {"planets": [Planet]}

    def test_non_record_items_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        pm.register_plugin(_MixedPlugin(), name="mixed")
        with caplog.at_level(logging.WARNING, logger="metaagent.plugins.manager"):
            collected = pm.collect_schemas()
        assert collected == {"mixed": [Planet]}
        assert "not a Record subclass" in caplog.text

    def test_non_list_return_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        pm.register_plugin(_NotAListPlugin(), name="bad")
        with caplog.at_level(logging.WARNING, logger="metaagent.plugins.manager"):
            assert pm.collect_schemas() == {}
        assert "non-list" in caplog.text

    def test_raising_plugin_is_a_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        pm.register_plugin(_RaisingPlugin(), name="boom")
        pm.register_plugin(_SchemaPlugin(), name="planets")
        with caplog.at_level(logging.WARNING, logger="metaagent.plugins.manager"):
            collected = pm.collect_schemas()
        assert collected == {"planets": [Planet]}
        assert "boom" in caplog.text

    def test_none_return_contributes_nothing(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_SilentPlugin(), name="silent")
        assert pm.collect_schemas() == {}


class TestLocalDiscovery:
    def test_discovers_local_plugin(self, tmp_path: Path) -> None:
        (tmp_path / "moons.py").write_text(_LOCAL_PLUGIN_SRC, encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)

        assert "metaagent_local_plugin_moons" in names
        collected = pm.collect_schemas()
        (schemas,) = collected.values()
        assert [s.schema_name for s in schemas] == ["moon"]

    def test_skips_broken_file(self, tmp_path: Path) -> None:
        (tmp_path / "broken.py").write_text(_SYNTAX_ERROR_SRC, encoding="utf-8")
        (tmp_path / "moons.py").write_text(_LOCAL_PLUGIN_SRC, encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)
        assert "metaagent_local_plugin_broken" not in names
        assert "metaagent_local_plugin_moons" in names

    def test_ignores_classes_without_hooks(self, tmp_path: Path) -> None:
        (tmp_path / "plain.py").write_text(_NO_HOOKS_SRC, encoding="utf-8")
        pm = PluginManager()
        assert "metaagent_local_plugin_plain" not in pm.discover_and_load(local_dir=tmp_path)

    def test_ignores_underscore_files(self, tmp_path: Path) -> None:
        (tmp_path / "_private.py").write_text(_LOCAL_PLUGIN_SRC, encoding="utf-8")
        pm = PluginManager()
        assert "metaagent_local_plugin__private" not in pm.discover_and_load(local_dir=tmp_path)

    def test_missing_directory(self, tmp_path: Path) -> None:
        pm = PluginManager()
        assert pm.discover_and_load(local_dir=tmp_path / "absent") == pm.list_plugin_names()
