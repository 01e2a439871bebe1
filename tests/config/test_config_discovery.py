"""Tests for config file discovery and the starter config."""

import tomllib
from pathlib import Path

import pytest

from metaagent.config.discovery import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    find_config,
    render_config,
    write_config,
)
from metaagent.config.models import DatabaseConfig


class TestFindConfig:
    def test_finds_in_start_directory(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert find_config(tmp_path) == (tmp_path / CONFIG_FILENAME).resolve()

    def test_walks_up(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        deep = tmp_path / "x" / "y"
        deep.mkdir(parents=True)
        assert find_config(deep) == (tmp_path / CONFIG_FILENAME).resolve()

    def test_none_when_absent(self, tmp_path: Path) -> None:
        isolated = tmp_path / "empty"
        isolated.mkdir()
        assert find_config(isolated) is None

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "elsewhere.toml"
        custom.write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(custom))
        assert find_config(tmp_path) == custom

    def test_env_override_missing_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "nope.toml"))
        assert find_config(tmp_path) is None


class TestRenderConfig:
    def test_sqlite_default(self) -> None:
        parsed = tomllib.loads(render_config(DatabaseConfig()))
        assert parsed == {"database": {"driver": "sqlite", "path": ".metaagent/metaagent.db"}}

    def test_server_omits_password(self) -> None:
        rendered = render_config(
            DatabaseConfig(driver="postgresql", host="db", port=5433, user="app", password="pw")
        )
        assert "pw" not in rendered
        parsed = tomllib.loads(rendered)["database"]
        assert parsed == {
            "driver": "postgresql",
            "host": "db",
            "port": 5433,
            "user": "app",
            "name": "metaagent",
        }

    def test_url_only(self) -> None:
        parsed = tomllib.loads(render_config(DatabaseConfig(url="sqlite:///x.db")))
        assert parsed == {"database": {"url": "sqlite:///x.db"}}


class TestWriteConfig:
    def test_creates_file_and_directory(self, tmp_path: Path) -> None:
        root = tmp_path / "project"
        path = write_config(root, DatabaseConfig())
        assert path == root / CONFIG_FILENAME
        assert path.is_file()

    def test_existing_file_untouched(self, tmp_path: Path) -> None:
        existing = tmp_path / CONFIG_FILENAME
        existing.write_text("# mine\n")
        write_config(tmp_path, DatabaseConfig(driver="mysql"))
        assert existing.read_text() == "# mine\n"
