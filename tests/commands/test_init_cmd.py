"""Tests for the init and schemas commands."""

import json
import tomllib
from pathlib import Path

import pytest
from click.testing import CliRunner

from metaagent.cli import cli


class TestInitCommand:
    def test_init_current_directory(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "init_project" in result.output
        assert (tmp_path / "metaagent.toml").is_file()
        assert (tmp_path / ".metaagent" / "metaagent.db").is_file()

    def test_init_explicit_path_and_db_path(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        target = tmp_path / "proj"
        result = cli_runner.invoke(cli, ["--json", "init", str(target), "--db-path", "data/x.db"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["schemas"] == ["entity_relation"]
        config = tomllib.loads((target / "metaagent.toml").read_text())
        assert config["database"]["path"] == "data/x.db"
        assert (target / "data" / "x.db").is_file()

    def test_init_with_plugin(self, cli_runner: CliRunner, _isolated_project: Path) -> None:
        data = json.loads(cli_runner.invoke(cli, ["--json", "init"]).output)
        assert data["data"]["schemas"] == ["author", "book", "entity_relation", "memo"]

    def test_examples(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["init", "--examples"])
        assert result.exit_code == 0
        assert "--db-path" in result.output


@pytest.mark.usefixtures("_isolated_project")
class TestSchemasCommand:
    def test_lists_plugin_schemas(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "schemas"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        names = [s["name"] for s in data["data"]["schemas"]]
        assert names == ["author", "book", "entity_relation", "memo"]
        assert data["data"]["plugins"] == ["metaagent_local_plugin_library"]

    def test_human_table(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["schemas"])
        assert result.exit_code == 0
        assert "entity_relation" in result.output
        assert "plugins: metaagent_local_plugin_library" in result.output
