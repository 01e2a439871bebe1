"""Tests for the entity command group."""

import json
from typing import Any

import pytest
from click.testing import CliRunner

from metaagent.cli import cli


def _json(runner: CliRunner, *args: str) -> dict[str, Any]:
    result = runner.invoke(cli, ["--json", *args])
    return json.loads(result.output)


@pytest.mark.usefixtures("_isolated_project")
class TestEntityCreate:
    def test_create_with_set(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "create", "author", "--set", "name=Ann"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "create_entity" in result.output

    def test_create_json(self, cli_runner: CliRunner) -> None:
        data = _json(cli_runner, "entity", "create", "book", "--data", '{"title": "Dune"}')
        assert data["ok"] is True
        assert data["data"]["entity"]["title"] == "Dune"

    def test_set_overrides_data(self, cli_runner: CliRunner) -> None:
        data = _json(
            cli_runner,
            "entity",
            "create",
            "book",
            "--data",
            '{"title": "a", "year": 1}',
            "--set",
            "year=1965",
        )
        assert data["data"]["entity"]["year"] == 1965

    def test_invalid_data_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "create", "book", "--data", "{nope"])
        assert result.exit_code == 2
        assert "--data" in result.output

    def test_data_must_be_object(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "create", "book", "--data", "[1]"])
        assert result.exit_code == 2

    def test_bad_assignment(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "create", "book", "--set", "title"])
        assert result.exit_code == 2

    def test_unknown_schema_exits_1(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "create", "planet", "--set", "name=Mars"])
        assert result.exit_code == 1
        assert "SCHEMA_NOT_REGISTERED" in result.output


@pytest.mark.usefixtures("_isolated_project")
class TestEntityReadWrite:
    def test_get(self, cli_runner: CliRunner) -> None:
        created = _json(cli_runner, "entity", "create", "author", "--set", "name=Ann")
        author_id = str(created["data"]["id"])
        result = cli_runner.invoke(cli, ["entity", "get", "author", author_id])
        assert result.exit_code == 0
        assert f"author #{author_id}" in result.output
        assert "Ann" in result.output

    def test_get_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "get", "author", "404"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_update_replaces(self, cli_runner: CliRunner) -> None:
        created = _json(
            cli_runner, "entity", "create", "author", "--set", "name=Ann", "--set", "country=UK"
        )
        author_id = str(created["data"]["id"])
        updated = _json(cli_runner, "entity", "update", "author", author_id, "--set", "name=Bo")
        assert updated["ok"] is True
        entity = _json(cli_runner, "entity", "get", "author", author_id)["data"]["entity"]
        assert entity["name"] == "Bo"
        assert entity["country"] == ""

    def test_delete_soft(self, cli_runner: CliRunner) -> None:
        created = _json(cli_runner, "entity", "create", "memo", "--set", "body=hi")
        memo_id = str(created["data"]["id"])
        deleted = _json(cli_runner, "entity", "delete", "memo", memo_id)
        assert deleted["data"]["deleted"] == 1
        listed = _json(cli_runner, "entity", "list", "memo")
        assert listed["data"]["total"] == 0

    def test_list_paging_and_search(self, cli_runner: CliRunner) -> None:
        for year in ("1965", "1969", "1965"):
            cli_runner.invoke(
                cli, ["entity", "create", "book", "--set", "title=t", "--set", f"year={year}"]
            )
        page = _json(cli_runner, "entity", "list", "book", "--page-size", "2", "--page", "1")
        assert len(page["data"]["items"]) == 2
        assert page["data"]["total"] == 3

        found = _json(
            cli_runner, "entity", "list", "book", "--search-field", "year", "--search", "1965"
        )
        assert found["data"]["total"] == 2

    def test_negative_page_size_rejected(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "list", "book", "--page-size", "-1"])
        assert result.exit_code == 2

    def test_list_human_output(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["entity", "create", "author", "--set", "name=Ann"])
        result = cli_runner.invoke(cli, ["entity", "list", "author"])
        assert result.exit_code == 0
        assert "1 of 1 author" in result.output


@pytest.mark.usefixtures("_isolated_project")
class TestEntityHelp:
    def test_examples_flag(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "--examples"])
        assert result.exit_code == 0
        assert "metaagent entity create book" in result.output

    def test_subcommand_examples(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["entity", "delete", "--examples"])
        assert result.exit_code == 0
        assert "metaagent entity delete book 1" in result.output
