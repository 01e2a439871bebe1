"""Shared pytest fixtures for metaagent tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner
from sample_schemas import ALL_SCHEMAS
from sqlalchemy import func, select

from metaagent.config.settings import MetaAgentSettings
from metaagent.infrastructure.agent import MetaAgent
from metaagent.infrastructure.database.schema import SchemaRegistry
from metaagent.infrastructure.repositories.records import RecordStore
from metaagent.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep METAAGENT_* variables out of every test; undo CLI logging setup."""
    for key in list(os.environ):
        if key.startswith("METAAGENT_"):
            monkeypatch.delenv(key)
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path) -> MetaAgentSettings:
    """Settings rooted at a temp directory (SQLite under .metaagent/)."""
    return MetaAgentSettings(root=tmp_path)


@pytest.fixture
def registry() -> SchemaRegistry:
    reg = SchemaRegistry()
    for schema in ALL_SCHEMAS:
        reg.register(schema)
    return reg


@pytest.fixture
def agent(settings: MetaAgentSettings) -> Iterator[MetaAgent]:
    """Opened agent with every sample schema registered."""
    a = MetaAgent(settings)
    a.register(*ALL_SCHEMAS)
    a.open()
    try:
        yield a
    finally:
        a.close()


@pytest.fixture
def store(agent: MetaAgent) -> RecordStore:
    return agent.store


def count_rows(agent: MetaAgent, schema_name: str) -> int:
    """Committed row count for *schema_name*, read on a fresh connection."""
    table = agent.registry.table_for(schema_name)
    with agent.engine.connect() as conn:
        return int(conn.execute(select(func.count()).select_from(table)).scalar_one())


@pytest.fixture
def row_count(agent: MetaAgent) -> Callable[[str], int]:
    """``row_count("book")`` -> committed rows in that schema's table."""
    return lambda schema_name: count_rows(agent, schema_name)


LIBRARY_PLUGIN_SRC = """\
from typing import ClassVar

from metaagent.domain.records import Record, SoftDeleteRecord
from metaagent.plugins import hookimpl


class Author(Record):
    schema_name: ClassVar[str] = "author"

    name: str = ""
    country: str = ""


class Book(Record):
    schema_name: ClassVar[str] = "book"

    title: str = ""
    year: int = 0


class Memo(SoftDeleteRecord):
    schema_name: ClassVar[str] = "memo"

    body: str = ""


class LibraryPlugin:
    @hookimpl
    def metaagent_register_schemas(self):
        return [Author, Book, Memo]
"""


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """CWD set to a project with a local plugin contributing library schemas."""
    plugin_dir = tmp_path / ".metaagent" / "plugins"
    plugin_dir.mkdir(parents=True)
    (plugin_dir / "library.py").write_text(LIBRARY_PLUGIN_SRC, encoding="utf-8")
    (tmp_path / "metaagent.toml").write_text("[database]\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path
