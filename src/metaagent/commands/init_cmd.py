"""Command: project initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from metaagent.commands._base import MetaCommand

if TYPE_CHECKING:
    from metaagent.commands._context import AppContext

_INIT_EXAMPLES = """\
  metaagent init
  metaagent init /path/to/project --db-path data/app.db
  metaagent init . --driver postgresql --host db.internal --user app --name inventory
  metaagent init . --url mysql+pymysql://app@localhost/inventory"""


@click.command("init", cls=MetaCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option(
    "--driver",
    type=click.Choice(["sqlite", "mysql", "postgresql"], case_sensitive=False),
    default="sqlite",
    show_default=True,
    help="Database backend.",
)
@click.option("--url", default=None, help="Full SQLAlchemy URL (overrides the other options).")
@click.option("--db-path", default=None, help="SQLite file, relative to PATH.")
@click.option("--host", default=None, help="Server host (mysql/postgresql).")
@click.option("--port", type=int, default=None, help="Server port (mysql/postgresql).")
@click.option("--user", default=None, help="Database user (mysql/postgresql).")
@click.option("--name", default=None, help="Database name (mysql/postgresql).")
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: str,
    driver: str,
    url: str | None,
    db_path: str | None,
    host: str | None,
    port: int | None,
    user: str | None,
    name: str | None,
) -> None:
    """Write metaagent.toml and create the tables for every known schema."""
    from metaagent.config.models import DatabaseConfig
    from metaagent.services.project import ProjectService

    fields: dict[str, object] = {"driver": driver.lower(), "url": url}
    optional = {"path": db_path, "host": host, "port": port, "user": user, "name": name}
    for key, value in optional.items():
        if value is not None:
            fields[key] = value
    database = DatabaseConfig.model_validate(fields)
    app.emit(ProjectService.init_project(Path(path).resolve(), database))
