"""Config file discovery and the starter ``metaagent.toml``.

The walk-up finder locates ``metaagent.toml`` the way git finds ``.git/``.
``METAAGENT_CONFIG`` (and the ``--config`` CLI flag) bypass the walk.
"""

from __future__ import annotations

import os
from pathlib import Path

from metaagent.config.models import DatabaseConfig

CONFIG_FILENAME = "metaagent.toml"
CONFIG_ENV_VAR = "METAAGENT_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``metaagent.toml`` at or above *start* (default: CWD).

    When ``METAAGENT_CONFIG`` is set it is the only candidate; a path that
    does not exist yields None rather than falling back to the walk.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        candidate = Path(override)
        return candidate if candidate.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for folder in (directory, *directory.parents):
        candidate = folder / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def render_config(database: DatabaseConfig) -> str:
    """Sparse TOML for *database*: only the keys that identify the connection.

    Passwords are never written; supply them via
    ``METAAGENT_DATABASE__PASSWORD``.
    """
    lines = ["[database]"]
    if database.url:
        lines.append(f'url = "{database.url}"')
    elif database.driver == "sqlite":
        lines.append('driver = "sqlite"')
        lines.append(f'path = "{database.path}"')
    else:
        lines.append(f'driver = "{database.driver}"')
        lines.append(f'host = "{database.host}"')
        if database.port is not None:
            lines.append(f"port = {database.port}")
        if database.user:
            lines.append(f'user = "{database.user}"')
        lines.append(f'name = "{database.name}"')
    return "\n".join(lines) + "\n"


def write_config(root: Path, database: DatabaseConfig) -> Path:
    """Create ``root/metaagent.toml``; an existing file is left untouched."""
    target = root / CONFIG_FILENAME
    if not target.exists():
        root.mkdir(parents=True, exist_ok=True)
        target.write_text(render_config(database), encoding="utf-8")
    return target
