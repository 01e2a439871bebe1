"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, metaagent.toml only contains
overrides. A fresh project needs no config at all — it gets a SQLite file
under ``.metaagent/``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from sqlalchemy.engine import URL, make_url

_DEFAULT_PORTS = {"mysql": 3306, "postgresql": 5432}
_DRIVER_NAMES = {"mysql": "mysql+pymysql", "postgresql": "postgresql+psycopg"}


class PoolConfig(BaseModel):
    """[database.pool] section — ignored for SQLite."""

    model_config = {"frozen": True}

    size: int = 10
    max_overflow: int = 90
    recycle_seconds: int = 36000
    timeout_seconds: float = 30.0
    pre_ping: bool = True


class DatabaseConfig(BaseModel):
    """[database] section.

    Either give a full SQLAlchemy ``url`` or let one be assembled from
    ``driver`` and the connection fields.
    """

    model_config = {"frozen": True}

    url: str | None = None
    driver: Literal["sqlite", "mysql", "postgresql"] = "sqlite"
    path: str = ".metaagent/metaagent.db"
    host: str = "localhost"
    port: int | None = None
    user: str | None = None
    password: str | None = None
    name: str = "metaagent"
    echo: bool = False
    pool: PoolConfig = Field(default_factory=PoolConfig)

    def resolve_url(self, root: Path) -> URL:
        """Build the connection URL; relative SQLite paths resolve against *root*."""
        if self.url:
            return make_url(self.url)
        if self.driver == "sqlite":
            if self.path == ":memory:":
                return URL.create("sqlite", database=":memory:")
            db_path = Path(self.path)
            if not db_path.is_absolute():
                db_path = root / db_path
            return URL.create("sqlite", database=str(db_path))

        query = {"charset": "utf8mb4"} if self.driver == "mysql" else {}
        return URL.create(
            _DRIVER_NAMES[self.driver],
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port or _DEFAULT_PORTS[self.driver],
            database=self.name,
            query=query,
        )


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: str = ".metaagent/plugins"
