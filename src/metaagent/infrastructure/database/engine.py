"""Database engine setup.

SQLite (the default) gets WAL mode and foreign keys on every connection;
in-memory SQLite shares a single connection so every caller sees the same
database. Server databases (MySQL, PostgreSQL) use a QueuePool sized from
:class:`PoolConfig`.

SQLAlchemy Core (not ORM) is used: records are pydantic models and the
registry owns the tables, so there is no identity map to maintain.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import StaticPool

from metaagent.config.models import PoolConfig


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_db_engine(
    url: str | URL,
    *,
    echo: bool = False,
    pool: PoolConfig | None = None,
) -> Engine:
    """Create an engine for *url* with pool settings applied where they matter."""
    url = make_url(url)
    pool = pool or PoolConfig()

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            echo=echo,
            pool_size=pool.size,
            max_overflow=pool.max_overflow,
            pool_recycle=pool.recycle_seconds,
            pool_timeout=pool.timeout_seconds,
            pool_pre_ping=pool.pre_ping,
        )

    kwargs: dict[str, Any] = {"echo": echo}
    if _is_memory_sqlite(url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        Path(str(url.database)).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(url, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(engine: Engine, metadata: MetaData) -> None:
    """Create every table in *metadata* that does not exist yet.

    Idempotent — safe to call against an existing database. Existing
    tables are never altered.
    """
    metadata.create_all(engine)
