"""Database engine and schema registry via SQLAlchemy Core."""

from metaagent.infrastructure.database.engine import create_db_engine, init_database
from metaagent.infrastructure.database.schema import (
    SchemaDescriptor,
    SchemaRegistry,
    build_table,
    column_type_for,
)

__all__ = [
    "SchemaDescriptor",
    "SchemaRegistry",
    "build_table",
    "column_type_for",
    "create_db_engine",
    "init_database",
]
