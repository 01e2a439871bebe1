"""ProjectService — project initialization and schema introspection."""

from __future__ import annotations

from pathlib import Path

from metaagent.config.discovery import write_config
from metaagent.config.models import DatabaseConfig
from metaagent.config.settings import MetaAgentSettings
from metaagent.errors import MetaAgentError
from metaagent.services.base import BaseService
from metaagent.services.result import ServiceResult
from metaagent.services.telemetry import traced


class ProjectService(BaseService):
    """Administrative operations over the agent's configuration and registry."""

    @staticmethod
    @traced
    def init_project(root: Path, database: DatabaseConfig | None = None) -> ServiceResult:
        """Write a starter ``metaagent.toml`` under *root* and create the tables.

        Plugins found under *root* are loaded first so their tables are
        created too. Re-running against an initialized project is harmless.
        """
        from metaagent.infrastructure.agent import MetaAgent

        op = "init_project"
        config_path = write_config(root, database or DatabaseConfig())
        settings = MetaAgentSettings.load(config_path=config_path, root=root)
        agent = MetaAgent(settings)
        try:
            agent.load_plugins()
            with agent:
                schemas = agent.registry.names()
        except MetaAgentError as exc:
            return BaseService._fail(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "config_path": str(config_path),
                "database": settings.database_url.render_as_string(hide_password=True),
                "schemas": schemas,
            },
        )

    @traced
    def list_schemas(self) -> ServiceResult:
        """Every registered schema with its model and column names."""
        schemas = [
            {
                "name": descriptor.name,
                "model": f"{descriptor.record_cls.__module__}.{descriptor.record_cls.__qualname__}",
                "columns": [column.name for column in descriptor.table.columns],
            }
            for descriptor in sorted(self._agent.registry, key=lambda d: d.name)
        ]
        return ServiceResult(
            ok=True,
            op="list_schemas",
            data={"schemas": schemas, "plugins": self._agent.plugin_names},
        )
