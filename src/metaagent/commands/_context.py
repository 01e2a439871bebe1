"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. The agent is opened lazily so ``--help`` never
touches the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from metaagent.config.logging import configure_logging
from metaagent.output.formatters import format_result

if TYPE_CHECKING:
    from metaagent.config.settings import MetaAgentSettings
    from metaagent.infrastructure.agent import MetaAgent
    from metaagent.services.result import ServiceResult


class AppContext:
    """Settings plus a lazily opened :class:`MetaAgent`."""

    def __init__(self, settings: MetaAgentSettings) -> None:
        self.settings = settings
        self._agent: MetaAgent | None = None

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            sql_echo=settings.database.echo,
        )
        if settings.verbose:
            from metaagent.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def agent(self) -> MetaAgent:
        """The opened agent, with plugin schemas registered (created on first access)."""
        if self._agent is None:
            from metaagent.errors import MetaAgentError
            from metaagent.infrastructure.agent import MetaAgent

            agent = MetaAgent(self.settings)
            try:
                agent.load_plugins()
                agent.open()
            except MetaAgentError as exc:
                raise click.ClickException(exc.message) from exc
            self._agent = agent
        return self._agent

    def close(self) -> None:
        if self._agent is not None:
            self._agent.close()
            self._agent = None

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; failures go to stderr and exit with status 1."""
        output = format_result(
            result,
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
