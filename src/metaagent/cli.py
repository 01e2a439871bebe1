"""Root CLI group for metaagent with global flags and command registration."""

from __future__ import annotations

import click

from metaagent import __version__
from metaagent.commands import register_commands
from metaagent.commands._context import AppContext
from metaagent.config.settings import MetaAgentSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="metaagent")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and telemetry spans.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """metaagent — generic records, relations and transactions over SQL."""
    flags = {"json_output": json_output, "verbose": verbose, "log_json": log_json}
    # Unset flags must not shadow METAAGENT_* env vars or the TOML file.
    settings = MetaAgentSettings.load(
        config_path=config_path,
        **{name: value for name, value in flags.items() if value},
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
