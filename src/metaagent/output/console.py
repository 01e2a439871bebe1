"""Rich Console factory and theme for metaagent output.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract. Outside a terminal (tests, pipes) Rich drops the
color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

METAAGENT_THEME = Theme(
    {
        "ma.ok": "bold green",
        "ma.error": "bold red",
        "ma.warning": "bold yellow",
        "ma.op": "bold cyan",
        "ma.key": "dim",
        "ma.id": "bold blue",
        "ma.schema": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """A Console writing to an in-memory buffer."""
    return Console(
        file=StringIO(),
        theme=METAAGENT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
