"""Rich/JSON output selection.

The CLI renders ServiceResult for humans (Rich tables and panels) or for
machines (``--json``). This module picks the mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from metaagent.output.renderers import render_result

if TYPE_CHECKING:
    from metaagent.services.result import ServiceResult


def format_result(
    result: ServiceResult,
    *,
    json_output: bool = False,
    verbose: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: Return the full result as indented JSON.
        verbose: Include error detail and telemetry in human output.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    return render_result(result, verbose=verbose)
