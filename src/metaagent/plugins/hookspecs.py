"""Pluggy hook specifications for metaagent.

One setup-time hook lets plugins contribute schemas: the registry is
assembled explicitly at startup, before the agent opens, from whatever
the discovered plugins return.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from metaagent.domain.records import Record

PROJECT_NAME = "metaagent"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class MetaAgentHookSpec:
    """Hook specifications for the metaagent plugin system."""

    @hookspec
    def metaagent_register_schemas(self) -> list[type[Record]] | None:
        """Return the Record subclasses this plugin contributes."""
