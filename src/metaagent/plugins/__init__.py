"""Extension layer — schema plugins via pluggy.

Discovery: entry_points (``metaagent.plugins``) plus local ``*.py`` files.
INVARIANT: Plugin failures are warnings, never errors.
"""

from metaagent.plugins.hookspecs import hookimpl
from metaagent.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
