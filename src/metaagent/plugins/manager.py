"""Plugin discovery and schema collection.

Discovery: entry_points (pip-installed) in the ``metaagent.plugins`` group,
plus single-file plugins from a local directory (``.metaagent/plugins/``
by default). Each plugin may implement ``metaagent_register_schemas``.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from typing import TYPE_CHECKING

import pluggy

from metaagent.domain.records import Record
from metaagent.plugins.hookspecs import PROJECT_NAME, MetaAgentHookSpec

if TYPE_CHECKING:
    from pathlib import Path

ENTRY_POINT_GROUP = "metaagent.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Discovers plugins and collects the schemas they contribute."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(MetaAgentHookSpec)

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then local plugins from *local_dir*.

        Returns the names of every registered plugin.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_class_plugins()
        if local_dir is not None:
            self._discover_local(local_dir)
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def collect_schemas(self) -> dict[str, list[type[Record]]]:
        """Ask every plugin for its schemas; plugin name -> Record classes.

        A plugin whose hook raises or returns something other than a list
        of Record subclasses is skipped (entirely or per item) with a warning.
        """
        collected: dict[str, list[type[Record]]] = {}
        for plugin in self._pm.get_plugins():
            plugin_name = self._pm.get_name(plugin) or plugin.__class__.__name__
            hook = getattr(plugin, "metaagent_register_schemas", None)
            if hook is None:
                continue
            try:
                returned = hook()
            except Exception:
                logger.warning(
                    "Failed to collect schemas from plugin %s", plugin_name, exc_info=True
                )
                continue
            if returned is None:
                continue
            if not isinstance(returned, list | tuple):
                logger.warning("Plugin %s returned non-list schema registrations", plugin_name)
                continue

            schemas = []
            for candidate in returned:
                if isinstance(candidate, type) and issubclass(candidate, Record):
                    schemas.append(candidate)
                else:
                    logger.warning(
                        "Skipping schema %r from plugin %s: not a Record subclass",
                        candidate,
                        plugin_name,
                    )
            if schemas:
                collected[plugin_name] = schemas
        return collected

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Load each ``*.py`` in *local_dir* and register its hook classes.

        Files starting with ``_`` are ignored. A broken file is logged
        and skipped.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"metaagent_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr_name, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name or not self._has_hook_impls(obj):
                    continue
                try:
                    self.register_plugin(obj(), name=module_name)
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        obj.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _instantiate_class_plugins(self) -> None:
        """Entry points may name a class; hooks need an instance."""
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not self._has_hook_impls(plugin):
                continue
            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s", plugin_name, exc_info=True
                )
                continue
            self._pm.register(instance, name=plugin_name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Whether any public method carries the ``metaagent_impl`` marker."""
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, f"{PROJECT_NAME}_impl", None):
                return True
        return False
