"""
Plugin registry — target name → generator plugin.

One explicit instance per process, built by the CLI and handed to the
use cases. Built-in targets are registered at construction and can
never be replaced or removed. Plugins are resolved lazily, once per
target, and cached.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path

from helix.core.errors import PluginLoadError
from helix.plugins.base import GeneratorPlugin, PluginEntry
from helix.plugins.builtin import builtin_entries
from helix.plugins.discovery import PLUGIN_PREFIX, DiscoveryReport, scan

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Registry and loader for generator plugins.

    Features:
        - Built-in targets available immediately
        - Register/unregister external targets
        - Lazy, cached plugin resolution
        - Discovery from a project's dependency manifests
    """

    def __init__(self, include_builtins: bool = True, prefix: str = PLUGIN_PREFIX):
        self._entries: dict[str, PluginEntry] = {}
        self._loaded: dict[str, GeneratorPlugin] = {}
        self.prefix = prefix
        if include_builtins:
            for entry in builtin_entries():
                self._entries[entry.target] = entry

    def register(self, entry: PluginEntry) -> bool:
        """Register a target.

        Returns:
            False when the target is built-in (the entry is ignored).
        """
        existing = self._entries.get(entry.target)
        if existing is not None and existing.is_builtin:
            logger.warning(
                "Refusing to replace built-in target '%s' with %s",
                entry.target,
                entry.name,
            )
            return False
        if existing is not None:
            logger.warning("Overwriting plugin for target '%s': %s → %s", entry.target, existing.name, entry.name)
            self._loaded.pop(entry.target, None)

        self._entries[entry.target] = entry
        logger.debug("Registered plugin: %s (target: %s)", entry.name, entry.target)
        return True

    def unregister(self, target: str) -> bool:
        """Remove an external target. Built-ins cannot be removed."""
        entry = self._entries.get(target)
        if entry is None:
            return False
        if entry.is_builtin:
            logger.warning("Refusing to unregister built-in target '%s'", target)
            return False
        del self._entries[target]
        self._loaded.pop(target, None)
        return True

    def get(self, target: str) -> PluginEntry | None:
        return self._entries.get(target)

    def has_target(self, target: str) -> bool:
        return target in self._entries

    def list_targets(self) -> list[str]:
        return list(self._entries.keys())

    def entries(self) -> list[PluginEntry]:
        return list(self._entries.values())

    def load(self, target: str) -> GeneratorPlugin | None:
        """Resolve (once) and return the plugin for a target.

        Returns:
            The plugin, or None if the target is unknown or cannot
            be resolved. Resolution failures are logged.
        """
        if target in self._loaded:
            return self._loaded[target]

        entry = self._entries.get(target)
        if entry is None:
            logger.error("No generator found for target: %s", target)
            return None

        try:
            plugin = self._resolve(entry)
        except PluginLoadError as e:
            logger.error("Failed to load generator for %s: %s", target, e)
            return None

        self._loaded[target] = plugin
        return plugin

    def discover(self, project_path: Path | None = None) -> DiscoveryReport:
        """Register every plugin the project depends on."""
        entries, report = scan(project_path or Path.cwd(), prefix=self.prefix)
        for entry in entries:
            if self.register(entry):
                report.registered.append(entry.target)
                logger.info("Plugin registered: %s (target: %s)", entry.name, entry.target)
            else:
                report.skipped[entry.name] = f"target '{entry.target}' is built-in"
        return report

    # ── Resolution ──────────────────────────────────────────────

    def _resolve(self, entry: PluginEntry) -> GeneratorPlugin:
        if entry.factory is not None:
            obj = entry.factory
        else:
            obj = _import_object(entry)

        # A class or factory function gets called; an instance is used as is
        plugin = obj
        if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "generate")):
            try:
                plugin = obj()
            except Exception as e:
                raise PluginLoadError(entry.name, f"construction failed: {e}") from e

        if not callable(getattr(plugin, "generate", None)):
            raise PluginLoadError(entry.name, "object has no generate() method")

        declared = getattr(plugin, "target", "")
        if declared and declared != entry.target:
            logger.warning(
                "Plugin %s declares target '%s' but is registered as '%s'",
                entry.name,
                declared,
                entry.target,
            )
        return plugin


def _import_object(entry: PluginEntry) -> object:
    module_name, _, attr = entry.module_path.partition(":")
    if not module_name:
        raise PluginLoadError(entry.name, "no module path")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise PluginLoadError(entry.name, f"cannot import {module_name}: {e}") from e

    # Modules may export the plugin as ``plugin`` when the path names no attribute
    obj: object = module
    for part in (attr or "plugin").split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise PluginLoadError(entry.name, f"{module_name} has no attribute '{part}'") from e
    return obj
