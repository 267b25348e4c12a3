"""Built-in generator targets, available before any discovery scan."""

from __future__ import annotations

from helix.plugins.base import GeneratorPlugin, PluginEntry
from helix.plugins.builtin.descriptor import DescriptorPlugin
from helix.plugins.builtin.flutter import FlutterPlugin
from helix.plugins.builtin.web import WebPlugin

BUILTIN_PLUGINS: tuple[type[GeneratorPlugin], ...] = (DescriptorPlugin, WebPlugin, FlutterPlugin)


def builtin_entries() -> list[PluginEntry]:
    return [
        PluginEntry(
            name=cls.name,
            target=cls.target,
            version=cls.version,
            module_path=f"{cls.__module__}:{cls.__name__}",
            is_builtin=True,
            description=cls.description,
            factory=cls,
        )
        for cls in BUILTIN_PLUGINS
    ]


__all__ = ["BUILTIN_PLUGINS", "DescriptorPlugin", "FlutterPlugin", "WebPlugin", "builtin_entries"]
