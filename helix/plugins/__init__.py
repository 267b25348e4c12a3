"""Generator plugins — protocol, registry, discovery and built-in targets.

Public re-exports for convenient access.
"""

from helix.plugins.base import BlueprintPlugin, GeneratorPlugin, PluginEntry
from helix.plugins.discovery import DiscoveryReport
from helix.plugins.registry import PluginRegistry

__all__ = [
    "BlueprintPlugin",
    "DiscoveryReport",
    "GeneratorPlugin",
    "PluginEntry",
    "PluginRegistry",
]
