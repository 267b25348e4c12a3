"""
Descriptor target — the target-agnostic JSON descriptors themselves.
"""

from __future__ import annotations

from helix.core.models.blueprint import Blueprint
from helix.core.models.template import GeneratedFile
from helix.core.services.generators.blueprint import generate_blueprint
from helix.plugins.base import BlueprintPlugin


class DescriptorPlugin(BlueprintPlugin):
    name = "helix-gen-descriptor"
    target = "descriptor"
    version = "1.0.0"
    description = "Schema, handler-set and view descriptors as JSON"

    def lower(
        self,
        blueprint: Blueprint,
        context: str | None,
        options: dict[str, str],
    ) -> list[GeneratedFile]:
        return generate_blueprint(blueprint)
