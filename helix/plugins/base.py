"""
Generator plugin protocol.

A plugin turns a prompt into an ``ArtifactManifest`` for one target
platform. Built-in plugins take blueprint source as the prompt and
lower the parsed ``Blueprint``; external plugins may interpret the
prompt however they like.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from helix import __version__
from helix.core.models.blueprint import Blueprint
from helix.core.models.template import ArtifactManifest, GeneratedFile, ManifestMetadata
from helix.core.parser import parse

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "helix-app"


@dataclass
class PluginEntry:
    """A registered target and how to resolve its plugin.

    Built-ins carry a ``factory``; external plugins carry a
    ``module_path`` of the form ``package.module:attribute``.
    """

    name: str
    target: str
    version: str = "0.0.0"
    module_path: str = ""
    is_builtin: bool = False
    description: str = ""
    factory: Callable[[], GeneratorPlugin] | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target": self.target,
            "version": self.version,
            "module_path": self.module_path,
            "builtin": self.is_builtin,
            "description": self.description,
        }


class GeneratorPlugin(ABC):
    """Base class for all generator plugins.

    Subclasses set the class attributes and implement ``generate``.
    """

    name: str = ""
    target: str = ""
    version: str = "0.0.0"
    description: str = ""

    # option name → allowed values; empty tuple means free-form
    options_schema: dict[str, tuple[str, ...]] = {}

    @abstractmethod
    def generate(
        self,
        prompt: str,
        context: str | None = None,
        options: dict[str, str] | None = None,
    ) -> ArtifactManifest:
        """Produce every file for this target.

        Args:
            prompt: Blueprint source (built-ins) or free-form request.
            context: Optional constitution/guidelines text.
            options: Target-specific string options.
        """

    def dependencies(self) -> list[str]:
        """Packages the generated project needs."""
        return []

    def dependencies_for(self, options: dict[str, str]) -> list[str]:
        """Packages the generated project needs with these options."""
        return self.dependencies()

    def scaffold_command(self, project_name: str) -> list[str] | None:
        """Command that creates the bare project, if the target has one."""
        return None

    def validate_options(self, options: dict[str, str] | None) -> dict[str, str]:
        """Reject unknown values for declared options; pass others through."""
        opts = dict(options or {})
        for key, allowed in self.options_schema.items():
            value = opts.get(key)
            if value is None or not allowed:
                continue
            if value not in allowed:
                raise ValueError(
                    f"Invalid value '{value}' for option '{key}' "
                    f"(target {self.target}). Valid: {', '.join(allowed)}"
                )
        return opts

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target": self.target,
            "version": self.version,
            "description": self.description,
            "dependencies": self.dependencies(),
        }


class BlueprintPlugin(GeneratorPlugin):
    """A plugin that parses blueprint source and lowers the AST."""

    @abstractmethod
    def lower(
        self,
        blueprint: Blueprint,
        context: str | None,
        options: dict[str, str],
    ) -> list[GeneratedFile]:
        """Turn a parsed blueprint into target files."""

    def metadata(self, options: dict[str, str]) -> ManifestMetadata:
        return ManifestMetadata(
            project_name=options.get("project_name") or DEFAULT_PROJECT_NAME,
            target=self.target,
            version=__version__,
        )

    def generate(
        self,
        prompt: str,
        context: str | None = None,
        options: dict[str, str] | None = None,
    ) -> ArtifactManifest:
        opts = self.validate_options(options)
        blueprint = parse(prompt)

        manifest = ArtifactManifest(metadata=self.metadata(opts))
        manifest.extend(self.lower(blueprint, context, opts))

        logger.info(
            "%s: %d strand(s), %d view(s) → %d file(s)",
            self.target,
            len(blueprint.strands),
            len(blueprint.views),
            len(manifest.files),
        )
        return manifest
