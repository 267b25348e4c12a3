"""
Generate use case — blueprint file → target manifest (→ disk).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from helix.adapters.filesystem import WriteResult, summarize_manifest, write_manifest
from helix.core.errors import DuplicateArtifactError, ParseError
from helix.core.models.template import ArtifactManifest
from helix.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)


@dataclass
class GenerateResult:
    """Result of one generate run."""

    source_path: Path
    target: str
    manifest: ArtifactManifest | None = None
    write: WriteResult | None = None
    error: str | None = None
    parse_error: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and (self.write is None or self.write.ok)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "source": str(self.source_path),
            "target": self.target,
            "error": self.error,
            "parse_error": self.parse_error or None,
            "summary": summarize_manifest(self.manifest) if self.manifest else None,
            "files": self.manifest.paths if self.manifest else [],
            "write": self.write.to_dict() if self.write else None,
        }


def run_generate(
    source_path: Path,
    target: str,
    registry: PluginRegistry,
    context: str | None = None,
    options: dict[str, str] | None = None,
    *,
    output_dir: Path | None = None,
    overwrite: bool = False,
) -> GenerateResult:
    """Compile a blueprint file for a target.

    Args:
        source_path: Path to the ``.helix`` blueprint.
        target: Registered target name.
        registry: Plugin registry.
        context: Optional constitution/guidelines text for the plugin.
        options: Target options (``project_name``, ``db``, ``ai``...).
        output_dir: Write the manifest here when given.
        overwrite: Overwrite existing files even if not marked overwrite.

    Returns:
        GenerateResult (never raises for expected failures).
    """
    result = GenerateResult(source_path=source_path, target=target)

    if not source_path.is_file():
        result.error = f"Blueprint not found: {source_path}"
        return result

    try:
        source = source_path.read_text(encoding="utf-8")
    except OSError as e:
        result.error = f"Cannot read {source_path}: {e}"
        return result

    plugin = registry.load(target)
    if plugin is None:
        available = ", ".join(registry.list_targets()) or "none"
        result.error = f"Target '{target}' is unavailable (available: {available})"
        return result

    opts = dict(options or {})
    opts.setdefault("project_name", output_dir.name if output_dir else source_path.stem)

    try:
        result.manifest = plugin.generate(source, context, opts)
    except ParseError as e:
        result.error = f"Parse error: {e}"
        result.parse_error = {"message": e.message, "line": e.line, "column": e.column, "offset": e.offset}
        return result
    except (ValueError, DuplicateArtifactError) as e:
        result.error = str(e)
        return result

    logger.info("Generated %d file(s) for target %s", len(result.manifest.files), target)

    if output_dir is not None:
        result.write = write_manifest(output_dir, result.manifest, overwrite_existing=overwrite)

    return result
