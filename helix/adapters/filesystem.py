"""
Manifest writer — materialize an ArtifactManifest on disk.

The only place generated files touch the filesystem. Existing files
are left alone unless the artifact is marked ``overwrite`` or the
caller passes ``overwrite_existing``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from helix.core.models.template import ArtifactManifest, GeneratedFile, ManifestMetadata

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    """Which artifacts were written, skipped or failed."""

    root: str
    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "written": self.written,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def write_manifest(
    root: Path,
    manifest: ArtifactManifest,
    overwrite_existing: bool = False,
) -> WriteResult:
    """Write every artifact under ``root``.

    Paths escaping ``root`` are rejected per file; one bad file does
    not stop the rest.
    """
    root = Path(root).resolve()
    result = WriteResult(root=str(root))

    for artifact in manifest.files:
        target = (root / artifact.path).resolve()
        if not target.is_relative_to(root):
            result.errors[artifact.path] = "Path escapes the output directory"
            logger.warning("Refusing to write outside %s: %s", root, artifact.path)
            continue

        if target.exists() and not (artifact.overwrite or overwrite_existing):
            result.skipped.append(artifact.path)
            logger.debug("Skipping existing file: %s", artifact.path)
            continue

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(artifact.content, encoding="utf-8")
        except OSError as e:
            result.errors[artifact.path] = str(e)
            logger.warning("Failed to write %s: %s", artifact.path, e)
            continue

        result.written.append(artifact.path)

    logger.info(
        "Wrote %d file(s) to %s (%d skipped, %d failed)",
        len(result.written),
        root,
        len(result.skipped),
        len(result.errors),
    )
    return result


def merge_manifests(*manifests: ArtifactManifest) -> ArtifactManifest:
    """Combine manifests; later files win on path collisions.

    Metadata comes from the first manifest.
    """
    if not manifests:
        raise ValueError("merge_manifests() needs at least one manifest")

    files: dict[str, GeneratedFile] = {}
    for manifest in manifests:
        for artifact in manifest.files:
            files[artifact.path] = artifact
    return ArtifactManifest(
        metadata=manifests[0].metadata.model_copy(),
        files=list(files.values()),
    )


def summarize_manifest(manifest: ArtifactManifest) -> dict[str, Any]:
    """File counts grouped by top-level directory, plus metadata."""
    by_dir: dict[str, int] = {}
    total_bytes = 0
    for artifact in manifest.files:
        top = artifact.path.split("/", 1)[0] if "/" in artifact.path else "."
        by_dir[top] = by_dir.get(top, 0) + 1
        total_bytes += len(artifact.content.encode("utf-8"))

    meta: ManifestMetadata = manifest.metadata
    return {
        "project_name": meta.project_name,
        "target": meta.target,
        "version": meta.version,
        "file_count": len(manifest.files),
        "total_bytes": total_bytes,
        "by_directory": dict(sorted(by_dir.items())),
    }
