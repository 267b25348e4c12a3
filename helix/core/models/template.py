"""
Generated artifact models — the handoff contract to the file writer.

Generators and plugins produce ``GeneratedFile`` instances and collect
them into an ``ArtifactManifest``; only the writer adapter touches disk.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Iterable

from pydantic import BaseModel, Field

from helix.core.errors import DuplicateArtifactError


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class GeneratedFile(BaseModel):
    """A file produced by a generator.

    Attributes:
        path:      Relative path from the target project root.
        content:   Full file content.
        overwrite: Whether to overwrite if already exists.
        reason:    Why this file was generated.
    """

    path: str
    content: str
    overwrite: bool = False
    reason: str = ""


class ManifestMetadata(BaseModel):
    """Provenance of one generation run."""

    project_name: str
    target: str
    version: str = ""
    generated_at: str = Field(default_factory=_now_iso)
    database: str | None = None
    ai: str | None = None


class ArtifactManifest(BaseModel):
    """All files to materialize for one generation run.

    Paths are unique: adding a second file for a path already present
    is an error unless the newcomer is marked ``overwrite``, in which
    case it replaces the earlier one.
    """

    metadata: ManifestMetadata
    files: list[GeneratedFile] = Field(default_factory=list)

    def add(self, file: GeneratedFile) -> None:
        for i, existing in enumerate(self.files):
            if existing.path == file.path:
                if not file.overwrite:
                    raise DuplicateArtifactError(file.path)
                self.files[i] = file
                return
        self.files.append(file)

    def extend(self, files: Iterable[GeneratedFile]) -> None:
        for f in files:
            self.add(f)

    def get(self, path: str) -> GeneratedFile | None:
        for f in self.files:
            if f.path == path:
                return f
        return None

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    def to_dict(self) -> dict[str, Any]:
        """Wire form: ``{files: [...], metadata: {...}}`` with camelCase keys."""
        meta: dict[str, Any] = {
            "projectName": self.metadata.project_name,
            "generatedAt": self.metadata.generated_at,
            "version": self.metadata.version,
            "target": self.metadata.target,
        }
        if self.metadata.database is not None:
            meta["database"] = self.metadata.database
        if self.metadata.ai is not None:
            meta["ai"] = self.metadata.ai
        return {
            "files": [
                {"path": f.path, "content": f.content, "overwrite": f.overwrite}
                for f in self.files
            ],
            "metadata": meta,
        }
