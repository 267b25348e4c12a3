"""
Domain models — Pydantic and dataclass types for the compiler.

All models are re-exported here for convenient access:

    from helix.core.models import Blueprint, Strand, GeneratedFile, GenerationResult
"""

from helix.core.models.blueprint import (
    TYPE_TOKENS,
    VIEW_KEYS,
    Blueprint,
    Field,
    FieldType,
    Strand,
    View,
)
from helix.core.models.descriptors import (
    ColumnDescriptor,
    HandlerOperation,
    HandlerSet,
    Layout,
    TableDescriptor,
    ViewDescriptor,
)
from helix.core.models.generation import (
    BuildCheck,
    ExecutorState,
    GenerationAttempt,
    GenerationResult,
)
from helix.core.models.template import ArtifactManifest, GeneratedFile, ManifestMetadata

__all__ = [
    # template.py
    "ArtifactManifest",
    # blueprint.py
    "Blueprint",
    # generation.py
    "BuildCheck",
    # descriptors.py
    "ColumnDescriptor",
    "ExecutorState",
    "Field",
    "FieldType",
    "GeneratedFile",
    "GenerationAttempt",
    "GenerationResult",
    "HandlerOperation",
    "HandlerSet",
    "Layout",
    "ManifestMetadata",
    "Strand",
    "TYPE_TOKENS",
    "TableDescriptor",
    "VIEW_KEYS",
    "View",
    "ViewDescriptor",
]
