"""
Target-agnostic descriptors — what the generators derive from a blueprint.

Plugins lower these into concrete files for their platform.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from helix.core.models.blueprint import FieldType


class Layout(StrEnum):
    """UI layout strategies, in classification priority order."""

    GALLERY = "gallery"
    BOARD = "board"
    FEED = "feed"
    GRID = "grid"


# ── Schema ──────────────────────────────────────────────────────


class ColumnDescriptor(BaseModel):
    """One persisted column."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType
    primary_key: bool = False
    default: str | None = None   # symbolic default: "uuid", "now"


class TableDescriptor(BaseModel):
    """Persistence table for one strand.

    ``columns`` mirrors the strand's fields one-to-one; the bookkeeping
    columns every table gets live in ``system_columns``.
    """

    model_config = ConfigDict(frozen=True)

    strand: str
    table: str
    columns: tuple[ColumnDescriptor, ...] = ()
    system_columns: tuple[ColumnDescriptor, ...] = ()

    @property
    def all_columns(self) -> tuple[ColumnDescriptor, ...]:
        """Primary key first, then field columns, then timestamps."""
        keys = tuple(c for c in self.system_columns if c.primary_key)
        stamps = tuple(c for c in self.system_columns if not c.primary_key)
        return keys + self.columns + stamps


# ── API ─────────────────────────────────────────────────────────


class HandlerOperation(BaseModel):
    """A single CRUD request handler."""

    model_config = ConfigDict(frozen=True)

    name: Literal["list", "create", "update", "delete"]
    method: Literal["GET", "POST", "PUT", "DELETE"]
    path: str
    input_fields: tuple[str, ...] = ()
    requires_id: bool = False
    returns: Literal["many", "one", "none"] = "one"


class HandlerSet(BaseModel):
    """The request handlers serving one strand."""

    model_config = ConfigDict(frozen=True)

    strand: str
    resource: str
    path: str
    operations: tuple[HandlerOperation, ...] = ()

    def get(self, name: str) -> HandlerOperation | None:
        for op in self.operations:
            if op.name == name:
                return op
        return None


# ── UI ──────────────────────────────────────────────────────────


class ViewDescriptor(BaseModel):
    """How a view renders its strand.

    ``slots`` maps layout roles to field names, e.g.
    ``{"image": "photo"}`` for a gallery or ``{"group_by": "status"}``
    for a board.
    """

    model_config = ConfigDict(frozen=True)

    view: str
    route: str
    layout: Layout
    theme: str = "Glassmorphism"
    strand: str | None = None
    query: str = "all"
    fields: tuple[str, ...] = ()
    slots: dict[str, str] = Field(default_factory=dict)
