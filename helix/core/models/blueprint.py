"""
Blueprint AST — the parsed form of one .helix source text.

Produced once per ``parse()`` call and frozen afterwards. Every
generator takes these models as its only input.
"""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field as ModelField, field_serializer, field_validator


class FieldType(StrEnum):
    """Scalar type of a strand field."""

    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


# DSL spelling → FieldType. Canonical names plus the legacy spellings
# that drafted blueprints still use (String, Int, Float, DateTime).
TYPE_TOKENS: dict[str, FieldType] = {
    "Text": FieldType.TEXT,
    "String": FieldType.TEXT,
    "Integer": FieldType.INTEGER,
    "Int": FieldType.INTEGER,
    "Decimal": FieldType.DECIMAL,
    "Float": FieldType.DECIMAL,
    "Boolean": FieldType.BOOLEAN,
    "Bool": FieldType.BOOLEAN,
    "Timestamp": FieldType.TIMESTAMP,
    "DateTime": FieldType.TIMESTAMP,
}

# Only these view keys carry meaning for the generators.
VIEW_KEYS = ("list", "theme")


class Field(BaseModel):
    """A typed field on a strand."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType


class Strand(BaseModel):
    """A named data entity."""

    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[Field, ...] = ()

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(f.name for f in self.fields)

    def get_field(self, name: str) -> Field | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


class View(BaseModel):
    """A named UI descriptor.

    ``properties`` holds every ``key: value`` pair from the block;
    only ``list`` and ``theme`` are interpreted.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    properties: Mapping[str, str] = ModelField(default_factory=dict, validate_default=True)

    @field_validator("properties")
    @classmethod
    def freeze_properties(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("properties")
    def dump_properties(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @property
    def list_source(self) -> str | None:
        """Raw ``list`` value, e.g. ``Task.all()``."""
        return self.properties.get("list")

    @property
    def list_strand(self) -> str | None:
        """Strand name referenced by ``list`` (text before the first dot)."""
        source = self.list_source
        if not source:
            return None
        return source.split(".", 1)[0].strip() or None

    @property
    def list_query(self) -> str:
        """Query part of ``list`` without parentheses (``all`` by default)."""
        source = self.list_source or ""
        if "." not in source:
            return "all"
        query = source.split(".", 1)[1]
        return query.split("(", 1)[0].strip() or "all"

    @property
    def theme(self) -> str | None:
        return self.properties.get("theme")


class Blueprint(BaseModel):
    """Root of the AST: ordered strands and views."""

    model_config = ConfigDict(frozen=True)

    strands: tuple[Strand, ...] = ()
    views: tuple[View, ...] = ()

    def get_strand(self, name: str) -> Strand | None:
        for strand in self.strands:
            if strand.name == name:
                return strand
        return None

    def get_view(self, name: str) -> View | None:
        for view in self.views:
            if view.name == name:
                return view
        return None

    def strand_for(self, view: View) -> Strand | None:
        """Strand bound to a view, or None for a static view.

        The parser guarantees that a declared ``list`` reference resolves.
        """
        name = view.list_strand
        return self.get_strand(name) if name else None

    def summary(self) -> dict:
        return {
            "strands": [
                {
                    "name": s.name,
                    "fields": [{"name": f.name, "type": f.type.value} for f in s.fields],
                }
                for s in self.strands
            ],
            "views": [{"name": v.name, "properties": dict(v.properties)} for v in self.views],
        }
