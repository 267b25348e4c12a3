"""
Schema generator — strand → persistence table descriptor.

Every strand field becomes exactly one column. Each table also gets
the bookkeeping columns ``id``, ``created_at`` and ``updated_at``,
kept apart from the field columns.
"""

from __future__ import annotations

from helix.core.models.blueprint import FieldType, Strand
from helix.core.models.descriptors import ColumnDescriptor, TableDescriptor
from helix.core.models.template import GeneratedFile
from helix.core.services.naming import snake_case, table_name

SYSTEM_COLUMNS: tuple[ColumnDescriptor, ...] = (
    ColumnDescriptor(name="id", type=FieldType.TEXT, primary_key=True, default="uuid"),
    ColumnDescriptor(name="created_at", type=FieldType.TIMESTAMP, default="now"),
    ColumnDescriptor(name="updated_at", type=FieldType.TIMESTAMP, default="now"),
)


def table_for(strand: Strand) -> TableDescriptor:
    """Build the table descriptor for a strand."""
    return TableDescriptor(
        strand=strand.name,
        table=table_name(strand.name),
        columns=tuple(ColumnDescriptor(name=f.name, type=f.type) for f in strand.fields),
        system_columns=SYSTEM_COLUMNS,
    )


def generate_schema(strand: Strand) -> list[GeneratedFile]:
    """Emit the schema descriptor artifact for a strand."""
    table = table_for(strand)
    return [
        GeneratedFile(
            path=f"schema/{snake_case(strand.name)}.json",
            content=table.model_dump_json(indent=2) + "\n",
            reason=f"Table '{table.table}' for strand {strand.name}",
        )
    ]
