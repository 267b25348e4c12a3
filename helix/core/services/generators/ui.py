"""
UI generator — view (+ its strand) → rendering descriptor.
"""

from __future__ import annotations

from helix.core.models.blueprint import Strand, View
from helix.core.models.descriptors import Layout, ViewDescriptor
from helix.core.models.template import GeneratedFile
from helix.core.services.generators.layout import classify_layout, layout_slots
from helix.core.services.naming import kebab_case, snake_case

DEFAULT_THEME = "Glassmorphism"


def view_route(view: View) -> str:
    return "/" + (kebab_case(view.name) or view.name.lower())


def view_for(view: View, strand: Strand | None) -> ViewDescriptor:
    """Build the rendering descriptor for a view.

    A view with no bound strand renders as an empty grid.
    """
    if strand is None:
        layout = Layout.GRID
        fields: tuple[str, ...] = ()
        slots: dict[str, str] = {}
    else:
        ordered = [f.name for f in strand.fields]
        layout = classify_layout(strand.field_names)
        fields = tuple(ordered)
        slots = layout_slots(layout, ordered)

    return ViewDescriptor(
        view=view.name,
        route=view_route(view),
        layout=layout,
        theme=view.theme or DEFAULT_THEME,
        strand=strand.name if strand else None,
        query=view.list_query,
        fields=fields,
        slots=slots,
    )


def generate_ui(view: View, strand: Strand | None) -> list[GeneratedFile]:
    """Emit the view descriptor artifact."""
    descriptor = view_for(view, strand)
    return [
        GeneratedFile(
            path=f"ui/{snake_case(view.name)}.json",
            content=descriptor.model_dump_json(indent=2) + "\n",
            reason=f"{descriptor.layout.value} layout for view {view.name}",
        )
    ]
