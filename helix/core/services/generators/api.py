"""
API generator — strand → CRUD handler set.

Every strand gets the same four operations on ``/api/<resource>``:
list (GET), create (POST), update (PUT) and delete (DELETE).
Update and delete address a single record by ``id``.
"""

from __future__ import annotations

from helix.core.models.blueprint import Strand
from helix.core.models.descriptors import HandlerOperation, HandlerSet
from helix.core.models.template import GeneratedFile
from helix.core.services.naming import kebab_case, pluralize, snake_case


def resource_name(strand: Strand) -> str:
    """``TaskItem`` → ``task-items``."""
    return pluralize(kebab_case(strand.name) or strand.name.lower())


def handlers_for(strand: Strand) -> HandlerSet:
    """Build the handler set for a strand."""
    resource = resource_name(strand)
    path = f"/api/{resource}"
    fields = tuple(f.name for f in strand.fields)

    return HandlerSet(
        strand=strand.name,
        resource=resource,
        path=path,
        operations=(
            HandlerOperation(name="list", method="GET", path=path, returns="many"),
            HandlerOperation(name="create", method="POST", path=path, input_fields=fields),
            HandlerOperation(
                name="update",
                method="PUT",
                path=path,
                input_fields=fields,
                requires_id=True,
            ),
            HandlerOperation(
                name="delete",
                method="DELETE",
                path=path,
                requires_id=True,
                returns="none",
            ),
        ),
    )


def generate_api(strand: Strand) -> list[GeneratedFile]:
    """Emit the handler-set descriptor artifact for a strand."""
    handlers = handlers_for(strand)
    return [
        GeneratedFile(
            path=f"api/{snake_case(strand.name)}.json",
            content=handlers.model_dump_json(indent=2) + "\n",
            reason=f"CRUD handlers at {handlers.path}",
        )
    ]
