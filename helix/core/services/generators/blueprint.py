"""
Blueprint pipeline — run every generator over a whole blueprint.
"""

from __future__ import annotations

from helix.core.models.blueprint import Blueprint
from helix.core.models.template import GeneratedFile
from helix.core.services.generators.api import generate_api
from helix.core.services.generators.schema import generate_schema
from helix.core.services.generators.ui import generate_ui


def generate_blueprint(blueprint: Blueprint) -> list[GeneratedFile]:
    """Schema and API artifacts per strand, then one UI artifact per view."""
    files: list[GeneratedFile] = []
    for strand in blueprint.strands:
        files.extend(generate_schema(strand))
        files.extend(generate_api(strand))
    for view in blueprint.views:
        files.extend(generate_ui(view, blueprint.strand_for(view)))
    return files
