"""
Spawn use case — one-shot app generation from a natural-language idea.

Phases:
    1. (optional) research the domain for extra drafting context
    2. draft a blueprint (self-healing, validated by the parser)
    3. generate the target manifest through its plugin
    4. (optional) apply the database schema, repairing it on failure
    5. write the manifest into a fresh project directory

A phase that exhausts its repair budget aborts the run; the result
carries the repair log.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from helix.adapters.filesystem import WriteResult, write_manifest
from helix.core.errors import (
    CompletionError,
    GenerationCancelledError,
    ParseError,
    RepairExhaustedError,
)
from helix.core.models.template import GeneratedFile
from helix.core.reliability.self_healing import SelfHealingExecutor
from helix.core.services.drafting import draft_blueprint, research_domain
from helix.core.services.naming import project_slug
from helix.core.services.schema_apply import SCHEMA_PATH, SchemaApplier, apply_schema_with_repair
from helix.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from helix.adapters.openrouter import CompletionClient

logger = logging.getLogger(__name__)

BLUEPRINT_FILE = "app.helix"


@dataclass
class SpawnResult:
    """Result of one spawn run."""

    prompt: str
    target: str
    project_name: str = ""
    project_path: Path | None = None
    blueprint: str | None = None
    draft_attempts: int = 0
    schema_attempts: int = 0
    repair_log: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    scaffold_command: list[str] | None = None
    write: WriteResult | None = None
    error: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "prompt": self.prompt,
            "target": self.target,
            "project_name": self.project_name,
            "project_path": str(self.project_path) if self.project_path else None,
            "blueprint": self.blueprint,
            "draft_attempts": self.draft_attempts,
            "schema_attempts": self.schema_attempts,
            "repair_log": self.repair_log,
            "dependencies": self.dependencies,
            "scaffold_command": self.scaffold_command,
            "write": self.write.to_dict() if self.write else None,
            "error": self.error,
            "cancelled": self.cancelled,
        }


async def run_spawn(
    prompt: str,
    registry: PluginRegistry,
    client: CompletionClient,
    executor: SelfHealingExecutor,
    *,
    target: str = "web",
    output_dir: Path | None = None,
    context: str | None = None,
    options: dict[str, str] | None = None,
    applier_factory: Callable[[Path], SchemaApplier] | None = None,
    model: str | None = None,
    max_tokens: int | None = None,
    research_model: str | None = None,
    research: bool = False,
    cancel: asyncio.Event | None = None,
) -> SpawnResult:
    """Spawn a project for ``prompt``.

    Args:
        prompt: Natural-language app description.
        registry: Plugin registry.
        client: Completion client.
        executor: Retry policy for drafting and schema repair.
        target: Registered target name.
        output_dir: Parent directory for the new project (default: cwd).
        context: Optional constitution text.
        options: Extra target options.
        applier_factory: Builds the schema applier for the project
            directory. Schema apply only runs for targets that emit
            ``prisma/schema.prisma``.
        model: Model override for drafting and repair.
        max_tokens: Completion cap for drafting and repair (None keeps
            each phase's default).
        research_model: Model for the optional research phase.
        research: Run the research phase first.
        cancel: Optional cancellation signal.
    """
    result = SpawnResult(prompt=prompt, target=target)

    plugin = registry.load(target)
    if plugin is None:
        result.error = f"Target '{target}' is unavailable"
        return result

    sep = "_" if target == "flutter" else "-"
    result.project_name = project_slug(prompt, sep=sep)
    result.project_path = (output_dir or Path.cwd()) / result.project_name

    if result.project_path.exists() and any(result.project_path.iterdir()):
        result.error = f'Directory "{result.project_name}" already exists'
        return result

    # ── Phase 1: research ───────────────────────────────────────
    if research:
        try:
            report = await research_domain(prompt, client, model=research_model)
        except CompletionError as e:
            logger.warning("Research skipped: %s", e)
        else:
            context = f"{context}\n\n{report}" if context else report

    # ── Phase 2: draft ──────────────────────────────────────────
    token_cap = {"max_tokens": max_tokens} if max_tokens is not None else {}
    draft = await draft_blueprint(
        prompt, client, executor, context, model=model, cancel=cancel, **token_cap
    )
    result.draft_attempts = draft.attempts
    result.repair_log.extend(draft.repair_log)
    try:
        result.blueprint = draft.raise_for_failure()
    except GenerationCancelledError:
        result.cancelled = True
        return result
    except RepairExhaustedError as e:
        result.error = f"Blueprint drafting failed: {e}"
        return result

    # ── Phase 3: generate ───────────────────────────────────────
    opts = {
        **(options or {}),
        "project_name": result.project_name,
        "title": " ".join(prompt.split()[:5]),
    }
    try:
        manifest = plugin.generate(result.blueprint, context, opts)
    except (ParseError, ValueError) as e:
        result.error = f"Generation failed: {e}"
        return result

    result.dependencies = plugin.dependencies_for(opts)
    result.scaffold_command = plugin.scaffold_command(result.project_name)

    manifest.add(
        GeneratedFile(
            path=BLUEPRINT_FILE,
            content=result.blueprint + "\n",
            overwrite=True,
            reason="Drafted blueprint",
        )
    )

    # ── Phase 4: schema apply ───────────────────────────────────
    schema_file = manifest.get(SCHEMA_PATH)
    if applier_factory is not None and schema_file is not None:
        applier = applier_factory(result.project_path)
        applied = await apply_schema_with_repair(
            schema_file.content,
            applier,
            client,
            executor,
            model=model,
            cancel=cancel,
            **token_cap,
        )
        result.schema_attempts = applied.attempts
        result.repair_log.extend(applied.repair_log)
        try:
            schema = applied.raise_for_failure()
        except GenerationCancelledError:
            result.cancelled = True
            return result
        except RepairExhaustedError as e:
            result.error = f"Failed to build database: {e}"
            return result
        manifest.add(schema_file.model_copy(update={"content": schema, "overwrite": True}))

    # ── Phase 5: write ──────────────────────────────────────────
    result.write = write_manifest(result.project_path, manifest)
    if not result.write.ok:
        result.error = f"{len(result.write.errors)} file(s) could not be written"

    logger.info("Spawned %s at %s", result.project_name, result.project_path)
    return result
