"""
Schema apply — push a generated database schema, repairing it on failure.

An applier is the build-check half of the self-healing loop: it takes
schema text and reports whether the external tool accepted it. The
repair half asks the completion client for a corrected schema.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from helix.adapters.process import ProcessRunner
from helix.core.models.generation import BuildCheck, GenerationAttempt, GenerationResult
from helix.core.reliability.self_healing import SelfHealingExecutor, repair_code_with
from helix.core.services.prompts import SCHEMA_REPAIR_SYSTEM_PROMPT, schema_repair_prompt

if TYPE_CHECKING:
    from helix.adapters.openrouter import CompletionClient

logger = logging.getLogger(__name__)

SCHEMA_PATH = "prisma/schema.prisma"
PRISMA_PUSH = ["npm", "exec", "--", "prisma", "db", "push", "--accept-data-loss"]
PRISMA_GENERATE = ["npm", "exec", "--", "prisma", "generate"]
SCHEMA_REPAIR_MAX_TOKENS = 2048

# Models sometimes invent this file; Prisma then refuses to run.
_STRAY_CONFIG = "prisma.config.ts"


@runtime_checkable
class SchemaApplier(Protocol):
    """Build/validate step for generated schema text."""

    async def check(self, code: str) -> BuildCheck: ...


class PrismaPushApplier:
    """Write ``schema.prisma`` into a project and run ``prisma db push``.

    Args:
        project_path: Generated project root.
        runner: Process runner (injectable for tests).
        generate_client: Also run ``prisma generate`` after a good push.
    """

    def __init__(
        self,
        project_path: Path,
        runner: ProcessRunner | None = None,
        *,
        generate_client: bool = True,
    ):
        self.project_path = Path(project_path)
        self.runner = runner or ProcessRunner()
        self.generate_client = generate_client

    async def check(self, code: str) -> BuildCheck:
        schema_file = self.project_path / SCHEMA_PATH
        schema_file.parent.mkdir(parents=True, exist_ok=True)
        schema_file.write_text(code, encoding="utf-8")

        stray = self.project_path / _STRAY_CONFIG
        if stray.exists():
            logger.debug("Removing stray %s", stray)
            stray.unlink()

        push = await self.runner.run_async(PRISMA_PUSH, cwd=self.project_path)
        if not push.ok:
            return BuildCheck.failed(push.error, command="db push")

        if self.generate_client:
            gen = await self.runner.run_async(PRISMA_GENERATE, cwd=self.project_path)
            if not gen.ok:
                return BuildCheck.failed(gen.error, command="generate")

        return BuildCheck.ok(duration_ms=push.duration_ms)


async def apply_schema_with_repair(
    schema: str,
    applier: SchemaApplier,
    client: CompletionClient,
    executor: SelfHealingExecutor,
    *,
    model: str | None = None,
    max_tokens: int = SCHEMA_REPAIR_MAX_TOKENS,
    cancel: asyncio.Event | None = None,
) -> GenerationResult[str]:
    """Apply ``schema``; on failure, repair it and try again.

    Returns the result whose ``data`` is the schema text that applied.
    """

    async def generate(previous: GenerationAttempt | None) -> str:
        return schema

    repair = repair_code_with(
        client,
        model=model,
        max_tokens=max_tokens,
        system_prompt=SCHEMA_REPAIR_SYSTEM_PROMPT,
        build_prompt=schema_repair_prompt,
    )

    result = await executor.execute_with_build_check(generate, applier.check, repair, cancel=cancel)
    if result.success and result.attempts > 1:
        logger.info("Schema applied after %d repair(s)", result.attempts - 1)
    return result
