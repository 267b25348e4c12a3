"""
Blueprint drafting — app idea → blueprint source via a completion call.

The completion is wrapped in the self-healing executor with ``parse``
as the validator, so a draft that does not parse is sent back together
with the parse error until it does or the repair budget runs out.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from helix.core.models.generation import GenerationAttempt, GenerationResult
from helix.core.parser import parse
from helix.core.reliability.json_extract import strip_fences
from helix.core.reliability.self_healing import SelfHealingExecutor
from helix.core.services.prompts import (
    RESEARCHER_SYSTEM_PROMPT,
    architect_system_prompt,
    architect_user_prompt,
    blueprint_repair_prompt,
)

if TYPE_CHECKING:
    from helix.adapters.openrouter import CompletionClient

logger = logging.getLogger(__name__)

DRAFT_MAX_TOKENS = 2048


async def draft_blueprint(
    idea: str,
    client: CompletionClient,
    executor: SelfHealingExecutor,
    context: str | None = None,
    *,
    model: str | None = None,
    max_tokens: int = DRAFT_MAX_TOKENS,
    cancel: asyncio.Event | None = None,
) -> GenerationResult[str]:
    """Draft blueprint source for ``idea``.

    Args:
        idea: Natural-language app description.
        client: Completion client.
        executor: Retry policy.
        context: Optional constitution/research text for the architect.
        model: Model override.
        max_tokens: Completion cap per attempt.
        cancel: Optional cancellation signal.

    Returns:
        Result whose ``data`` is blueprint source that parses.
    """
    system = architect_system_prompt(context)

    async def generate(previous: GenerationAttempt | None) -> str:
        if previous is None or previous.output is None:
            user = architect_user_prompt(idea)
        else:
            user = blueprint_repair_prompt(idea, previous.output, previous.error)
        response = await client.complete(system, user, model=model, max_tokens=max_tokens)
        return strip_fences(response)

    logger.info("Drafting blueprint for: %s", idea)
    result = await executor.execute(generate, parse, cancel=cancel, label="draft")
    if result.success:
        logger.info("Blueprint drafted in %d attempt(s)", result.attempts)
    return result


async def research_domain(
    idea: str,
    client: CompletionClient,
    *,
    model: str | None = None,
) -> str:
    """Domain analysis report used as drafting context.

    Completion errors propagate; research is an optional step the
    caller decides whether to skip.
    """
    logger.info("Researching domain: %s", idea)
    return await client.complete(
        RESEARCHER_SYSTEM_PROMPT,
        f"Research the domain for this app: {idea}",
        model=model,
    )
