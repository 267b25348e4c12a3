"""
Self-healing executor — bounded, error-informed retries around
fallible generation calls.

States:
    PENDING    → first attempt not started
    ATTEMPTING → generator/validator running
    RETRYING   → attempt failed, budget remains
    SUCCEEDED  → output accepted (terminal)
    EXHAUSTED  → budget spent (terminal)
    CANCELLED  → caller's cancel event fired (terminal)

Transitions:
    PENDING → ATTEMPTING → SUCCEEDED | RETRYING | EXHAUSTED
    RETRYING → ATTEMPTING
    any non-terminal → CANCELLED

Attempts run strictly one after another: each generator call receives
the previous failed attempt so the retry can repair it. Every attempt
is bounded by ``attempt_timeout``. The executor never raises for
generation or validation failures; callers inspect the result (or call
``GenerationResult.raise_for_failure()``).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from helix.core.errors import GenerationCallError, ValidationError
from helix.core.models.generation import (
    BuildCheck,
    ExecutorState,
    GenerationAttempt,
    GenerationResult,
)
from helix.core.reliability.json_extract import parse_json, strip_fences

if TYPE_CHECKING:
    from helix.adapters.openrouter import CompletionClient

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

MAX_REPAIR_ATTEMPTS = 2
DEFAULT_MAX_TOKENS = 8192

CODE_REPAIR_SYSTEM_PROMPT = """\
You are a code repair specialist.
Fix the error in the provided code and return ONLY the corrected code.
Do not include explanations or markdown fences."""


class _Cancelled(Exception):
    """Internal signal: the caller's cancel event fired mid-attempt."""


def build_repair_prompt(original_prompt: str, error: str) -> str:
    """Wrap the original request with the error the last attempt hit."""
    return (
        "The previous generation had an error:\n"
        f"ERROR: {error}\n\n"
        "Please fix the issue and regenerate. Remember:\n"
        "1. Output ONLY valid JSON, no markdown or explanations\n"
        "2. Ensure all required fields are present\n"
        "3. Ensure proper escaping of special characters\n\n"
        "ORIGINAL REQUEST:\n"
        f"{original_prompt}"
    )


def build_code_repair_prompt(code: str, error: str) -> str:
    return (
        "Fix this code that has an error:\n\n"
        f"ERROR:\n{error}\n\n"
        f"CODE:\n{code}\n\n"
        "Return the fixed code only."
    )


def repair_code_with(
    client: CompletionClient,
    *,
    model: str | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    system_prompt: str = CODE_REPAIR_SYSTEM_PROMPT,
    build_prompt: Callable[[str, str], str] = build_code_repair_prompt,
) -> Callable[[str, str], Awaitable[str]]:
    """Build a ``repair(code, error)`` callable backed by a completion client."""

    async def repair(code: str, error: str) -> str:
        response = await client.complete(
            system_prompt,
            build_prompt(code, error),
            model=model,
            max_tokens=max_tokens,
        )
        return strip_fences(response)

    return repair


class SelfHealingExecutor:
    """Runs a generation step until its output is accepted or the budget ends.

    Args:
        max_repair_attempts: Extra attempts after the first one.
        attempt_timeout: Seconds allowed per attempt (None = unbounded).
    """

    def __init__(
        self,
        max_repair_attempts: int = MAX_REPAIR_ATTEMPTS,
        attempt_timeout: float | None = None,
    ):
        if max_repair_attempts < 0:
            raise ValueError("max_repair_attempts must be >= 0")
        if attempt_timeout is not None and attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be positive")
        self.max_repair_attempts = max_repair_attempts
        self.attempt_timeout = attempt_timeout

    @property
    def max_attempts(self) -> int:
        return self.max_repair_attempts + 1

    # ── Public API ──────────────────────────────────────────────

    async def execute(
        self,
        generator: Callable[[GenerationAttempt | None], Awaitable[T] | T],
        validator: Callable[[T], Any],
        *,
        cancel: asyncio.Event | None = None,
        label: str = "generation",
    ) -> GenerationResult[T]:
        """Generate, validate, and repair until accepted.

        Args:
            generator: Called with None first, then with the previous
                failed attempt. May be sync or async.
            validator: Raises on invalid output. May be sync or async.
            cancel: Optional event; once set, no further attempt starts
                and an in-flight attempt is abandoned.
            label: Name used in log messages.
        """

        async def accept(output: T) -> T:
            outcome = validator(output)
            if inspect.isawaitable(outcome):
                await outcome
            return output

        return await self._run(generator, accept, cancel=cancel, label=label)

    async def execute_json(
        self,
        client: CompletionClient,
        system_prompt: str,
        user_prompt: str,
        parse_and_validate: Callable[[Any], U],
        *,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        cancel: asyncio.Event | None = None,
    ) -> GenerationResult[U]:
        """Completion → JSON extraction → ``parse_and_validate``.

        Retries send the original request wrapped in a repair prompt
        that quotes the previous error.
        """

        async def generate(previous: GenerationAttempt | None) -> str:
            prompt = (
                user_prompt
                if previous is None
                else build_repair_prompt(user_prompt, previous.error)
            )
            return await client.complete(
                system_prompt, prompt, model=model, max_tokens=max_tokens
            )

        async def accept(response: str) -> U:
            return parse_and_validate(parse_json(response))

        return await self._run(generate, accept, cancel=cancel, label="json")

    async def execute_with_build_check(
        self,
        generate: Callable[[GenerationAttempt | None], Awaitable[str]],
        check: Callable[[str], Awaitable[BuildCheck]],
        repair: Callable[[str, str], Awaitable[str]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> GenerationResult[str]:
        """Generate code once, then repair it against build-check errors.

        The first attempt calls ``generate(None)``. Once code exists, later
        attempts call ``repair(last_code, last_build_error)`` instead of
        regenerating from scratch; until then a failed ``generate`` is
        called again with the failed attempt. ``check`` plays the
        validator role.
        """
        last_code: str | None = None
        last_build_error: str | None = None

        async def produce(previous: GenerationAttempt | None) -> str:
            if last_code is None:
                return await generate(previous)
            error = last_build_error or (previous.error if previous else "")
            return await repair(last_code, error)

        async def accept(code: str) -> str:
            nonlocal last_code, last_build_error
            last_code = code
            outcome = await check(code)
            if not outcome.success:
                last_build_error = outcome.error or "Build failed"
                raise ValidationError(f"Build failed - {last_build_error}")
            return code

        return await self._run(produce, accept, cancel=cancel, label="build-check")

    # ── Loop ────────────────────────────────────────────────────

    async def _run(
        self,
        produce: Callable[[GenerationAttempt | None], Any],
        accept: Callable[[Any], Awaitable[Any]],
        *,
        cancel: asyncio.Event | None,
        label: str,
    ) -> GenerationResult:
        state = ExecutorState.PENDING
        previous: GenerationAttempt | None = None
        repair_log: tuple[str, ...] = ()
        last_error = ""
        attempts = 0

        for number in range(1, self.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                return self._cancelled(label, state, attempts, repair_log)

            state = self._transition(label, state, ExecutorState.ATTEMPTING, number)
            attempts = number
            output: Any = None
            phase = "generation"

            try:
                output = produce(previous)
                if inspect.isawaitable(output):
                    output = await self._bounded(output, cancel)
                phase = "validation"
                data = await self._bounded(accept(output), cancel)
            except _Cancelled:
                return self._cancelled(label, state, attempts, repair_log)
            except TimeoutError:
                kind = "timeout"
                error = f"{phase.capitalize()} timed out after {self.attempt_timeout}s"
            except GenerationCallError as e:
                kind = "generation"
                error = _describe(e)
            except Exception as e:
                kind = phase
                error = _describe(e)
            else:
                self._transition(label, state, ExecutorState.SUCCEEDED, number)
                return GenerationResult(
                    success=True,
                    data=data,
                    attempts=number,
                    repair_log=repair_log,
                    state=ExecutorState.SUCCEEDED,
                )

            last_error = error
            repair_log = repair_log + (f"Attempt {number}: {error}",)
            previous = GenerationAttempt(
                number=number,
                error=error,
                kind=kind,
                repair_log=repair_log,
                output=output if phase == "validation" else None,
            )

            if number < self.max_attempts:
                logger.warning(
                    "%s failed (%s), attempting repair (%d/%d): %s",
                    label,
                    kind,
                    number,
                    self.max_repair_attempts,
                    error,
                )
                state = self._transition(label, state, ExecutorState.RETRYING, number)

        self._transition(label, state, ExecutorState.EXHAUSTED, attempts)
        logger.error("%s exhausted after %d attempt(s): %s", label, attempts, last_error)
        return GenerationResult(
            success=False,
            error=last_error,
            attempts=attempts,
            repair_log=repair_log,
            state=ExecutorState.EXHAUSTED,
        )

    async def _bounded(self, awaitable: Awaitable[Any], cancel: asyncio.Event | None) -> Any:
        """Await with the per-attempt timeout and the cancel event."""
        if cancel is None:
            if self.attempt_timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, self.attempt_timeout)

        task = asyncio.ensure_future(awaitable)
        cancel_wait = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {task, cancel_wait},
                timeout=self.attempt_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_wait.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if cancel.is_set():
            raise _Cancelled()
        raise TimeoutError()

    def _cancelled(
        self,
        label: str,
        state: ExecutorState,
        attempts: int,
        repair_log: tuple[str, ...],
    ) -> GenerationResult:
        self._transition(label, state, ExecutorState.CANCELLED, attempts)
        return GenerationResult(
            success=False,
            error="Cancelled",
            attempts=attempts,
            repair_log=repair_log,
            state=ExecutorState.CANCELLED,
        )

    @staticmethod
    def _transition(
        label: str,
        old: ExecutorState,
        new: ExecutorState,
        attempt: int,
    ) -> ExecutorState:
        logger.debug("Self-healing '%s' [attempt %d]: %s → %s", label, attempt, old.value, new.value)
        return new


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__
