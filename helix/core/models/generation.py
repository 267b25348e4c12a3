"""
Self-healing state — attempts, results, and build-check outcomes.

``GenerationAttempt`` values are immutable: each failed attempt produces
a new one carrying the grown repair log, which is handed to the next
generator call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from helix.core.errors import GenerationCancelledError, RepairExhaustedError

T = TypeVar("T")


class ExecutorState(StrEnum):
    """Self-healing executor states.

    Transitions:
        PENDING    → ATTEMPTING
        ATTEMPTING → SUCCEEDED | RETRYING | EXHAUSTED | CANCELLED
        RETRYING   → ATTEMPTING | CANCELLED
    """

    PENDING = "pending"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GenerationAttempt:
    """A failed attempt, as seen by the next generator call.

    Attributes:
        number:     1-based attempt ordinal.
        error:      Captured error message.
        kind:       "generation", "validation" or "timeout".
        repair_log: Every log entry up to and including this attempt.
        output:     The rejected output, when the generator produced one.
    """

    number: int
    error: str
    kind: str = "generation"
    repair_log: tuple[str, ...] = ()
    output: Any = None


@dataclass(frozen=True)
class GenerationResult(Generic[T]):
    """Outcome of one executor call. Callers inspect it; nothing is raised."""

    success: bool
    attempts: int
    data: T | None = None
    error: str | None = None
    repair_log: tuple[str, ...] = ()
    state: ExecutorState = ExecutorState.PENDING

    @property
    def cancelled(self) -> bool:
        return self.state == ExecutorState.CANCELLED

    def raise_for_failure(self) -> T:
        """Return ``data`` on success, otherwise raise the fatal error."""
        if self.success:
            return self.data  # type: ignore[return-value]
        if self.cancelled:
            raise GenerationCancelledError(self.error or "cancelled")
        raise RepairExhaustedError(self.error or "unknown error", self.attempts, self.repair_log)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "attempts": self.attempts,
            "error": self.error,
            "repair_log": list(self.repair_log),
            "state": self.state.value,
        }


@dataclass
class BuildCheck:
    """Result of an external build or apply check."""

    success: bool
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **details: Any) -> BuildCheck:
        return cls(success=True, details=details)

    @classmethod
    def failed(cls, error: str, **details: Any) -> BuildCheck:
        return cls(success=False, error=error, details=details)
