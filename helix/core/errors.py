"""
Error taxonomy — every failure the compiler can surface.

Fatal:
    ParseError, UnresolvedReferenceError   → malformed blueprint, never retried
    RepairExhaustedError                   → self-healing bound reached

Retryable (inside the self-healing executor):
    ValidationError, JSONExtractionError   → output failed a structural check
    GenerationCallError, CompletionError   → the external call itself failed

Recoverable:
    PluginLoadError                        → logged and skipped
"""

from __future__ import annotations

from typing import Any


class HelixError(Exception):
    """Base class for all Helix errors."""


# ── Blueprint ───────────────────────────────────────────────────


class ParseError(HelixError):
    """Blueprint text does not match the grammar.

    Attributes:
        message: Human-readable description.
        offset:  Zero-based character offset into the source text.
        line:    One-based line number (derived from offset).
        column:  One-based column number (derived from offset).
    """

    def __init__(self, message: str, offset: int, source: str | None = None):
        self.message = message
        self.offset = offset
        self.line, self.column = _position(source, offset)
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line:
            return f"{self.message} (line {self.line}, column {self.column})"
        return f"{self.message} (offset {self.offset})"


class UnresolvedReferenceError(ParseError):
    """A view's ``list`` names a strand that does not exist."""

    def __init__(
        self,
        view: str,
        reference: str,
        offset: int,
        source: str | None = None,
    ):
        self.view = view
        self.reference = reference
        super().__init__(
            f"View '{view}' lists unknown strand '{reference}'",
            offset,
            source,
        )


def _position(source: str | None, offset: int) -> tuple[int, int]:
    if source is None:
        return 0, 0
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return line, column


# ── Generation ──────────────────────────────────────────────────


class ValidationError(HelixError):
    """Generated output failed a structural check."""


class JSONExtractionError(ValidationError):
    """No balanced JSON object or array found in a completion."""


class GenerationCallError(HelixError):
    """The external completion or build call failed."""


class CompletionError(GenerationCallError):
    """Text-completion transport failure.

    ``kind`` is one of ``auth``, ``rate_limit``, ``transport``, ``empty``.
    """

    def __init__(self, message: str, kind: str = "transport", status: int | None = None):
        self.kind = kind
        self.status = status
        super().__init__(message)


class RepairExhaustedError(HelixError):
    """Self-healing ran out of attempts without producing valid output."""

    def __init__(self, error: str, attempts: int, repair_log: tuple[str, ...] = ()):
        self.error = error
        self.attempts = attempts
        self.repair_log = tuple(repair_log)
        super().__init__(f"Failed after {attempts} attempt(s): {error}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "attempts": self.attempts,
            "repair_log": list(self.repair_log),
        }


class GenerationCancelledError(HelixError):
    """Self-healing was cancelled by the caller."""


# ── Plugins & artifacts ─────────────────────────────────────────


class PluginLoadError(HelixError):
    """A generator plugin is malformed or cannot be resolved."""

    def __init__(self, plugin: str, reason: str):
        self.plugin = plugin
        self.reason = reason
        super().__init__(f"Plugin '{plugin}': {reason}")


class DuplicateArtifactError(HelixError):
    """Two artifacts in one run claim the same path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Duplicate artifact path: {path}")
