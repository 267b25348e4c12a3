"""
JSON extraction — pull one JSON value out of a free-form completion.

Completions often wrap JSON in markdown fences or surround it with
prose. Extraction:
    1. strips one leading fence marker (```json or ```) and one trailing ```
    2. finds the first '{' or '['
    3. scans forward tracking brace/bracket depth (string literals are
       skipped) until the matching close
    4. returns only that substring

No balanced structure → JSONExtractionError, which the self-healing
executor treats like any other validation failure.
"""

from __future__ import annotations

import json
from typing import Any

from helix.core.errors import JSONExtractionError

_FENCE = "```"
_PAIRS = {"{": "}", "[": "]"}


def strip_fences(text: str, language: str | None = None) -> str:
    """Remove a single leading and trailing markdown code fence.

    With ``language`` given, a ```<language> opener is stripped too;
    otherwise the whole opener line (```anything) is dropped.
    """
    out = text.strip()
    if out.startswith(_FENCE):
        if language and out.startswith(_FENCE + language):
            out = out[len(_FENCE) + len(language):]
        elif language is None:
            newline = out.find("\n")
            out = out[newline + 1:] if newline != -1 else out[len(_FENCE):]
        else:
            out = out[len(_FENCE):]
    if out.endswith(_FENCE):
        out = out[: -len(_FENCE)]
    return out.strip()


def extract_json(text: str) -> str:
    """Return the first balanced JSON object/array substring of ``text``.

    Raises:
        JSONExtractionError: No opening bracket, or no matching close.
    """
    body = strip_fences(text, language="json")

    starts = [i for i in (body.find("{"), body.find("[")) if i != -1]
    if not starts:
        raise JSONExtractionError("No JSON object or array found in response")
    start = min(starts)

    stack: list[str] = []
    in_string = False
    escaped = False

    for i in range(start, len(body)):
        ch = body[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _PAIRS:
            stack.append(_PAIRS[ch])
        elif ch in ("}", "]"):
            if not stack or stack[-1] != ch:
                raise JSONExtractionError(f"Mismatched '{ch}' at position {i}")
            stack.pop()
            if not stack:
                return body[start : i + 1]

    raise JSONExtractionError("Unbalanced JSON: no matching close found")


def parse_json(text: str) -> Any:
    """Extract and decode. Decode errors surface as JSONExtractionError."""
    snippet = extract_json(text)
    try:
        return json.loads(snippet)
    except json.JSONDecodeError as e:
        raise JSONExtractionError(f"Invalid JSON: {e}") from e
