"""
OpenRouter completion client — the external text-completion call.

Anything with an async ``complete(system, user, ...)`` method satisfies
``CompletionClient``; tests pass fakes. ``OpenRouterClient`` posts to
the chat-completions endpoint with ``urllib`` on a worker thread so the
event loop stays free.

Failures raise ``CompletionError`` with a ``kind``:
    auth        401 / 403
    rate_limit  429
    transport   other HTTP status, network error, undecodable body
    empty       response carried no message content
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Protocol, runtime_checkable

from helix.core.config.loader import DEFAULT_MODEL, RESEARCH_MODEL
from helix.core.errors import CompletionError

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
REFERER = "https://github.com/helix-lang/helix"
APP_TITLE = "Helix CLI"

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 120.0

AVAILABLE_MODELS: tuple[str, ...] = (
    "anthropic/claude-3.5-sonnet",
    "anthropic/claude-3-opus",
    "anthropic/claude-3-sonnet",
    "anthropic/claude-3-haiku",
    "google/gemini-pro-1.5",
    "google/gemini-flash-1.5",
    "openai/gpt-4-turbo",
    "openai/gpt-4o",
    "meta-llama/llama-3.1-405b-instruct",
    "mistralai/mistral-large",
)


@runtime_checkable
class CompletionClient(Protocol):
    """Text completion: system + user prompt in, plain text out."""

    async def complete(
        self,
        system: str,
        user: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str: ...


class OpenRouterClient:
    """OpenRouter chat-completions client.

    Args:
        api_key: OpenRouter API key.
        model: Default model when a call does not name one.
        timeout: HTTP timeout in seconds per request.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        url: str = OPENROUTER_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not api_key:
            raise CompletionError("OPENROUTER_API_KEY is not set", kind="auth")
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout

    async def complete(
        self,
        system: str,
        user: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        payload = self.build_payload(
            system,
            user,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        body = await asyncio.to_thread(self._post, payload)
        return self.parse_response(body)

    async def research(self, system: str, user: str, **kwargs: Any) -> str:
        """Completion on the cheaper, faster research model."""
        return await self.complete(system, user, model=RESEARCH_MODEL, **kwargs)

    def build_payload(
        self,
        system: str,
        user: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        return {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        }

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": REFERER,
            "X-Title": APP_TITLE,
        }

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        logger.debug("POST %s model=%s", self.url, payload["model"])
        req = urllib.request.Request(
            self.url,
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(),
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            detail = _read_error_body(e)
            raise CompletionError(
                f"OpenRouter API error: {e.code} - {detail}",
                kind=_kind_for_status(e.code),
                status=e.code,
            ) from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise CompletionError(f"OpenRouter request failed: {e}", kind="transport") from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CompletionError(f"OpenRouter returned invalid JSON: {e}", kind="transport") from e

    @staticmethod
    def parse_response(body: dict[str, Any]) -> str:
        """Pull the first choice's message content out of a response body."""
        choices = body.get("choices") or []
        if not choices:
            raise CompletionError("No response from AI", kind="empty")
        content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise CompletionError("No response from AI", kind="empty")

        usage = body.get("usage") or {}
        if usage:
            logger.debug(
                "Completion tokens: prompt=%s completion=%s",
                usage.get("prompt_tokens"),
                usage.get("completion_tokens"),
            )
        return content


def _kind_for_status(status: int) -> str:
    if status in (401, 403):
        return "auth"
    if status == 429:
        return "rate_limit"
    return "transport"


def _read_error_body(err: urllib.error.HTTPError) -> str:
    try:
        return err.read().decode("utf-8", errors="replace")[:500]
    except OSError:
        return err.reason if isinstance(err.reason, str) else ""
