"""
Configuration loader — reads helix.yml into a ``HelixConfig``.

Values are layered, lowest to highest precedence:
    built-in defaults  <  helix.yml  <  HELIX_* environment variables

The OpenRouter API key is never read from the file; it comes only from
``OPENROUTER_API_KEY``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "helix.yml"

DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"
RESEARCH_MODEL = "google/gemini-flash-1.5"

API_KEY_ENV = "OPENROUTER_API_KEY"

# env var → HelixConfig field
ENV_OVERRIDES: dict[str, str] = {
    "HELIX_DEFAULT_MODEL": "model",
    "HELIX_RESEARCH_MODEL": "research_model",
    "HELIX_MAX_REPAIR_ATTEMPTS": "max_repair_attempts",
    "HELIX_ATTEMPT_TIMEOUT": "attempt_timeout",
}


class ConfigError(Exception):
    """Raised when helix.yml or an override is invalid."""


class HelixConfig(BaseModel):
    """Validated Helix settings."""

    model_config = ConfigDict(extra="forbid")

    model: str = DEFAULT_MODEL
    research_model: str = RESEARCH_MODEL
    max_repair_attempts: int = Field(default=2, ge=0, le=10)
    attempt_timeout: float | None = Field(default=None, gt=0)
    default_target: str = "web"
    # completion cap for drafting and schema-repair calls
    max_tokens: int = Field(default=2048, gt=0)
    plugin_prefix: str = "helix-gen-"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Nearest helix.yml in ``start_dir`` (default: cwd) or any parent."""
    start = (start_dir or Path.cwd()).resolve()
    return next(
        (d / CONFIG_FILE for d in (start, *start.parents) if (d / CONFIG_FILE).is_file()),
        None,
    )


def load_config(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    search: bool = True,
) -> HelixConfig:
    """Load and validate configuration.

    Args:
        path: Explicit path to helix.yml. If None and ``search`` is set,
            searches upward from the cwd. A missing file is not an error
            unless it was named explicitly.
        env: Environment mapping for overrides (default: os.environ).
        search: Whether to look for helix.yml when ``path`` is None.

    Raises:
        ConfigError: If the file is unreadable or any value is invalid.
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = {}

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        data = _read_yaml(path)
    elif search:
        found = find_config_file()
        if found is not None:
            data = _read_yaml(found)

    for var, key in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            logger.debug("Config override %s from %s", key, var)
            data[key] = value

    try:
        config = HelixConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug("Loaded config: model=%s, max_repair_attempts=%d", config.model, config.max_repair_attempts)
    return config


def api_key(env: Mapping[str, str] | None = None) -> str | None:
    env = os.environ if env is None else env
    return env.get(API_KEY_ENV) or None


def _read_yaml(path: Path) -> dict[str, Any]:
    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Either flat, or nested under a top-level "helix" key
    if isinstance(data.get("helix"), dict):
        data = dict(data["helix"])
    return dict(data)
