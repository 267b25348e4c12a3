"""
Config check use case — validate helix.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from helix.adapters.openrouter import AVAILABLE_MODELS
from helix.core.config.loader import ConfigError, HelixConfig, api_key, find_config_file, load_config


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: HelixConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "config": self.config.to_dict() if self.config else None,
        }


def check_config(
    config_path: Path | None = None,
    known_targets: list[str] | None = None,
    env: Mapping[str, str] | None = None,
) -> ConfigCheckResult:
    """Validate configuration and report issues.

    A missing helix.yml is fine (defaults apply); a broken one is not.
    """
    result = ConfigCheckResult()
    result.config_path = config_path or find_config_file()

    try:
        config = load_config(result.config_path, env=env, search=False)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    if result.config_path is None:
        result.warnings.append("No helix.yml found, using defaults.")

    if not api_key(env):
        result.warnings.append("OPENROUTER_API_KEY is not set; draft and spawn will fail.")

    for label, model in (("model", config.model), ("research_model", config.research_model)):
        if model not in AVAILABLE_MODELS:
            result.warnings.append(f"{label} '{model}' is not in the known model list.")

    if known_targets is not None and config.default_target not in known_targets:
        result.errors.append(
            f"default_target '{config.default_target}' is not registered "
            f"(available: {', '.join(known_targets)})"
        )

    result.valid = not result.errors
    return result
