"""3-layer configuration system for credaudit.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (.credaudit/config.yaml)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError, model_validator

from ..errors import ConfigurationError

CONFIG_DIR = ".credaudit"

DEFAULT_CONFIG: dict = {
    "store": {
        "path": "credentials.sqlite",
    },
    "lookup": {
        "provider": "hibp",
        "endpoint": "https://haveibeenpwned.com/api/v3/breachedaccount",
        "api_key_env": "HIBP_API_KEY",
        "user_agent": "credaudit-cli",
        "timeout_seconds": 30,
        "max_retries": 3,
        "retry_base_delay_seconds": 2,
    },
    # 10 requests/minute plan; batch of 8 leaves room for retries
    "rate_limit": {
        "requests_per_minute": 10,
        "batch_size": 8,
        "delay_between_requests": 7,
        "delay_between_batches": 70,
    },
    "passwords": {
        "endpoint": "https://api.pwnedpasswords.com/range",
        "user_agent": "credaudit-cli",
        "timeout_seconds": 30,
        "delay_between_requests": 1.5,
    },
    "scoring": {
        "old_password_months": 12,
        "weights": {
            "compromised_password": 50,
            "email_breach_per_breach": 10,
            "critical_account_category": 30,
            "old_password_age": 15,
            "weak_password": 20,
            "duplicate_password": 15,
        },
        "critical_keywords": [],
        "common_passwords": [],
    },
}


class RateLimitConfig(BaseModel):
    """Request budget for the breach lookup service."""

    requests_per_minute: int = 10
    batch_size: int = 8
    delay_between_requests: float = 7
    delay_between_batches: float = 70

    @model_validator(mode="after")
    def _check_budget(self) -> "RateLimitConfig":
        if self.requests_per_minute <= 0 or self.batch_size <= 0:
            raise ValueError("requests_per_minute and batch_size must be positive")
        if self.delay_between_requests < 0 or self.delay_between_batches < 0:
            raise ValueError("delays must not be negative")
        if self.batch_size > self.requests_per_minute:
            raise ValueError(
                f"batch_size ({self.batch_size}) exceeds requests_per_minute "
                f"({self.requests_per_minute})"
            )
        return self


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_project_config(project_path: Path) -> dict:
    """Load project configuration from .credaudit/config.yaml."""
    config_path = project_path / CONFIG_DIR / "config.yaml"
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def get_effective_config(
    project_path: Path,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration for a run."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    project_config = load_project_config(project_path)
    if project_config:
        config = deep_merge(config, project_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    config["_project_path"] = str(project_path)
    return config


def get_rate_limit_config(config: dict) -> RateLimitConfig:
    """Build and validate the rate limit section."""
    try:
        return RateLimitConfig(**(config.get("rate_limit") or {}))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid rate_limit settings: {e}") from e


def get_store_path(config: dict) -> Path:
    """Resolve the SQLite path; relative paths live under .credaudit/."""
    raw = Path(config.get("store", {}).get("path") or DEFAULT_CONFIG["store"]["path"])
    if raw.is_absolute():
        return raw
    project_path = Path(config.get("_project_path", "."))
    return project_path / CONFIG_DIR / raw
