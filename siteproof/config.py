"""Environment-backed configuration for the Claude integration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from .errors import ConfigurationError


DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for retryable upstream failures."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (0-based) failed attempt."""
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class AIConfig:
    """Runtime settings for every model call made by SiteProof."""
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    max_iterations: int = 10
    timeout: float = 60.0
    # Tool loop default; individual analyses override below
    temperature: float = 0.2
    compliance_temperature: float = 0.2
    weather_temperature: float = 0.2
    schedule_temperature: float = 0.3
    report_temperature: float = 0.2
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    log_level: str = "INFO"
    check_token_budget: bool = True

    @classmethod
    def from_env(cls) -> AIConfig:
        return cls(
            api_key=_to_optional_string(os.environ.get("ANTHROPIC_API_KEY")),
            model=_to_optional_string(os.environ.get("SITEPROOF_MODEL")) or DEFAULT_MODEL,
            max_tokens=_to_positive_int(os.environ.get("SITEPROOF_MAX_TOKENS"), default=4096),
            max_iterations=_to_positive_int(
                os.environ.get("SITEPROOF_MAX_ITERATIONS"), default=10
            ),
            timeout=_to_positive_float(os.environ.get("SITEPROOF_TIMEOUT"), default=60.0),
            temperature=_to_temperature(os.environ.get("SITEPROOF_TEMPERATURE"), default=0.2),
            retry=RetryPolicy(
                max_attempts=_to_positive_int(os.environ.get("SITEPROOF_MAX_RETRIES"), default=3)
            ),
            log_level=(os.environ.get("SITEPROOF_LOG_LEVEL") or "INFO").upper(),
            check_token_budget=_to_bool(
                os.environ.get("SITEPROOF_TOKEN_CHECK"), default=True
            ),
        )

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY environment variable not set")
        return self.api_key


def _to_optional_string(value: str | None) -> str | None:
    if value is not None and value.strip():
        return value.strip()
    return None


def _to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _to_positive_int(value: str | None, *, default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _to_positive_float(value: str | None, *, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _to_temperature(value: str | None, *, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if 0.0 <= parsed <= 1.0 else default
