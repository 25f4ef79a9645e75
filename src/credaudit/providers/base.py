"""Breach lookup abstraction with bounded rate-limit retry."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from typing import Optional, Protocol, runtime_checkable

from ..errors import ConfigurationError
from ..models.lookup import LookupResult, LookupStatus
from ..utils.sanitize import sanitize_error

SleepFn = Callable[[float], Awaitable[None]]


@runtime_checkable
class BreachLookup(Protocol):
    """Protocol that all breach lookup clients must implement."""

    name: str

    def require_api_key(self) -> str: ...

    async def lookup_with_retry(self, identity: str) -> LookupResult: ...


class BaseLookupClient:
    """Base class with shared retry logic and config handling."""

    name: str = "base"

    def __init__(self, lookup_config: dict, sleep: Optional[SleepFn] = None):
        self.config = lookup_config
        self.max_retries = int(lookup_config.get("max_retries", 3))
        self.retry_base_delay = float(lookup_config.get("retry_base_delay_seconds", 2))
        self._sleep = sleep or asyncio.sleep

    def get_api_key(self) -> Optional[str]:
        env_var = self.config.get("api_key_env", "HIBP_API_KEY")
        return self.config.get("api_key") or os.environ.get(env_var)

    def require_api_key(self) -> str:
        """Return the API key or raise ConfigurationError once, up front."""
        api_key = self.get_api_key()
        if not api_key:
            env_var = self.config.get("api_key_env", "HIBP_API_KEY")
            raise ConfigurationError(
                f"API key not found in environment variable: {env_var}"
            )
        return api_key

    async def lookup(self, identity: str) -> LookupResult:
        raise NotImplementedError

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based): base * 2^attempt."""
        return self.retry_base_delay * (2 ** attempt)

    async def lookup_with_retry(self, identity: str) -> LookupResult:
        """Wrap lookup() with bounded retries on rate limiting.

        Makes at most ``max_retries + 1`` calls. Only RATE_LIMITED is retried;
        errors are returned as-is so the identity stays unresolved.
        """
        result = LookupResult(status=LookupStatus.ERROR, error="No attempt made")

        for attempt in range(self.max_retries + 1):
            result = await self.lookup(identity)
            result.attempts = attempt + 1

            if result.status != LookupStatus.RATE_LIMITED:
                break
            if attempt >= self.max_retries:
                break
            await self._sleep(self.backoff_delay(attempt))

        if result.error:
            result.error = sanitize_error(result.error)
        return result


def get_lookup_client(
    config: dict,
    provider_override: Optional[str] = None,
    sleep: Optional[SleepFn] = None,
    transport=None,
) -> BaseLookupClient:
    """Factory function to create the configured breach lookup client."""
    lookup_config = dict(config.get("lookup", {}))
    provider_name = provider_override or lookup_config.get("provider", "hibp")

    if provider_name == "hibp":
        from .hibp import HIBPClient
        return HIBPClient(lookup_config, sleep=sleep, transport=transport)
    else:
        raise ValueError(f"Unknown lookup provider: {provider_name}")
