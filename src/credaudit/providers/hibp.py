"""Have I Been Pwned breached-account lookup."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..models.breach import Breach
from ..models.lookup import LookupResult, LookupStatus
from .base import BaseLookupClient, SleepFn


class HIBPClient(BaseLookupClient):
    name = "hibp"
    API_URL = "https://haveibeenpwned.com/api/v3/breachedaccount"

    def __init__(
        self,
        lookup_config: dict,
        sleep: Optional[SleepFn] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(lookup_config, sleep=sleep)
        self._transport = transport

    def _build_url(self, identity: str) -> str:
        endpoint = self.config.get("endpoint") or self.API_URL
        return f"{endpoint.rstrip('/')}/{quote(identity, safe='')}"

    async def lookup(self, identity: str) -> LookupResult:
        api_key = self.require_api_key()
        timeout = self.config.get("timeout_seconds", 30)

        headers = {
            "user-agent": self.config.get("user_agent", "credaudit-cli"),
            "hibp-api-key": api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.get(
                    self._build_url(identity),
                    params={"truncateResponse": "false"},
                    headers=headers,
                )
        except httpx.TimeoutException:
            return LookupResult(status=LookupStatus.ERROR, error="timeout")
        except httpx.HTTPError as e:
            return LookupResult(status=LookupStatus.ERROR, error=str(e) or type(e).__name__)

        if response.status_code == 404:
            return LookupResult(status=LookupStatus.NOT_FOUND)

        if response.status_code == 429:
            return LookupResult(status=LookupStatus.RATE_LIMITED, error="429 Too Many Requests")

        if response.status_code != 200:
            return LookupResult(
                status=LookupStatus.ERROR,
                error=f"{response.status_code} {response.reason_phrase}",
            )

        try:
            payload = response.json()
        except ValueError:
            return LookupResult(status=LookupStatus.ERROR, error="Malformed JSON response")

        if not isinstance(payload, list):
            return LookupResult(status=LookupStatus.ERROR, error="Unexpected response shape")

        try:
            breaches = [Breach.from_api(item) for item in payload if isinstance(item, dict)]
        except ValidationError:
            return LookupResult(status=LookupStatus.ERROR, error="Malformed breach data")
        if not breaches:
            return LookupResult(status=LookupStatus.NOT_FOUND)
        return LookupResult(status=LookupStatus.FOUND, breaches=breaches)
