"""Pwned Passwords range lookup (k-anonymity).

Only the first five hex characters of the SHA-1 digest leave the machine.
"""

from __future__ import annotations

import hashlib
from typing import Optional

import httpx

from ..utils.sanitize import sanitize_error


class PasswordCheckError(Exception):
    """The range lookup failed; the password's status stays unknown."""


def hash_secret(secret: str) -> tuple[str, str]:
    """Return (prefix, suffix) of the upper-case SHA-1 hex digest."""
    digest = hashlib.sha1(secret.encode("utf-8")).hexdigest().upper()
    return digest[:5], digest[5:]


class PwnedPasswordsClient:
    name = "pwned-passwords"
    API_URL = "https://api.pwnedpasswords.com/range"

    def __init__(self, config: dict, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    async def is_compromised(self, secret: str) -> bool:
        prefix, suffix = hash_secret(secret)
        endpoint = (self.config.get("endpoint") or self.API_URL).rstrip("/")
        timeout = self.config.get("timeout_seconds", 30)
        headers = {"user-agent": self.config.get("user_agent", "credaudit-cli")}

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.get(f"{endpoint}/{prefix}", headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PasswordCheckError(f"{e.response.status_code} {e.response.reason_phrase}") from e
        except httpx.HTTPError as e:
            raise PasswordCheckError(sanitize_error(str(e) or type(e).__name__)) from e

        for line in response.text.splitlines():
            hash_suffix, _, _count = line.strip().partition(":")
            if hash_suffix.upper() == suffix:
                return True
        return False
