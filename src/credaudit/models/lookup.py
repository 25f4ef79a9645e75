"""Breach lookup result models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .breach import Breach


class LookupStatus(str, Enum):
    NOT_FOUND = "not_found"
    FOUND = "found"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


class LookupResult(BaseModel):
    status: LookupStatus
    breaches: list[Breach] = []
    error: Optional[str] = None
    attempts: int = 1

    @property
    def resolved(self) -> bool:
        """True only for a confirmed found / not-found answer."""
        return self.status in (LookupStatus.NOT_FOUND, LookupStatus.FOUND)
