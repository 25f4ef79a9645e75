"""Breach and breach-check state models.

Breach-check state is a tagged variant: ``None`` (unchecked), ``SafeState``
or ``BreachedState``. It is serialized to a JSON blob only at the store
boundary.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

UNKNOWN = "Unknown"


class Breach(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = UNKNOWN
    title: str = UNKNOWN
    domain: str = UNKNOWN
    date: str = UNKNOWN
    data_types: list[str] = Field(default_factory=list, alias="dataTypes")
    description: Optional[str] = None
    pwn_count: Optional[int] = Field(default=None, alias="pwnCount")

    @classmethod
    def from_api(cls, payload: dict) -> "Breach":
        """Build a Breach from one element of the lookup service's JSON array."""
        data_classes = payload.get("DataClasses")
        return cls(
            name=payload.get("Name") or UNKNOWN,
            title=payload.get("Title") or UNKNOWN,
            domain=payload.get("Domain") or UNKNOWN,
            date=payload.get("BreachDate") or UNKNOWN,
            data_types=list(data_classes) if isinstance(data_classes, list) else [],
            description=payload.get("Description") or None,
            pwn_count=payload.get("PwnCount"),
        )

    def sort_date(self) -> datetime:
        """Breach date for ordering; unknown or malformed dates sort earliest."""
        try:
            return datetime.strptime(self.date[:10], "%Y-%m-%d")
        except (TypeError, ValueError):
            return datetime.min


def sort_breaches(breaches: list[Breach]) -> list[Breach]:
    """Newest first. Stable for equal dates."""
    return sorted(breaches, key=lambda b: b.sort_date(), reverse=True)


class SafeState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    checked: Literal[True] = True
    breached: Literal[False] = False
    checked_at: datetime = Field(alias="checkedAt")


class BreachedState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    checked: Literal[True] = True
    breached: Literal[True] = True
    checked_at: datetime = Field(alias="checkedAt")
    breach_count: int = Field(alias="breachCount")
    breaches: list[Breach] = Field(default_factory=list)


BreachState = Union[SafeState, BreachedState]


def serialize_breach_state(state: BreachState) -> str:
    """Serialize a state to the persisted JSON blob."""
    return state.model_dump_json(by_alias=True, exclude_none=True)


def parse_breach_state(blob: Optional[str]) -> Optional[BreachState]:
    """Parse a persisted blob. Empty or unreadable blobs mean unchecked."""
    if not blob:
        return None
    try:
        data = json.loads(blob)
    except ValueError:
        return None
    if not isinstance(data, dict) or not data.get("checked"):
        return None
    try:
        if data.get("breached"):
            data.setdefault("breachCount", len(data.get("breaches") or []))
            return BreachedState.model_validate(data)
        return SafeState.model_validate(data)
    except ValidationError:
        return None
