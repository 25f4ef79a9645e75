"""Credential record and risk assessment models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .breach import BreachState


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class RiskAssessment(BaseModel):
    score: int
    label: Severity
    factors: list[str] = []


class CredentialRecord(BaseModel):
    id: Optional[int] = None
    name: str = ""
    url: str = ""
    identity: str = ""
    secret: Optional[str] = None
    source: str = "manual"
    created_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    compromised: Optional[bool] = None
    notes: Optional[str] = None
    breach_state: Optional[BreachState] = None
    risk: Optional[RiskAssessment] = None
