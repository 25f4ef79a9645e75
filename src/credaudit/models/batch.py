"""Batch run and progress models."""

from __future__ import annotations

from pydantic import BaseModel


class IdentityGroup(BaseModel):
    identity: str
    record_ids: list[int] = []
    count: int = 0


class BatchProgress(BaseModel):
    total: int = 0
    checked: int = 0
    breached: int = 0
    safe: int = 0
    remaining: int = 0
    total_entries: int = 0
    entries_affected: int = 0


class RunSummary(BaseModel):
    breached: int = 0
    safe: int = 0
    errors: int = 0
    rate_limited: int = 0
    processed: int = 0
    records_updated: int = 0
    cancelled: bool = False
