"""Breach-check progress read from the per-record state in the store."""

from __future__ import annotations

import math

from ..models.batch import BatchProgress, IdentityGroup
from ..store.base import IdentityStatus, RecordStore
from .config import RateLimitConfig


def get_progress(store: RecordStore) -> BatchProgress:
    total = store.count_identities(IdentityStatus.ANY)
    checked = store.count_identities(IdentityStatus.CHECKED)
    return BatchProgress(
        total=total,
        checked=checked,
        breached=store.count_identities(IdentityStatus.BREACHED),
        safe=store.count_identities(IdentityStatus.SAFE),
        remaining=total - checked,
        total_entries=store.count_entries(),
        entries_affected=store.count_entries(checked_only=True),
    )


def filter_unchecked(store: RecordStore, groups: list[IdentityGroup]) -> list[IdentityGroup]:
    """Drop groups whose identity already carries breach state (resume mode)."""
    pending = store.unchecked_identities()
    return [g for g in groups if g.identity in pending]


def estimate_minutes(group_count: int, rate_limit: RateLimitConfig) -> int:
    """Rough wall-clock estimate, dominated by the pause between batches."""
    if group_count <= 0:
        return 0
    batches = math.ceil(group_count / rate_limit.batch_size)
    return math.ceil(batches * rate_limit.delay_between_batches / 60)
