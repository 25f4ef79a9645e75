"""Apply one identity's lookup result to every record sharing that identity."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from ..models.breach import (
    BreachedState, BreachState, SafeState, serialize_breach_state, sort_breaches,
)
from ..models.lookup import LookupResult, LookupStatus
from ..store.base import RecordStore
from .dedup import normalize_identity


def build_breach_state(result: LookupResult, now: datetime) -> Optional[BreachState]:
    """Map a lookup result to the state to persist, or None for no write."""
    if result.status == LookupStatus.NOT_FOUND:
        return SafeState(checked_at=now)
    if result.status == LookupStatus.FOUND:
        breaches = sort_breaches(result.breaches)
        return BreachedState(checked_at=now, breach_count=len(breaches), breaches=breaches)
    return None


def apply_update(
    store: RecordStore,
    identity: str,
    result: LookupResult,
    now: Optional[datetime] = None,
) -> Optional[int]:
    """Persist ``result`` for ``identity`` in one all-or-nothing write.

    Returns the number of records updated, or None when the result is not a
    confirmed answer (rate limited / error) and nothing was written.
    Raises PersistenceError if the store write fails.
    """
    state = build_breach_state(result, now or datetime.now(timezone.utc))
    if state is None:
        return None
    # One blob for all members, so their stored state is byte-identical
    return store.apply_breach_state(normalize_identity(identity), serialize_breach_state(state))
