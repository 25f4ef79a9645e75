"""Cross-identity breach analysis.

Collects every breach recorded against the audited identities and answers:
which breaches are recent, which hit more than one identity, and which
domains show up most.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from ..models.breach import UNKNOWN, Breach, BreachedState
from ..models.record import CredentialRecord
from .dedup import normalize_identity


class BreachExposure(BaseModel):
    breach: Breach
    identities: list[str] = []


class BreachAnalysis(BaseModel):
    breached_identities: int = 0
    exposures: list[BreachExposure] = []
    recent: list[BreachExposure] = []
    multi_account: list[BreachExposure] = []
    top_domains: list[tuple[str, int]] = []


def collect_exposures(records: list[CredentialRecord]) -> tuple[list[BreachExposure], int]:
    """Group breaches by (name, date) with the identities each one affected."""
    exposures: dict[tuple[str, str], BreachExposure] = {}
    breached: set[str] = set()

    for record in records:
        state = record.breach_state
        if not isinstance(state, BreachedState):
            continue
        identity = normalize_identity(record.identity)
        breached.add(identity)
        for breach in state.breaches:
            key = (breach.name or breach.title, breach.date)
            exposure = exposures.get(key)
            if exposure is None:
                exposures[key] = BreachExposure(breach=breach, identities=[identity])
            elif identity not in exposure.identities:
                exposure.identities.append(identity)

    ordered = sorted(
        exposures.values(),
        key=lambda e: (e.breach.sort_date(), len(e.identities)),
        reverse=True,
    )
    return ordered, len(breached)


def analyze_breaches(
    records: list[CredentialRecord],
    now: Optional[datetime] = None,
    recent_years: int = 2,
    top_n: int = 5,
) -> BreachAnalysis:
    exposures, breached_count = collect_exposures(records)

    now = now or datetime.now(timezone.utc)
    try:
        cutoff = now.replace(year=now.year - recent_years, tzinfo=None)
    except ValueError:  # Feb 29
        cutoff = now.replace(year=now.year - recent_years, day=28, tzinfo=None)

    domains = Counter(e.breach.domain for e in exposures if e.breach.domain != UNKNOWN)

    return BreachAnalysis(
        breached_identities=breached_count,
        exposures=exposures,
        recent=[e for e in exposures if e.breach.sort_date() >= cutoff],
        multi_account=[e for e in exposures if len(e.identities) > 1],
        top_domains=domains.most_common(top_n),
    )
