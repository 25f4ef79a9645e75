"""Risk scoring for credential records.

Each record gets a 0-100 score from independent weighted factors, a severity
label, and the list of factors that applied, in evaluation order:

1. password known to be compromised
2. identity found in breaches (per breach, capped at 50 after multiplying)
3. critical account category (keyword match on name + url)
4. password age over the threshold, or unknown
5. password weakness (heuristic, scaled to the weak-password weight)
6. password shared with another record
"""

from __future__ import annotations

import calendar
import math
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from ..models.breach import BreachedState
from ..models.record import CredentialRecord, RiskAssessment, Severity
from ..store.base import RecordStore
from .scoring_data import COMMON_PASSWORDS, CRITICAL_CATEGORIES, REPEATED_PATTERN, SEQUENTIAL_PATTERN

BREACH_SCORE_CAP = 50

_SEQUENTIAL = re.compile(SEQUENTIAL_PATTERN, re.IGNORECASE)
_REPEATED = re.compile(REPEATED_PATTERN)

SEVERITY_DESCRIPTIONS: dict[Severity, str] = {
    Severity.CRITICAL: "Immediate action required - change this password now!",
    Severity.HIGH: "High risk - change this password soon",
    Severity.MEDIUM: "Moderate risk - consider updating this password",
    Severity.LOW: "Low risk - password appears secure",
}


class RiskWeights(BaseModel):
    compromised_password: int = 50
    email_breach_per_breach: int = 10
    critical_account_category: int = 30
    old_password_age: int = 15
    weak_password: int = 20
    duplicate_password: int = 15


class ScoringConfig(BaseModel):
    weights: RiskWeights = RiskWeights()
    old_password_months: int = 12
    critical_keywords: list[str] = list(CRITICAL_CATEGORIES)
    common_passwords: list[str] = list(COMMON_PASSWORDS)

    @classmethod
    def from_config(cls, config: dict) -> "ScoringConfig":
        section = config.get("scoring") or {}
        values: dict = {
            "weights": RiskWeights(**(section.get("weights") or {})),
            "old_password_months": section.get("old_password_months", 12),
        }
        # Empty lists in config mean "use the built-in lists"
        if section.get("critical_keywords"):
            values["critical_keywords"] = section["critical_keywords"]
        if section.get("common_passwords"):
            values["common_passwords"] = section["common_passwords"]
        return cls(**values)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_risk_level(score: int) -> Severity:
    if score >= 80:
        return Severity.CRITICAL
    if score >= 60:
        return Severity.HIGH
    if score >= 30:
        return Severity.MEDIUM
    return Severity.LOW


def is_critical_account(
    name: str,
    url: str,
    keywords: Optional[list[str]] = None,
) -> bool:
    search_text = f"{name or ''} {url or ''}".lower()
    return any(k.lower() in search_text for k in (keywords or CRITICAL_CATEGORIES))


def password_weakness(secret: Optional[str], common_passwords: Optional[list[str]] = None) -> int:
    """Heuristic weakness in [0, 100]; higher is weaker. Never raises."""
    if not secret:
        return 100

    weakness = 0

    if len(secret) < 8:
        weakness += 30
    elif len(secret) < 12:
        weakness += 15

    char_types = sum((
        bool(re.search(r"[a-z]", secret)),
        bool(re.search(r"[A-Z]", secret)),
        bool(re.search(r"[0-9]", secret)),
        bool(re.search(r"[^a-zA-Z0-9]", secret)),
    ))
    if char_types < 2:
        weakness += 25
    elif char_types < 3:
        weakness += 15
    elif char_types < 4:
        weakness += 5

    lowered = secret.lower()
    if any(p.lower() in lowered for p in (common_passwords or COMMON_PASSWORDS)):
        weakness += 40

    if _SEQUENTIAL.search(secret):
        weakness += 20

    if _REPEATED.search(secret):
        weakness += 15

    return min(100, weakness)


def _months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    day = min(moment.day, calendar.monthrange(year, month + 1)[1])
    return moment.replace(year=year, month=month + 1, day=day)


def is_password_old(
    last_checked_at: Optional[datetime],
    months_threshold: int = 12,
    now: Optional[datetime] = None,
) -> bool:
    """Unknown age counts as old."""
    if last_checked_at is None:
        return True
    now = now or datetime.now(timezone.utc)
    if last_checked_at.tzinfo is None:
        last_checked_at = last_checked_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return last_checked_at < _months_before(now, months_threshold)


def count_duplicates(record: CredentialRecord, all_records: list[CredentialRecord]) -> int:
    """Other records (by id) using the same non-empty secret."""
    if not record.secret:
        return 0
    return sum(
        1 for other in all_records
        if other.id != record.id and other.secret == record.secret
    )


def calculate_risk_score(
    record: CredentialRecord,
    all_records: list[CredentialRecord],
    scoring: Optional[ScoringConfig] = None,
    now: Optional[datetime] = None,
    duplicate_count: Optional[int] = None,
) -> RiskAssessment:
    scoring = scoring or ScoringConfig()
    weights = scoring.weights
    score = 0
    factors: list[str] = []

    if record.compromised is True:
        score += weights.compromised_password
        factors.append("Password found in data breaches")

    state = record.breach_state
    if isinstance(state, BreachedState) and state.breach_count > 0:
        score += min(state.breach_count * weights.email_breach_per_breach, BREACH_SCORE_CAP)
        plural = "es" if state.breach_count > 1 else ""
        factors.append(f"Email found in {state.breach_count} data breach{plural}")

    if is_critical_account(record.name, record.url, scoring.critical_keywords):
        score += weights.critical_account_category
        factors.append("Critical account category (banking, work, etc.)")

    if is_password_old(record.last_checked_at, scoring.old_password_months, now=now):
        score += weights.old_password_age
        factors.append(f"Password not updated in over {scoring.old_password_months} months")

    weakness = password_weakness(record.secret, scoring.common_passwords)
    if weakness > 0:
        score += _round_half_up(weakness / 100 * weights.weak_password)
        if weakness > 50:
            factors.append("Very weak password")
        elif weakness > 25:
            factors.append("Weak password")

    if duplicate_count is None:
        duplicate_count = count_duplicates(record, all_records)
    if duplicate_count > 0:
        score += weights.duplicate_password
        factors.append(f"Password reused across {duplicate_count + 1} accounts")

    final = min(100, score)
    return RiskAssessment(score=final, label=get_risk_level(final), factors=factors)


def score_records(
    records: list[CredentialRecord],
    scoring: Optional[ScoringConfig] = None,
    now: Optional[datetime] = None,
) -> dict[int, RiskAssessment]:
    """Score every record against the full set. Records without an id are skipped."""
    secret_counts = Counter(r.secret for r in records if r.secret)
    assessments: dict[int, RiskAssessment] = {}
    for record in records:
        if record.id is None:
            continue
        duplicates = secret_counts[record.secret] - 1 if record.secret else 0
        assessments[record.id] = calculate_risk_score(
            record, records, scoring=scoring, now=now, duplicate_count=duplicates,
        )
    return assessments


def score_all(
    store: RecordStore,
    scoring: Optional[ScoringConfig] = None,
    now: Optional[datetime] = None,
) -> dict[Severity, int]:
    """Read every record, recompute all scores, write them back in one pass."""
    records = store.list_records()
    assessments = score_records(records, scoring=scoring, now=now)
    store.save_risk_assessments(assessments)

    counts = {severity: 0 for severity in Severity}
    for assessment in assessments.values():
        counts[assessment.label] += 1
    return counts


def entries_by_risk(records: list[CredentialRecord], limit: Optional[int] = None) -> list[CredentialRecord]:
    """Scored records, highest score first, then by name."""
    scored = [r for r in records if r.risk is not None]
    scored.sort(key=lambda r: (-r.risk.score, r.name))
    return scored[:limit] if limit else scored
