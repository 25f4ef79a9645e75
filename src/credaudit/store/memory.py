"""In-process record store.

Writes build replacement records first and swap them in together, so a
failure part way leaves every record as it was.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.dedup import is_eligible, normalize_identity
from ..models.breach import BreachedState, parse_breach_state
from ..models.record import CredentialRecord, RiskAssessment
from .base import IdentityStatus


class MemoryRecordStore:
    def __init__(self, records: Optional[list[CredentialRecord]] = None):
        self._records: dict[int, CredentialRecord] = {}
        self._blobs: dict[int, Optional[str]] = {}
        self._next_id = 1
        if records:
            self.add_records(records)

    def add_records(self, records: list[CredentialRecord]) -> list[int]:
        ids: list[int] = []
        for record in records:
            record_id = self._next_id
            self._next_id += 1
            self._records[record_id] = record.model_copy(update={"id": record_id}, deep=True)
            self._blobs[record_id] = None
            ids.append(record_id)
        return ids

    def list_records(self) -> list[CredentialRecord]:
        return [self._materialize(rid) for rid in sorted(self._records)]

    def get_record(self, record_id: int) -> Optional[CredentialRecord]:
        if record_id not in self._records:
            return None
        return self._materialize(record_id)

    def breach_blob(self, record_id: int) -> Optional[str]:
        return self._blobs.get(record_id)

    def _materialize(self, record_id: int) -> CredentialRecord:
        record = self._records[record_id].model_copy(deep=True)
        record.breach_state = parse_breach_state(self._blobs.get(record_id))
        return record

    def _members(self, identity: str) -> list[int]:
        key = normalize_identity(identity)
        return [
            rid for rid, record in self._records.items()
            if normalize_identity(record.identity) == key
        ]

    def apply_breach_state(self, identity: str, blob: str) -> int:
        members = self._members(identity)
        staged = dict(self._blobs)
        for rid in members:
            staged[rid] = blob
        self._blobs = staged
        return len(members)

    def _identity_states(self) -> dict[str, list[Optional[str]]]:
        states: dict[str, list[Optional[str]]] = {}
        for rid, record in self._records.items():
            if not is_eligible(record.identity):
                continue
            states.setdefault(normalize_identity(record.identity), []).append(self._blobs.get(rid))
        return states

    def count_identities(self, status: IdentityStatus = IdentityStatus.ANY) -> int:
        count = 0
        for blobs in self._identity_states().values():
            parsed = [parse_breach_state(b) for b in blobs if b]
            if status == IdentityStatus.ANY:
                count += 1
            elif status == IdentityStatus.CHECKED:
                count += bool(parsed)
            elif status == IdentityStatus.BREACHED:
                count += any(isinstance(s, BreachedState) for s in parsed)
            elif status == IdentityStatus.SAFE:
                count += any(s is not None and not isinstance(s, BreachedState) for s in parsed)
        return count

    def count_entries(self, checked_only: bool = False) -> int:
        return sum(
            1 for rid, record in self._records.items()
            if is_eligible(record.identity) and (not checked_only or self._blobs.get(rid))
        )

    def unchecked_identities(self) -> set[str]:
        return {
            identity for identity, blobs in self._identity_states().items()
            if not any(blobs)
        }

    def save_risk_assessments(self, assessments: dict[int, RiskAssessment]) -> None:
        staged = dict(self._records)
        for rid, assessment in assessments.items():
            if rid in staged:
                staged[rid] = staged[rid].model_copy(update={"risk": assessment})
        self._records = staged

    def set_compromised(self, record_id: int, compromised: bool, checked_at: datetime) -> None:
        record = self._records.get(record_id)
        if record is None:
            return
        self._records[record_id] = record.model_copy(
            update={"compromised": compromised, "last_checked_at": checked_at}
        )
