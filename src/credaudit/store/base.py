"""Record store interface.

The breach-check pipeline only needs a small keyed store; every multi-record
write must be all-or-nothing.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from ..models.record import CredentialRecord, RiskAssessment


class IdentityStatus(str, Enum):
    ANY = "any"
    CHECKED = "checked"
    BREACHED = "breached"
    SAFE = "safe"


@runtime_checkable
class RecordStore(Protocol):
    def add_records(self, records: list[CredentialRecord]) -> list[int]: ...

    def list_records(self) -> list[CredentialRecord]: ...

    def get_record(self, record_id: int) -> Optional[CredentialRecord]: ...

    def apply_breach_state(self, identity: str, blob: str) -> int:
        """Write ``blob`` to every record with this normalized identity.

        Returns the number of records updated. Raises PersistenceError and
        leaves every member untouched if the write fails.
        """
        ...

    def count_identities(self, status: IdentityStatus = IdentityStatus.ANY) -> int:
        """Count distinct eligible identities in the given state."""
        ...

    def count_entries(self, checked_only: bool = False) -> int:
        """Count eligible records, optionally only those carrying breach state."""
        ...

    def unchecked_identities(self) -> set[str]: ...

    def save_risk_assessments(self, assessments: dict[int, RiskAssessment]) -> None: ...

    def set_compromised(self, record_id: int, compromised: bool, checked_at: datetime) -> None: ...
