"""Identity deduplication.

Breach lookups are keyed by identity (an email address), not by record, so
each distinct identity is looked up once no matter how many records share it.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..models.batch import IdentityGroup
from ..models.record import CredentialRecord


def normalize_identity(identity: str | None) -> str:
    return (identity or "").strip().lower()


def is_eligible(identity: str | None) -> bool:
    """Only email-shaped identities can be checked."""
    return "@" in normalize_identity(identity)


def group_identities(records: Iterable[CredentialRecord]) -> list[IdentityGroup]:
    """Group eligible records by normalized identity, sorted alphabetically."""
    members: dict[str, list[int]] = {}
    for record in records:
        key = normalize_identity(record.identity)
        if "@" not in key:
            continue
        ids = members.setdefault(key, [])
        if record.id is not None:
            ids.append(record.id)

    return [
        IdentityGroup(identity=key, record_ids=ids, count=len(ids))
        for key, ids in sorted(members.items())
    ]
