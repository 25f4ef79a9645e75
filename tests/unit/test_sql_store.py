"""Tests for store/sql.py."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from credaudit.core.updater import apply_update
from credaudit.errors import PersistenceError
from credaudit.models.lookup import LookupResult, LookupStatus
from credaudit.models.record import RiskAssessment, Severity
from credaudit.store.base import IdentityStatus, RecordStore
from credaudit.store.sql import Base, SQLRecordStore

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_store(tmp_path: Path, scenario_records) -> SQLRecordStore:
    store = SQLRecordStore.from_path(tmp_path / "db" / "credentials.sqlite")
    store.add_records(scenario_records)
    return store


class TestSQLRecordStore:
    def test_satisfies_protocol(self, sql_store):
        assert isinstance(sql_store, RecordStore)

    def test_add_and_list(self, sql_store):
        records = sql_store.list_records()
        assert [r.id for r in records] == [1, 2, 3, 4, 5]
        assert records[1].identity == "A@X.com "
        assert records[4].secret is None
        assert records[0].created_at is not None
        assert records[0].breach_state is None

    def test_get_missing(self, sql_store):
        assert sql_store.get_record(999) is None

    def test_fan_out_write(self, sql_store, two_breaches):
        result = LookupResult(status=LookupStatus.FOUND, breaches=two_breaches)
        assert apply_update(sql_store, "a@x.com", result, now=NOW) == 2
        assert sql_store.breach_blob(1) == sql_store.breach_blob(2)
        assert sql_store.get_record(2).breach_state.breach_count == 2
        assert sql_store.breach_blob(3) is None

    def test_fan_out_no_members(self, sql_store):
        assert sql_store.apply_breach_state("nobody@x.com", '{"checked":true}') == 0

    def test_counts(self, sql_store, two_breaches):
        apply_update(sql_store, "a@x.com", LookupResult(status=LookupStatus.FOUND, breaches=two_breaches), now=NOW)
        apply_update(sql_store, "b@y.com", LookupResult(status=LookupStatus.NOT_FOUND), now=NOW)

        assert sql_store.count_identities() == 3
        assert sql_store.count_identities(IdentityStatus.CHECKED) == 2
        assert sql_store.count_identities(IdentityStatus.BREACHED) == 1
        assert sql_store.count_identities(IdentityStatus.SAFE) == 1
        assert sql_store.count_entries() == 4
        assert sql_store.count_entries(checked_only=True) == 3
        assert sql_store.unchecked_identities() == {"c@z.com"}

    def test_risk_round_trip(self, sql_store):
        assessment = RiskAssessment(score=85, label=Severity.CRITICAL, factors=["Weak password"])
        sql_store.save_risk_assessments({3: assessment})
        assert sql_store.get_record(3).risk == assessment
        assert sql_store.get_record(1).risk is None

    def test_set_compromised(self, sql_store):
        sql_store.set_compromised(3, True, NOW)
        record = sql_store.get_record(3)
        assert record.compromised is True
        assert record.last_checked_at == NOW

    def test_write_failure_raises_persistence_error(self, sql_store):
        Base.metadata.drop_all(sql_store.engine)
        with pytest.raises(PersistenceError):
            sql_store.apply_breach_state("a@x.com", '{"checked":true,"breached":false}')
