"""Shared fixtures for credaudit tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

from credaudit.models.breach import Breach
from credaudit.models.lookup import LookupResult, LookupStatus
from credaudit.models.record import CredentialRecord
from credaudit.providers.base import BaseLookupClient
from credaudit.store.memory import MemoryRecordStore

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubLookupClient(BaseLookupClient):
    """Lookup client answering from a script instead of the network.

    ``script`` maps identity -> list of results returned on successive calls;
    identities not in the script get ``default``.
    """

    name = "stub"

    def __init__(
        self,
        script: Optional[dict[str, list[LookupResult]]] = None,
        default: Optional[LookupResult] = None,
        sleep=None,
        api_key: Optional[str] = "test-key",
    ):
        super().__init__(
            {"api_key": api_key, "api_key_env": "CREDAUDIT_TEST_NO_SUCH_KEY",
             "max_retries": 3, "retry_base_delay_seconds": 2},
            sleep=sleep,
        )
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.default = default or LookupResult(status=LookupStatus.NOT_FOUND)
        self.calls: list[str] = []

    async def lookup(self, identity: str) -> LookupResult:
        self.require_api_key()
        self.calls.append(identity)
        queue = self.script.get(identity)
        if queue:
            return queue.pop(0).model_copy(deep=True)
        return self.default.model_copy(deep=True)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_client_cls() -> type[StubLookupClient]:
    return StubLookupClient


@pytest.fixture
def scenario_records() -> list[CredentialRecord]:
    """Five records: two share a@x.com, one identity is not an email."""
    return [
        CredentialRecord(name="Mail", url="https://mail.x.com", identity="a@x.com", secret="sharedPass1"),
        CredentialRecord(name="Shop", url="https://shop.x.com", identity="A@X.com ", secret="sharedPass1"),
        CredentialRecord(name="Forum", url="https://forum.y.com", identity="b@y.com", secret="Tr0ub4dor&3xtra!"),
        CredentialRecord(name="Router", url="http://192.168.0.1", identity="not-an-email", secret="admin"),
        CredentialRecord(name="Blog", url="https://blog.z.com", identity="c@z.com", secret=None),
    ]


@pytest.fixture
def memory_store(scenario_records: list[CredentialRecord]) -> MemoryRecordStore:
    return MemoryRecordStore(scenario_records)


@pytest.fixture
def two_breaches() -> list[Breach]:
    return [
        Breach(name="OldSite", title="Old Site", domain="old.example", date="2020-03-01",
               data_types=["Email addresses", "Passwords"]),
        Breach(name="NewSite", title="New Site", domain="new.example", date="2023-07-15",
               data_types=["Email addresses"], pwn_count=1200),
    ]


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    project = tmp_path / "vault"
    project.mkdir()
    return project


@pytest.fixture
def initialized_project(tmp_project: Path) -> Path:
    """Create a project with .credaudit initialized."""
    cc_dir = tmp_project / ".credaudit"
    cc_dir.mkdir()
    (cc_dir / "config.yaml").write_text(
        "lookup:\n  api_key_env: CREDAUDIT_TEST_KEY\n\nrate_limit:\n  batch_size: 4\n",
        encoding="utf-8",
    )
    return tmp_project
