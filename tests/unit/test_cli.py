"""Tests for cli/main.py."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from credaudit import __version__
from credaudit.cli.main import credaudit_cli
from credaudit.core.config import CONFIG_DIR
from credaudit.models.lookup import LookupResult, LookupStatus
from credaudit.store.sql import SQLRecordStore


class TestCli:
    def test_version(self):
        result = CliRunner().invoke(credaudit_cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_creates_config_and_store(self, tmp_project: Path):
        result = CliRunner().invoke(credaudit_cli, ["init", "-p", str(tmp_project)])
        assert result.exit_code == 0
        assert (tmp_project / CONFIG_DIR / "config.yaml").exists()
        assert (tmp_project / CONFIG_DIR / "credentials.sqlite").exists()

    def test_not_initialized(self, tmp_project: Path):
        for command in ("check", "stats", "score", "risk", "analyze"):
            result = CliRunner().invoke(credaudit_cli, [command, "-p", str(tmp_project)])
            assert result.exit_code == 12, command

    def test_check_without_api_key(self, initialized_project: Path, monkeypatch):
        monkeypatch.delenv("CREDAUDIT_TEST_KEY", raising=False)
        result = CliRunner().invoke(credaudit_cli, ["check", "-p", str(initialized_project)])
        assert result.exit_code == 2
        assert "CREDAUDIT_TEST_KEY" in result.output

    def test_check_passes_options(self, initialized_project: Path, monkeypatch):
        seen = {}

        def fake_run_check(project, limit=None, resume=False):
            seen.update(project=project, limit=limit, resume=resume)
            return 0

        monkeypatch.setattr("credaudit.core.runner.run_check", fake_run_check)
        result = CliRunner().invoke(
            credaudit_cli, ["check", "-p", str(initialized_project), "--limit", "16", "--resume"]
        )
        assert result.exit_code == 0
        assert seen == {"project": initialized_project, "limit": 16, "resume": True}

    def test_limit_must_be_positive(self, initialized_project: Path):
        result = CliRunner().invoke(credaudit_cli, ["check", "-p", str(initialized_project), "--limit", "0"])
        assert result.exit_code == 2

    def test_check_with_nothing_to_do(self, initialized_project: Path, monkeypatch):
        monkeypatch.setenv("CREDAUDIT_TEST_KEY", "test-key")
        result = CliRunner().invoke(credaudit_cli, ["check", "-p", str(initialized_project)])
        assert result.exit_code == 0

    def test_stats_score_and_risk(self, initialized_project: Path, scenario_records):
        store = SQLRecordStore.from_path(initialized_project / CONFIG_DIR / "credentials.sqlite")
        store.add_records(scenario_records)
        runner = CliRunner()

        assert runner.invoke(credaudit_cli, ["stats", "-p", str(initialized_project)]).exit_code == 0
        assert runner.invoke(credaudit_cli, ["score", "-p", str(initialized_project)]).exit_code == 0
        assert all(r.risk is not None for r in store.list_records())
        assert runner.invoke(credaudit_cli, ["risk", "-p", str(initialized_project), "-n", "3"]).exit_code == 0
        assert runner.invoke(credaudit_cli, ["analyze", "-p", str(initialized_project)]).exit_code == 0

    def test_scheduled_exits_nonzero_on_lookup_errors(self, initialized_project: Path, scenario_records,
                                                      stub_client_cls, monkeypatch):
        (initialized_project / CONFIG_DIR / "config.yaml").write_text(
            "rate_limit:\n  batch_size: 4\n  delay_between_requests: 0\n  delay_between_batches: 0\n",
            encoding="utf-8",
        )
        store = SQLRecordStore.from_path(initialized_project / CONFIG_DIR / "credentials.sqlite")
        store.add_records(scenario_records)
        failing = stub_client_cls(default=LookupResult(status=LookupStatus.ERROR, error="503 Service Unavailable"))
        monkeypatch.setattr("credaudit.core.runner.get_lookup_client", lambda config: failing)

        result = CliRunner().invoke(credaudit_cli, ["scheduled", "-p", str(initialized_project)])

        assert result.exit_code == 1
        assert len(failing.calls) == 3
