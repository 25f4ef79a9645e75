"""Command implementations behind the CLI.

Each function resolves config for a project, opens its record store, runs
one operation and prints the result. Return values are process exit codes.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .. import __version__
from ..errors import ConfigurationError, CredAuditError
from ..models.record import Severity
from ..providers.base import get_lookup_client
from ..providers.pwned_passwords import PwnedPasswordsClient
from ..store.sql import SQLRecordStore
from .analysis import analyze_breaches
from .config import CONFIG_DIR, get_effective_config, get_rate_limit_config, get_store_path
from .password_check import check_passwords
from .progress import estimate_minutes, get_progress
from .scheduler import BreachCheckScheduler
from .scoring import SEVERITY_DESCRIPTIONS, ScoringConfig, entries_by_risk, score_all

console = Console()

EXIT_OK = 0
EXIT_RUN_ERRORS = 1
EXIT_CONFIG = 2
EXIT_NOT_INITIALIZED = 12

SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "green",
}


def initialize_project(project_path: Path) -> None:
    """Create .credaudit/ with a starter config and an empty store."""
    cc_dir = project_path / CONFIG_DIR
    cc_dir.mkdir(parents=True, exist_ok=True)

    config_path = cc_dir / "config.yaml"
    if not config_path.exists():
        config_path.write_text(
            "# credaudit project configuration\n"
            "\n"
            f"credaudit_version: \"{__version__}\"\n"
            "\n"
            "lookup:\n"
            "  api_key_env: HIBP_API_KEY\n"
            "\n"
            "rate_limit:\n"
            "  requests_per_minute: 10\n"
            "  batch_size: 8\n",
            encoding="utf-8",
        )

    SQLRecordStore.from_path(get_store_path(get_effective_config(project_path)))
    console.print(f"  [green]Initialized[/green] {CONFIG_DIR}/ in {project_path.name}")


def _open(project_path: Path) -> tuple[Optional[dict], Optional[SQLRecordStore]]:
    project_path = Path(project_path).resolve()
    if not (project_path / CONFIG_DIR).exists():
        console.print("  [red]ERROR[/red] Project not initialized. Run: credaudit init -p <path>")
        return None, None
    config = get_effective_config(project_path)
    return config, SQLRecordStore.from_path(get_store_path(config))


def _build_scheduler(config: dict, store: SQLRecordStore) -> BreachCheckScheduler:
    client = get_lookup_client(config)
    client.require_api_key()
    return BreachCheckScheduler(store, client, get_rate_limit_config(config))


async def _run_interruptible(scheduler: BreachCheckScheduler, coro):
    """Run ``coro`` with Ctrl-C mapped to a between-identities cancel."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, scheduler.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False
    try:
        return await coro
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def run_check(project_path: Path, limit: Optional[int] = None, resume: bool = False) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    try:
        scheduler = _build_scheduler(config, store)
    except ConfigurationError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        console.print("  Get an API key from https://haveibeenpwned.com/API/Key")
        return EXIT_CONFIG

    try:
        summary = asyncio.run(
            _run_interruptible(scheduler, scheduler.run_batch(limit=limit, resume=resume))
        )
    except CredAuditError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_RUN_ERRORS
    return EXIT_RUN_ERRORS if summary.errors else EXIT_OK


def run_scheduled(project_path: Path, batch_size: Optional[int] = None) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    try:
        scheduler = _build_scheduler(config, store)
    except ConfigurationError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_CONFIG

    try:
        completed, summary = asyncio.run(
            _run_interruptible(scheduler, scheduler.run_scheduled(batch_size))
        )
    except CredAuditError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_RUN_ERRORS
    if completed:
        console.print("  [green]DONE[/green] Breach checking is complete.")
    return EXIT_RUN_ERRORS if summary.errors else EXIT_OK


def show_stats(project_path: Path) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    progress = get_progress(store)

    def pct(part: int, whole: int) -> str:
        return f"{(part / whole * 100):.1f}%" if whole else "0.0%"

    console.print("\n  [bold cyan]Breach Check Statistics[/bold cyan]")
    console.print(f"  Unique identities:      [bold]{progress.total}[/bold]")
    console.print(f"  Records:                [bold]{progress.total_entries}[/bold]")
    console.print(f"  Identities checked:     [bold]{progress.checked}[/bold] ({pct(progress.checked, progress.total)})")
    console.print(
        f"  Records covered:        [bold]{progress.entries_affected}[/bold] "
        f"({pct(progress.entries_affected, progress.total_entries)})"
    )
    console.print(f"  Identities breached:    [bold red]{progress.breached}[/bold red]")
    console.print(f"  Identities safe:        [bold green]{progress.safe}[/bold green]")
    console.print(f"  Remaining:              [bold yellow]{progress.remaining}[/bold yellow]")

    if progress.remaining > 0:
        try:
            rate_limit = get_rate_limit_config(config)
        except ConfigurationError as e:
            console.print(f"  [red]ERROR[/red] {e}")
            return EXIT_CONFIG
        console.print(
            f"\n  Estimated time to complete: ~{estimate_minutes(progress.remaining, rate_limit)} minutes "
            f"[dim]({rate_limit.requests_per_minute} requests/minute)[/dim]"
        )
    console.print()
    return EXIT_OK


def run_password_check(project_path: Path, limit: Optional[int] = None) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    passwords_config = config.get("passwords", {})
    client = PwnedPasswordsClient(passwords_config)
    summary = asyncio.run(
        check_passwords(
            store,
            client,
            limit=limit,
            delay=float(passwords_config.get("delay_between_requests", 1.5)),
        )
    )
    return EXIT_RUN_ERRORS if summary.errors else EXIT_OK


def run_scoring(project_path: Path) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    try:
        counts = score_all(store, ScoringConfig.from_config(config))
    except CredAuditError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_RUN_ERRORS

    console.print("  [green]OK[/green] Risk scores updated.")
    console.print("\n  [bold cyan]Risk Assessment Summary[/bold cyan]")
    for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW):
        if counts.get(severity):
            color = SEVERITY_COLORS[severity]
            console.print(f"  [{color}]{severity.value}:[/{color}] {counts[severity]} accounts")
    return EXIT_OK


def show_risk(project_path: Path, limit: int = 20) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    entries = entries_by_risk(store.list_records(), limit=limit)
    if not entries:
        console.print("  [yellow]WARN[/yellow] No scored records. Run: credaudit score")
        return EXIT_OK

    table = Table(title=f"Top {len(entries)} accounts by risk")
    table.add_column("#", justify="right")
    table.add_column("Risk")
    table.add_column("Name")
    table.add_column("Identity")
    table.add_column("Issues")
    for index, entry in enumerate(entries, start=1):
        color = SEVERITY_COLORS[entry.risk.label]
        table.add_row(
            str(index),
            f"[{color}]{entry.risk.label.value} ({entry.risk.score})[/{color}]",
            entry.name,
            entry.identity,
            ", ".join(entry.risk.factors),
        )
    console.print(table)

    top = entries[0].risk.label
    console.print(f"  {SEVERITY_DESCRIPTIONS[top]}")
    return EXIT_OK


def show_analysis(project_path: Path) -> int:
    config, store = _open(project_path)
    if store is None:
        return EXIT_NOT_INITIALIZED

    analysis = analyze_breaches(store.list_records())
    if not analysis.exposures:
        console.print("  [yellow]WARN[/yellow] No breach information found.")
        return EXIT_OK

    console.print(f"\n  [bold red]Recent breaches (last 2 years): {len(analysis.recent)}[/bold red]")
    for index, exposure in enumerate(analysis.recent[:10], start=1):
        b = exposure.breach
        console.print(f"  {index}. {b.title} ({b.domain}) - {b.date}")
        console.print(f"     Your affected identities: {len(exposure.identities)}")
        if b.data_types:
            console.print(f"     [cyan]Data exposed:[/cyan] {', '.join(b.data_types)}")

    if analysis.multi_account:
        console.print(
            f"\n  [bold yellow]Breaches affecting multiple identities: {len(analysis.multi_account)}[/bold yellow]"
        )
        for index, exposure in enumerate(analysis.multi_account[:5], start=1):
            b = exposure.breach
            console.print(f"  {index}. {b.title} ({b.domain}) - {b.date}: {', '.join(exposure.identities)}")

    console.print("\n  [bold cyan]Summary[/bold cyan]")
    console.print(f"  Unique breaches:      {len(analysis.exposures)}")
    console.print(f"  Breached identities:  {analysis.breached_identities}")
    if analysis.top_domains:
        console.print("  Top breached domains:")
        for domain, count in analysis.top_domains:
            console.print(f"    [cyan]{domain}[/cyan]: {count}")
    return EXIT_OK
