"""Rate-limited breach check runner.

Identities are looked up one at a time, in batches, under the lookup
service's requests-per-minute limit. Each answer is written to the store
before the next identity is attempted, so an interrupted run loses nothing
and a ``resume`` run picks up exactly the identities still unchecked.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console

from ..errors import PersistenceError
from ..models.batch import BatchProgress, IdentityGroup, RunSummary
from ..models.lookup import LookupResult, LookupStatus
from ..providers.base import BreachLookup, SleepFn
from ..store.base import RecordStore
from ..utils.sanitize import sanitize_error
from .config import RateLimitConfig
from .dedup import group_identities
from .progress import estimate_minutes, filter_unchecked, get_progress
from .rate_budget import RateBudget
from .updater import apply_update

console = Console()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def partition(groups: list[IdentityGroup], batch_size: int) -> list[list[IdentityGroup]]:
    return [groups[i:i + batch_size] for i in range(0, len(groups), batch_size)]


class BreachCheckScheduler:
    def __init__(
        self,
        store: RecordStore,
        client: BreachLookup,
        rate_limit: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[SleepFn] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.client = client
        self.rate_limit = rate_limit
        self._clock = clock
        self._sleep = sleep or self._wait_or_cancel
        self._now = now
        self._cancel = asyncio.Event()

    def cancel(self) -> None:
        """Stop before the next identity; an in-flight lookup still completes."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    async def _wait_or_cancel(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def get_progress(self) -> BatchProgress:
        return get_progress(self.store)

    def plan(self, limit: Optional[int] = None, resume: bool = False) -> list[IdentityGroup]:
        """Identity groups a run would process, in order."""
        groups = group_identities(self.store.list_records())
        if resume:
            groups = filter_unchecked(self.store, groups)
        if limit is not None and limit > 0:
            groups = groups[:limit]
        return groups

    async def run_batch(self, limit: Optional[int] = None, resume: bool = False) -> RunSummary:
        """Check up to ``limit`` identity groups. Returns the run's counts.

        Raises ConfigurationError before any lookup if no API key is set.
        """
        self.client.require_api_key()

        summary = RunSummary()
        groups = self.plan(limit=limit, resume=resume)

        console.print(
            f"  [cyan]Rate limit:[/cyan] {self.rate_limit.requests_per_minute} requests/minute, "
            f"batch size {self.rate_limit.batch_size}"
        )
        if not groups:
            console.print("  [green]OK[/green] No identities need to be checked.")
            return summary

        entries = sum(g.count for g in groups)
        batches = partition(groups, self.rate_limit.batch_size)
        console.print(
            f"  Checking [white]{len(groups)}[/white] unique identities "
            f"covering {entries} records in {len(batches)} batches "
            f"(~{estimate_minutes(len(groups), self.rate_limit)} min)"
        )

        budget = RateBudget.start(self.rate_limit.requests_per_minute, self._clock())
        position = 0

        for batch_index, batch in enumerate(batches):
            console.print(
                f"\n  [cyan]Batch {batch_index + 1}/{len(batches)}[/cyan] ({len(batch)} identities)"
            )

            for i, group in enumerate(batch):
                if self.cancelled:
                    summary.cancelled = True
                    break

                wait = budget.wait_time(self._clock())
                if wait > 0:
                    await self._sleep(wait)
                budget = budget.consume(self._clock())

                position += 1
                console.print(
                    f"  [{position}/{len(groups)}] {group.identity} "
                    f"[dim](affects {group.count} records)[/dim]"
                )
                result = await self.client.lookup_with_retry(group.identity)
                for _ in range(result.attempts - 1):
                    budget = budget.consume(self._clock())

                self._record_outcome(group, result, summary)

                if i < len(batch) - 1:
                    await self._sleep(self.rate_limit.delay_between_requests)

            if summary.cancelled:
                break

            if batch_index < len(batches) - 1:
                console.print(
                    f"  [dim]Waiting {self.rate_limit.delay_between_batches}s before next batch...[/dim]"
                )
                await self._sleep(self.rate_limit.delay_between_batches)
                if self.cancelled:
                    summary.cancelled = True
                    break

        self._print_summary(summary)
        return summary

    def _record_outcome(self, group: IdentityGroup, result: LookupResult, summary: RunSummary) -> None:
        summary.processed += 1

        if not result.resolved:
            summary.errors += 1
            if result.status == LookupStatus.RATE_LIMITED:
                summary.rate_limited += 1
                console.print(
                    f"  [yellow]WARN[/yellow] Rate limited after {result.attempts} attempts; "
                    f"{group.identity} left for a later run"
                )
            else:
                console.print(f"  [red]ERROR[/red] {group.identity}: {result.error}")
            return

        try:
            updated = apply_update(self.store, group.identity, result, now=self._now())
        except PersistenceError as e:
            summary.errors += 1
            console.print(f"  [red]ERROR[/red] Could not save result for {group.identity}: {sanitize_error(str(e))}")
            return

        summary.records_updated += updated or 0
        if result.status == LookupStatus.FOUND:
            summary.breached += 1
            console.print(
                f"  [red]BREACHED[/red] {len(result.breaches)} breaches "
                f"(updated {updated} records)"
            )
        else:
            summary.safe += 1
            console.print(f"  [green]OK[/green] No breaches (updated {updated} records)")

    def _print_summary(self, summary: RunSummary) -> None:
        console.print(
            f"\n  Final results: [red]{summary.breached} breached[/red], "
            f"[green]{summary.safe} safe[/green], [yellow]{summary.errors} errors[/yellow]"
        )
        if summary.cancelled:
            console.print("  [yellow]WARN[/yellow] Run interrupted; completed results were saved.")
        if summary.errors > 0 or summary.cancelled:
            console.print("  Run with [bold]--resume[/bold] to continue checking remaining identities.")

    async def run_scheduled(self, batch_size: Optional[int] = None) -> tuple[bool, RunSummary]:
        """Process one batch of unchecked identities (cron mode).

        Returns (complete, summary); complete is True once every identity
        has been checked.
        """
        progress = self.get_progress()
        if progress.remaining == 0:
            console.print("  [green]OK[/green] All identities have been checked.")
            return True, RunSummary()

        console.print(
            f"  Progress: {progress.checked}/{progress.total} checked "
            f"({progress.remaining} remaining; {progress.breached} breached, {progress.safe} safe)"
        )
        summary = await self.run_batch(limit=batch_size or self.rate_limit.batch_size, resume=True)
        return self.get_progress().remaining == 0, summary
