"""Mark each record's secret as compromised or not via a range lookup."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from rich.console import Console

from ..errors import PersistenceError
from ..providers.base import SleepFn
from ..providers.pwned_passwords import PasswordCheckError, PwnedPasswordsClient
from ..store.base import RecordStore

console = Console()


class PasswordCheckSummary(BaseModel):
    compromised: int = 0
    safe: int = 0
    skipped: int = 0
    errors: int = 0


async def check_passwords(
    store: RecordStore,
    client: PwnedPasswordsClient,
    limit: Optional[int] = None,
    delay: float = 1.5,
    sleep: Optional[SleepFn] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> PasswordCheckSummary:
    """Check records whose compromised flag is still unknown.

    A failed lookup leaves the flag unknown so the next run retries it.
    """
    sleep = sleep or asyncio.sleep
    now = now or (lambda: datetime.now(timezone.utc))
    summary = PasswordCheckSummary()

    pending = [r for r in store.list_records() if r.compromised is None]
    if limit:
        pending = pending[:limit]

    console.print(f"  Checking [white]{len(pending)}[/white] passwords against the range API")

    for i, record in enumerate(pending):
        if not record.secret:
            summary.skipped += 1
            console.print(f"  [yellow]WARN[/yellow] Record #{record.id} has no password; skipped")
            continue

        try:
            compromised = await client.is_compromised(record.secret)
            store.set_compromised(record.id, compromised, now())
        except (PasswordCheckError, PersistenceError) as e:
            summary.errors += 1
            console.print(f"  [red]ERROR[/red] Record #{record.id}: {e}")
        else:
            if compromised:
                summary.compromised += 1
                console.print(f"  [red]COMPROMISED[/red] Record #{record.id}")
            else:
                summary.safe += 1

        if i < len(pending) - 1:
            await sleep(delay)

    console.print(
        f"\n  Results: [red]{summary.compromised} compromised[/red], "
        f"[green]{summary.safe} safe[/green], {summary.skipped} skipped, "
        f"[yellow]{summary.errors} errors[/yellow]"
    )
    return summary
