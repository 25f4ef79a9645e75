"""credaudit - audit stored credentials against breach data.

Entry point for breach checks, progress statistics and risk scoring.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from .. import __version__


@click.group()
@click.version_option(__version__, prog_name="credaudit")
def credaudit_cli() -> None:
    """credaudit - breach checks and risk scoring for stored credentials."""


def _project_option(f):
    return click.option(
        "--project", "-p",
        type=click.Path(exists=True, file_okay=False),
        default=".",
        show_default=True,
        help="Project path containing .credaudit/",
    )(f)


@credaudit_cli.command()
@_project_option
def init(project: str) -> None:
    """Initialize credaudit in a project."""
    from ..core.runner import initialize_project

    initialize_project(Path(project))


@credaudit_cli.command()
@_project_option
@click.option("--limit", "-n", type=click.IntRange(min=1), help="Check at most N unique identities")
@click.option("--resume", is_flag=True, help="Skip identities that were already checked")
def check(project: str, limit: int | None, resume: bool) -> None:
    """Check identities against the breach lookup service.

    Example: credaudit check -p ./vault --resume --limit 16
    """
    from ..core.runner import run_check

    sys.exit(run_check(Path(project), limit=limit, resume=resume))


@credaudit_cli.command()
@_project_option
@click.option("--batch-size", "-b", type=click.IntRange(min=1), help="Identities per invocation")
def scheduled(project: str, batch_size: int | None) -> None:
    """Run a single batch of unchecked identities (for cron jobs)."""
    from ..core.runner import run_scheduled

    sys.exit(run_scheduled(Path(project), batch_size=batch_size))


@credaudit_cli.command()
@_project_option
def stats(project: str) -> None:
    """Show breach check progress and statistics."""
    from ..core.runner import show_stats

    sys.exit(show_stats(Path(project)))


@credaudit_cli.command()
@_project_option
@click.option("--limit", "-n", type=click.IntRange(min=1), help="Check at most N passwords")
def passwords(project: str, limit: int | None) -> None:
    """Check stored passwords against the Pwned Passwords range API."""
    from ..core.runner import run_password_check

    sys.exit(run_password_check(Path(project), limit=limit))


@credaudit_cli.command()
@_project_option
def score(project: str) -> None:
    """Recompute risk scores for every record."""
    from ..core.runner import run_scoring

    sys.exit(run_scoring(Path(project)))


@credaudit_cli.command()
@_project_option
@click.option("--limit", "-n", type=click.IntRange(min=1), default=20, show_default=True)
def risk(project: str, limit: int) -> None:
    """List the highest-risk records."""
    from ..core.runner import show_risk

    sys.exit(show_risk(Path(project), limit=limit))


@credaudit_cli.command()
@_project_option
def analyze(project: str) -> None:
    """Summarize breaches across all checked identities."""
    from ..core.runner import show_analysis

    sys.exit(show_analysis(Path(project)))


def main() -> None:
    credaudit_cli()


if __name__ == "__main__":
    main()
