"""remedy scan command."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from remedy.analyzers.registry import AnalyzerRegistry
from remedy.core.config import load_config
from remedy.core.models import Severity
from remedy.core.output import console, get_progress, print_issues


@click.command()
@click.argument("target", default=".", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--fail-on",
    type=click.Choice([s.value for s in Severity]),
    default=None,
    help="Exit with code 1 if an issue at or above this severity is found (for CI)",
)
def scan(target: Path, fail_on: str | None):
    """Scan a file or directory with every available analyzer.

    TARGET defaults to the current directory.
    """
    config = load_config(Path.cwd())
    registry = AnalyzerRegistry.default(config.tools)

    with get_progress() as progress:
        task = progress.add_task(f"Scanning {target}...", total=None)
        issues = registry.scan(target, config)
        progress.update(task, completed=True)

    unavailable = [a.name for a in registry.analyzers if not a.is_available()]
    if unavailable:
        console.print(f"  [dim]Skipped unavailable analyzers: {', '.join(unavailable)}[/dim]")

    print_issues(issues)

    if fail_on:
        threshold = Severity.parse(fail_on).level
        if any(i.severity.level >= threshold for i in issues):
            console.print(f"  [red]Issues at or above {fail_on} found.[/red]")
            sys.exit(1)
