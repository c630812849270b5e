"""remedy fix command."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click
from rich.prompt import Confirm

from remedy.analyzers.registry import AnalyzerRegistry
from remedy.core.config import RemedyConfig, load_config
from remedy.core.errors import FixGenerationError, RemedyError
from remedy.core.output import (
    console,
    error_console,
    print_applied,
    print_failure,
    print_pending_change,
)
from remedy.fix.changes import ChangeManager
from remedy.fix.orchestrator import FixOrchestrator
from remedy.fix.roles import LLMClient, LLMCoder, LLMPlanner, LLMReviewer
from remedy.fix.validator import CodeValidator


def build_orchestrator(
    config: RemedyConfig,
    project_path: Path,
    registry: AnalyzerRegistry | None = None,
) -> FixOrchestrator:
    """Wire the Claude-backed roles and the validator for ``project_path``."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise click.ClickException("ANTHROPIC_API_KEY is not set; it is required to generate fixes.")

    client = LLMClient(api_key=api_key, config=config.fix.ai)
    validator = CodeValidator(project_path, config, registry or AnalyzerRegistry.default(config.tools))
    return FixOrchestrator(
        planner=LLMPlanner(client),
        coder=LLMCoder(client),
        reviewer=LLMReviewer(client),
        validator=validator,
        config=config,
    )


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--line", "-l", type=int, default=None, help="Only fix the issue reported at this line")
@click.option("--retries", "-r", type=int, default=None, help="Attempts per issue (default from remedy.toml)")
@click.option("--preview", is_flag=True, help="Generate and show fixes without applying them")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
def fix(file: Path, line: int | None, retries: int | None, preview: bool, yes: bool):
    """Generate verified fixes for the issues in FILE.

    Each fix is planned, reviewed and compiled before it is shown. Issues
    are handled bottom-up so that applying one fix does not shift the
    line numbers of the ones still to come.
    """
    project_path = Path.cwd()
    config = load_config(project_path)
    registry = AnalyzerRegistry.default(config.tools)

    issues = registry.scan(file, config)
    if line is not None:
        issues = [i for i in issues if i.line == line]
    if not issues:
        console.print(f"\n  [green]No issues to fix in {file}.[/green]\n")
        return

    orchestrator = build_orchestrator(config, project_path, registry)
    manager = ChangeManager(history_size=config.fix.history_size)
    failed = 0

    for issue in sorted(issues, key=lambda i: i.line, reverse=True):
        console.print(f"\n  [bold]Fixing[/bold] {issue}")
        try:
            change = orchestrator.generate_fix_with_context(issue, issues, retries)
        except FixGenerationError as e:
            print_failure(e)
            failed += 1
            continue

        print_pending_change(change)
        if preview:
            continue

        manager.stage(change)
        if not yes and not Confirm.ask("  Apply this fix?", default=False):
            manager.discard()
            console.print("  [dim]Skipped.[/dim]")
            continue

        try:
            print_applied(manager.accept())
        except RemedyError as e:
            error_console.print(f"  [red]Could not apply {change.id}: {e}[/red]")
            manager.discard()
            failed += 1

    if failed:
        console.print(f"\n  [red]{failed} of {len(issues)} fixes failed.[/red]\n")
        sys.exit(1)
