"""remedy shell: interactive scan, fix, accept and rollback loop."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape

from remedy.analyzers.registry import AnalyzerRegistry
from remedy.cli.fix_cmd import build_orchestrator
from remedy.core.config import RemedyConfig, load_config
from remedy.core.errors import FixGenerationError, RemedyError
from remedy.core.models import SecurityIssue
from remedy.core.output import (
    console,
    error_console,
    print_applied,
    print_failure,
    print_history,
    print_issues,
    print_pending_change,
    print_rollback,
)
from remedy.fix.changes import ChangeManager
from remedy.fix.orchestrator import FixOrchestrator

HELP_TEXT = """\
  scan              re-scan the target
  fix <n>           generate a fix for issue #n from the last scan
  show              show the pending fix
  accept            write the pending fix to disk
  discard           drop the pending fix
  rollback          undo the most recently accepted fix
  history           list accepted fixes, most recent first
  help              show this help
  quit              leave the shell"""


class ShellSession:
    """State of one interactive session: the last scan and the change manager."""

    def __init__(
        self,
        target: Path,
        config: RemedyConfig,
        registry: AnalyzerRegistry,
        orchestrator_factory,
    ):
        self.target = target
        self.config = config
        self.registry = registry
        self.manager = ChangeManager(history_size=config.fix.history_size)
        self.issues: list[SecurityIssue] = []
        self._orchestrator_factory = orchestrator_factory
        self._orchestrator: FixOrchestrator | None = None

    def handle(self, line: str) -> bool:
        """Run one command. Returns False when the session should end."""
        parts = line.split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        if command in ("quit", "exit", "q"):
            return False
        handler = getattr(self, f"do_{command}", None)
        if handler is None:
            console.print(f"  [yellow]Unknown command: {command}[/yellow] (type `help`)")
            return True
        try:
            handler(args)
        except RemedyError as e:
            error_console.print(f"  [red]{escape(str(e))}[/red]")
        except click.ClickException as e:
            error_console.print(f"  [red]{escape(e.format_message())}[/red]")
        return True

    def do_help(self, args: list[str]) -> None:
        console.print(HELP_TEXT)

    def do_scan(self, args: list[str]) -> None:
        self.issues = self.registry.scan(self.target, self.config)
        print_issues(self.issues)

    def do_fix(self, args: list[str]) -> None:
        if not args or not args[0].isdigit():
            console.print("  Usage: fix <n>")
            return
        index = int(args[0])
        if not 1 <= index <= len(self.issues):
            console.print(f"  [yellow]No issue #{index}; run `scan` first.[/yellow]")
            return

        issue = self.issues[index - 1]
        if self._orchestrator is None:
            self._orchestrator = self._orchestrator_factory()
        try:
            change = self._orchestrator.generate_fix_with_context(issue, self.issues)
        except FixGenerationError as e:
            print_failure(e)
            return
        self.manager.stage(change)
        print_pending_change(change)
        console.print("  [dim]Type `accept` to apply or `discard` to drop it.[/dim]")

    def do_show(self, args: list[str]) -> None:
        if self.manager.pending is None:
            console.print("  [dim]No pending fix.[/dim]")
            return
        print_pending_change(self.manager.pending)

    def do_accept(self, args: list[str]) -> None:
        print_applied(self.manager.accept())
        # line numbers moved; the old issue list is no longer reliable
        self.issues = []
        console.print("  [dim]Run `scan` again before fixing another issue.[/dim]")

    def do_discard(self, args: list[str]) -> None:
        change = self.manager.discard()
        if change is None:
            console.print("  [dim]No pending fix.[/dim]")
        else:
            console.print(f"  Discarded {change.id}")

    def do_rollback(self, args: list[str]) -> None:
        print_rollback(self.manager.rollback())
        self.issues = []

    def do_history(self, args: list[str]) -> None:
        print_history(self.manager.history())


@click.command()
@click.argument("target", default=".", type=click.Path(exists=True, path_type=Path))
def shell(target: Path):
    """Interactive session for reviewing and applying fixes in TARGET."""
    project_path = Path.cwd()
    config = load_config(project_path)
    registry = AnalyzerRegistry.default(config.tools)
    session = ShellSession(
        target,
        config,
        registry,
        orchestrator_factory=lambda: build_orchestrator(config, project_path, registry),
    )

    console.print("\n  [bold]Remedy shell[/bold]  (type `help` for commands)\n")
    session.do_scan([])
    while True:
        try:
            line = click.prompt("remedy", prompt_suffix="> ", default="", show_default=False)
        except (EOFError, click.Abort):
            break
        if not session.handle(line):
            break
    if session.manager.has_pending:
        console.print("  [yellow]Pending fix discarded on exit.[/yellow]")
