"""Rich terminal formatting for Remedy output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from remedy.core.errors import FixGenerationError
from remedy.core.models import SecurityIssue, Severity
from remedy.fix.models import AppliedChange, PendingChange

console = Console()
error_console = Console(stderr=True)


SEVERITY_COLORS = {
    Severity.CRITICAL: "red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "dim",
}


def severity_label(severity: Severity) -> str:
    color = SEVERITY_COLORS.get(severity, "white")
    return f"[{color}]● {severity.name}[/{color}]"


def print_issues(issues: list[SecurityIssue], title: str = "Security Issues") -> None:
    """Print a numbered table of issues."""
    if not issues:
        console.print("\n  [green]✅ No issues found.[/green]\n")
        return

    table = Table(title=f"[bold]{title}[/bold]", show_lines=False, padding=(0, 1))
    table.add_column("#", justify="right", style="bold")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Location", style="cyan")
    table.add_column("Issue")
    table.add_column("Analyzer", style="dim")

    for i, issue in enumerate(issues, 1):
        table.add_row(
            str(i),
            severity_label(issue.severity),
            issue.category.display_name,
            escape(str(issue.location)),
            escape(issue.title),
            issue.analyzer,
        )
    console.print(table)

    critical = sum(1 for i in issues if i.severity.level >= Severity.HIGH.level)
    console.print(f"  {len(issues)} issues ({critical} high or critical)\n")


def print_pending_change(change: PendingChange) -> None:
    """Print a staged fix: plan, verdicts and the coloured diff."""
    lines = []
    lines.append(f"  {escape(str(change.issue))}")
    lines.append("")
    lines.append("  [bold]Plan:[/bold]")
    lines.append(escape(change.plan.format()))
    lines.append("")
    lines.append(f"  Review:     [green]{escape(str(change.review))}[/green]")
    lines.append(f"  Validation: [green]{escape(str(change.validation))}[/green]")
    lines.append("")

    lines.append(f"  {escape(str(change.file_path))}:{change.start_line}-{change.end_line}")
    for diff_line in change.diff.splitlines():
        escaped = escape(diff_line)
        if diff_line.startswith("-") and not diff_line.startswith("---"):
            lines.append(f"  [red]{escaped}[/red]")
        elif diff_line.startswith("+") and not diff_line.startswith("+++"):
            lines.append(f"  [green]{escaped}[/green]")
        else:
            lines.append(f"  {escaped}")

    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]Fix Preview - {change.id}[/bold]",
        border_style="green",
        padding=(0, 1),
    ))


def print_applied(applied: AppliedChange) -> None:
    console.print(f"  [green]✅ Applied {applied.id}[/green]  {escape(applied.pending.summary)}")


def print_rollback(applied: AppliedChange) -> None:
    console.print(f"  [yellow]↩ Rolled back {applied.id}[/yellow]  restored {escape(str(applied.file_path))}")


def print_history(history: list[AppliedChange]) -> None:
    """Print applied changes, most recent first."""
    if not history:
        console.print("  [dim]No applied changes.[/dim]")
        return
    for i, applied in enumerate(history, 1):
        when = applied.applied_at.strftime("%H:%M:%S")
        console.print(f"  {i:>2}. {when}  {escape(applied.summary)}")


def print_failure(error: FixGenerationError) -> None:
    """Print a failed fix with the last feedback verbatim."""
    body = escape(str(error).splitlines()[0] if str(error) else "Fix failed")
    if error.feedback:
        body += f"\n\n[bold]Last feedback:[/bold]\n{escape(error.feedback)}"
    error_console.print(Panel(
        body,
        title=f"[bold]Fix failed after {error.attempts} attempt(s)[/bold]",
        border_style="red",
        padding=(0, 1),
    ))


def get_progress() -> Progress:
    """Create a progress spinner for long-running steps."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    )
