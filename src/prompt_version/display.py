"""Display utilities for version control results.

Provides rich console formatting for log entries, diffs, branch listings,
status, and version content.
"""

from datetime import datetime
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core import DiffResult, LogEntry, StatusResult
from .storage.models import BranchInfo, VersionEntry

SEPARATOR = "─" * 50


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def format_log_entry(entry: LogEntry) -> str:
    """Render one log entry as rich markup."""
    version = entry.version
    head_marker = " [green](HEAD)[/green]" if entry.is_head else ""
    tag_markers = (
        f" [yellow]\\[{escape(', '.join(entry.tags))}][/yellow]" if entry.tags else ""
    )

    lines = [
        f"[yellow]commit {version.id}[/yellow]{head_marker}{tag_markers}",
        f"[dim]Branch: {escape(version.branch)}[/dim]",
        f"[dim]Author: {escape(version.author)}[/dim]",
        f"[dim]Date:   {format_timestamp(version.timestamp)}[/dim]",
        "",
        f"    {escape(version.message)}",
    ]
    return "\n".join(lines)


def display_log(console: Console, entries: List[LogEntry]) -> None:
    if not entries:
        console.print("No versions found.", style="yellow")
        return

    for entry in entries:
        console.print(format_log_entry(entry))
        console.print()


def display_diff(console: Console, result: DiffResult) -> None:
    """Print a diff with per-line markers."""
    console.print(f"[bold]Comparing {result.v1.id} -> {result.v2.id}[/bold]")
    console.print(SEPARATOR, style="dim")
    console.print(
        f"[green]+{result.additions}[/green] additions, "
        f"[red]-{result.deletions}[/red] deletions"
    )
    console.print(SEPARATOR, style="dim")

    for change in result.changes:
        for line in change.lines():
            if change.added:
                console.print(f"+ {line}", style="green", markup=False, highlight=False)
            elif change.removed:
                console.print(f"- {line}", style="red", markup=False, highlight=False)
            else:
                console.print(f"  {line}", style="dim", markup=False, highlight=False)


def display_branches(console: Console, branches: List[BranchInfo], current: str) -> None:
    if not branches:
        console.print("No branches found.", style="yellow")
        return

    table = Table(title="Branches")
    table.add_column("Branch", style="green")
    table.add_column("Head", style="cyan")
    table.add_column("Created", style="dim")
    table.add_column("Description")

    for branch in branches:
        marker = "* " if branch.name == current else "  "
        table.add_row(
            f"{marker}{escape(branch.name)}",
            branch.head_id or "-",
            format_timestamp(branch.created_at),
            escape(branch.description or ""),
        )

    console.print(table)


def display_status(console: Console, file_path: str, status: StatusResult) -> None:
    table = Table(title=f"Status: {escape(file_path)}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Tracked", "[green]Yes[/green]" if status.tracked else "[yellow]No[/yellow]")
    table.add_row("Branch", escape(status.current_branch))
    table.add_row("Versions", str(status.versions))
    if status.tracked:
        table.add_row(
            "Modified", "[yellow]Yes[/yellow]" if status.modified else "[green]No[/green]"
        )
    if status.tags:
        table.add_row("Tags", escape(", ".join(status.tags)))

    console.print(table)
    if status.error:
        console.print(f"❌ {status.error}", style="red", markup=False)


def display_version(console: Console, entry: VersionEntry) -> None:
    metadata = entry.metadata
    console.print(f"[bold]Version: {metadata.id}[/bold]")
    console.print(f"Message: {metadata.message}", style="dim", markup=False)
    console.print(f"Author:  {metadata.author}", style="dim", markup=False)
    console.print(f"Date:    {format_timestamp(metadata.timestamp)}", style="dim")
    console.print(SEPARATOR, style="dim")
    console.print(entry.content, markup=False, highlight=False)
