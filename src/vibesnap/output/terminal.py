"""Rich terminal reporter — timeline table, file lists, colored friendly diffs."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from vibesnap.commands import (
    ActionResult,
    FilesResult,
    FriendlyDiffResult,
    HistoryResult,
    InitResult,
    RepoStatusResult,
    WatcherResult,
)
from vibesnap.engine.state import Notification, NotificationKind
from vibesnap.git.models import ChangeType

_CHANGE_STYLE = {
    ChangeType.ADDED: "green",
    ChangeType.REMOVED: "red",
    ChangeType.UNCHANGED: "dim",
}

_CHANGE_MARK = {
    ChangeType.ADDED: "+",
    ChangeType.REMOVED: "-",
    ChangeType.UNCHANGED: " ",
}

_NOTIFICATION_STYLE = {
    NotificationKind.AUTO_COMMIT_SUCCESS: ("[green]✓[/green]", "Snapshot"),
    NotificationKind.AUTO_COMMIT_ERROR: ("[red]✗[/red]", "Auto-commit failed"),
    NotificationKind.WATCHER_STATUS: ("[cyan]•[/cyan]", None),
}


def _console(console: Optional[Console]) -> Console:
    return console or Console(stderr=True)


def render_error(message: str, error: Optional[str], console: Optional[Console] = None) -> None:
    console = _console(console)
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    if error:
        console.print(Text(error, style="dim"))


def render_action(result: ActionResult | InitResult, console: Optional[Console] = None) -> None:
    console = _console(console)
    if result.success:
        console.print(f"[green]✓[/green] {escape(result.message)}")
    else:
        render_error(result.message, result.error, console)


def render_history(result: HistoryResult, console: Optional[Console] = None) -> None:
    """Print the snapshot timeline, newest first."""
    console = _console(console)
    if not result.success:
        render_error("Could not read snapshot history", result.error, console)
        return
    if not result.history:
        console.print("[dim]No snapshots yet.[/dim]")
        return

    table = Table(title="Snapshots", title_style="bold", border_style="dim")
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("Date", style="green", no_wrap=True)
    table.add_column("Message", overflow="fold")
    for item in result.history:
        table.add_row(item.hash[:8], item.date, Text(item.message))
    console.print(table)


def render_files(commit: str, result: FilesResult, console: Optional[Console] = None) -> None:
    console = _console(console)
    if not result.success:
        render_error(f"Could not list files for {commit}", result.error, console)
        return
    console.print(f"[bold]{len(result.files)} file(s) changed in {commit[:8]}:[/bold]")
    for name in result.files:
        console.print(f"  [magenta]{escape(name)}[/magenta]", highlight=False)


def render_friendly_diff(
    file_path: str,
    result: FriendlyDiffResult,
    console: Optional[Console] = None,
) -> None:
    """Print one file's friendly diff with a gutter of post-change line numbers."""
    console = _console(console)
    if not result.success:
        render_error(f"Could not diff {file_path}", result.error, console)
        return

    console.print(f"[bold]{escape(file_path)}[/bold]", highlight=False)
    if result.summary:
        console.print(Text(result.summary, style="italic"))
    if not result.lines:
        console.print("[dim]No textual changes to show (binary file or metadata-only change).[/dim]")
        return

    width = max((len(str(line.line_number)) for line in result.lines if line.line_number), default=1)
    for line in result.lines:
        gutter = str(line.line_number).rjust(width) if line.line_number is not None else " " * width
        text = Text(f"{gutter} {_CHANGE_MARK[line.change_type]} ", style="dim")
        text.append(line.content, style=_CHANGE_STYLE[line.change_type])
        console.print(text)


def render_status(result: RepoStatusResult, console: Optional[Console] = None) -> None:
    console = _console(console)
    if not result.success or result.status is None:
        render_error("Could not read repository status", result.error, console)
        return
    status = result.status
    console.print(f"[dim]Branch:[/dim]   {status.branch}")
    console.print(f"[dim]Latest:[/dim]   {escape(status.latest_commit_summary or '-')}", highlight=False)
    if status.is_clean:
        console.print("[dim]Worktree:[/dim] [green]clean[/green]")
    else:
        console.print(f"[dim]Worktree:[/dim] [yellow]{status.dirty_file_count} changed file(s)[/yellow]")


def render_watcher(result: WatcherResult, console: Optional[Console] = None) -> None:
    console = _console(console)
    if result.error:
        render_error("Watcher could not start", result.error, console)
        return
    state = result.state
    if not state.is_watching:
        console.print("[dim]Watcher is not running.[/dim]")
        return
    console.print(
        f"[green]●[/green] Watching {escape(str(state.project_path))} "
        f"(quiet period {state.debounce_millis} ms)"
    )
    if state.log_file_path:
        console.print(f"[dim]Prompt log:[/dim] {escape(str(state.log_file_path))}")


def render_notification(notification: Notification, console: Optional[Console] = None) -> None:
    console = _console(console)
    icon, label = _NOTIFICATION_STYLE[notification.kind]
    text = escape(f"{label}: {notification.payload}" if label else notification.payload)
    console.print(f"{icon} {text}", highlight=False)
