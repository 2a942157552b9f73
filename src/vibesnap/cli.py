"""VibeSnap CLI — Typer application with init, snap, history, show, rollback, watch, and status commands."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from vibesnap import __version__

app = typer.Typer(
    name="vibesnap",
    help="Continuous git snapshots for AI-assisted coding sessions.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)

_PATH_HELP = "Project directory (defaults to the current directory)"
_FORMAT_HELP = "Output format: terminal | json | yaml"
_CONFIG_HELP = "Path to .vibesnap.toml"


def _setup_logging(verbose: bool, debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=debug, markup=False)],
    )
    logging.getLogger("vibesnap").setLevel(level)


def _project_root(path: Optional[str]) -> Path:
    return Path(path).expanduser() if path else Path.cwd()


def _load(root: Path, config: Optional[str], format: Optional[str]):
    """Load config for *root* and apply the --format override, exit 2 on failure."""
    from vibesnap.config.loader import ConfigError, load_config
    from vibesnap.config.schema import OUTPUT_FORMATS

    try:
        cfg = load_config(root, config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if format:
        if format not in OUTPUT_FORMATS:
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=2)
        cfg.output.format = format  # type: ignore[assignment]
    return cfg


def _service(cfg, notify=None):
    from vibesnap.commands import SnapshotService

    return SnapshotService(config=cfg, notify=notify)


def _report(result: Any, fmt: str, render_terminal: Callable[[], None]) -> None:
    """Print *result* in the chosen format."""
    from vibesnap.output import json_report, yaml_report

    if fmt == "json":
        print(json_report.render(result))
    elif fmt == "yaml":
        print(yaml_report.render(result))
    else:
        render_terminal()


def _exit_for(result: Any) -> None:
    if not getattr(result, "success", True):
        raise typer.Exit(code=1)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help=_PATH_HELP),
    write_config: bool = typer.Option(False, "--write-config", help="Also write a starter .vibesnap.toml"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """Link a project: create its repository and baseline snapshot if needed."""
    from vibesnap.config.defaults import DEFAULT_TOML
    from vibesnap.config.loader import CONFIG_FILENAME
    from vibesnap.output import terminal

    root = _project_root(path)
    cfg = _load(root, config, format)
    service = _service(cfg)
    result = service.ensure_git_repo(str(root))

    def render() -> None:
        terminal.render_action(result, console)
        if result.success and not result.was_initialized:
            console.print("[dim]An existing repository was found; nothing was changed.[/dim]")

    _report(result, cfg.output.format, render)
    _exit_for(result)

    if write_config:
        config_path = root / CONFIG_FILENAME
        if config_path.exists():
            console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
            raise typer.Exit(code=1)
        config_path.write_text(DEFAULT_TOML, encoding="utf-8")
        console.print(f"[green]✓[/green] Created {config_path}")


# ── snap ──────────────────────────────────────────────────────────────────────


@app.command()
def snap(
    message: str = typer.Argument(..., help="Prompt text recorded in the snapshot message"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help=_PATH_HELP),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """Take a manual snapshot of every change in the project."""
    from vibesnap.output import terminal

    root = _project_root(path)
    cfg = _load(root, config, format)
    result = _service(cfg).create_snapshot(str(root), message)
    _report(result, cfg.output.format, lambda: terminal.render_action(result, console))
    _exit_for(result)


# ── history ───────────────────────────────────────────────────────────────────


@app.command()
def history(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Maximum snapshots to list"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help=_PATH_HELP),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """List snapshots, newest first."""
    from vibesnap.output import terminal

    root = _project_root(path)
    cfg = _load(root, config, format)
    if limit is not None:
        cfg.snapshot.history_limit = limit
    result = _service(cfg).get_snapshot_history(str(root))
    _report(result, cfg.output.format, lambda: terminal.render_history(result, console))
    _exit_for(result)


# ── show ──────────────────────────────────────────────────────────────────────


@app.command()
def show(
    hash: str = typer.Argument(..., help="Snapshot hash (full or abbreviated)"),
    file: Optional[str] = typer.Argument(None, help="File to diff; omit to list changed files"),
    raw: bool = typer.Option(False, "--raw", help="Print the unified diff instead of the friendly view"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help=_PATH_HELP),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """Show the files a snapshot changed, or one file's diff."""
    from vibesnap.output import terminal

    root = _project_root(path)
    cfg = _load(root, config, format)
    service = _service(cfg)

    if file is None:
        files = service.get_snapshot_diff(str(root), hash)
        _report(files, cfg.output.format, lambda: terminal.render_files(hash, files, console))
        _exit_for(files)
        return

    if raw:
        content = service.get_file_diff_content(str(root), hash, file)

        def render_raw() -> None:
            if not content.success:
                terminal.render_error(f"Could not diff {file}", content.error, console)
            elif content.diff_content:
                print(content.diff_content, end="")
            else:
                console.print(f"[dim]{file} was not changed by this snapshot.[/dim]")

        _report(content, cfg.output.format, render_raw)
        _exit_for(content)
        return

    diff = service.get_friendly_diff_content(str(root), hash, file)
    _report(diff, cfg.output.format, lambda: terminal.render_friendly_diff(file, diff, console))
    _exit_for(diff)


# ── rollback ──────────────────────────────────────────────────────────────────


@app.command()
def rollback(
    hash: str = typer.Argument(..., help="Snapshot hash to restore"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help=_PATH_HELP),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """Restore the project to a snapshot, discarding every later change."""
    from vibesnap.output import terminal

    root = _project_root(path)
    cfg = _load(root, config, format)
    if not yes:
        typer.confirm(
            f"Roll {root} back to {hash}? Uncommitted changes and later snapshots will be lost",
            abort=True,
        )
    result = _service(cfg).rollback(str(root), hash)
    _report(result, cfg.output.format, lambda: terminal.render_action(result, console))
    _exit_for(result)


# ── watch ─────────────────────────────────────────────────────────────────────


@app.command()
def watch(
    log_file: Optional[str] = typer.Option(None, "--log-file", "-l", help="Prompt log; its last line names each snapshot"),
    debounce: Optional[int] = typer.Option(None, "--debounce", "-d", min=0, help="Quiet period in milliseconds"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help=_PATH_HELP),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """Watch the project and snapshot it after every quiet period. Ctrl+C stops."""
    from vibesnap.output import json_report, terminal, yaml_report

    root = _project_root(path)
    cfg = _load(root, config, format)
    fmt = cfg.output.format

    def notify(notification) -> None:
        if fmt == "json":
            print(json_report.render(notification), flush=True)
        elif fmt == "yaml":
            print("---\n" + yaml_report.render(notification), flush=True)
        else:
            terminal.render_notification(notification, console)

    service = _service(cfg, notify=notify)
    result = service.start_file_watcher(
        str(root),
        log_file or cfg.watcher.log_file,
        debounce,
    )
    _report(result, fmt, lambda: terminal.render_watcher(result, console))
    if result.error:
        raise typer.Exit(code=1)

    try:
        while service.get_file_watcher_status().state.is_watching:
            time.sleep(0.2)
    except KeyboardInterrupt:
        pass
    finally:
        stopped_cleanly = service.get_file_watcher_status().state.is_watching
        service.close()

    if not stopped_cleanly:
        # the watcher died on its own; the error was already reported
        raise typer.Exit(code=1)


# ── status ────────────────────────────────────────────────────────────────────


@app.command()
def status(
    path: Optional[str] = typer.Option(None, "--path", "-p", help=_PATH_HELP),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=_CONFIG_HELP),
    format: Optional[str] = typer.Option(None, "--format", "-f", help=_FORMAT_HELP),
) -> None:
    """Show the branch, latest snapshot and number of unsnapshotted files."""
    from vibesnap.output import terminal

    root = _project_root(path)
    cfg = _load(root, config, format)
    result = _service(cfg).repo_status(str(root))
    _report(result, cfg.output.format, lambda: terminal.render_status(result, console))
    _exit_for(result)


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"vibesnap {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log snapshots and watcher activity"),
    debug: bool = typer.Option(False, "--debug", help="Log every git command"),
) -> None:
    """VibeSnap — Continuous git snapshots for AI-assisted coding sessions."""
    _setup_logging(verbose, debug)
