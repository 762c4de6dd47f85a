"""CLI entry point for gyat."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from gyat.config import GyatConfig, load_config
from gyat.config.loader import CONFIG_FILENAME, DEFAULT_CONFIG_TEMPLATE
from gyat.errors import GyatError
from gyat.observe.models import ChangeStatus, StagedState
from gyat.repository import Repository, find_repo_root

app = typer.Typer(
    name="gyat",
    help="Watered down VCS: observe, track and fall back to snapshots of a directory.",
)

config_app = typer.Typer(help="Manage gyat configuration.")
app.add_typer(config_app, name="config")

err_console = Console(stderr=True)

# Global state
_config_path: str | None = None

_STATUS_STYLE = {
    ChangeStatus.added: "green",
    ChangeStatus.modified: "yellow",
    ChangeStatus.deleted: "red",
    ChangeStatus.kind_changed: "magenta",
    ChangeStatus.unchanged: "dim",
}

_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps({
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        })


def _configure_logging(cfg: GyatConfig, verbose: bool) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(console=err_console, show_path=False)
    level = logging.DEBUG if verbose else _LEVELS[cfg.log_level]
    logging.basicConfig(level=level, handlers=[handler], force=True)


def _get_config() -> GyatConfig:
    return load_config(_config_path, repo_root=find_repo_root("."))


def _open_repo() -> Repository:
    return Repository.open(".", _get_config())


@contextmanager
def _errors() -> Iterator[None]:
    """Turn library errors into a red message and exit code 1."""
    try:
        yield
    except (GyatError, ValueError) as e:
        err_console.print(f"[red]error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help=f"Path to {CONFIG_FILENAME}")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Global options."""
    global _config_path
    _config_path = config
    with _errors():
        _configure_logging(_get_config(), verbose)


def _display_changes(staged: StagedState, title: str) -> None:
    pending = staged.pending()
    if not pending:
        rprint("[green]No changes observed.[/green]")
        rprint(f"[dim]Tree:[/dim] {staged.root}")
        return

    table = Table(title=f"{title} ({len(pending)})")
    table.add_column("Status", justify="center")
    table.add_column("Path", style="cyan")
    table.add_column("Digest", style="dim")
    for change in pending:
        style = _STATUS_STYLE[change.status]
        digest = change.digest or change.previous or ""
        table.add_row(f"[{style}]{change.status.value}[/{style}]", escape(change.path), digest[:12])
    rprint(table)
    rprint(f"[dim]Tree:[/dim] {staged.root}")

    for change in staged.with_status(ChangeStatus.kind_changed):
        was = change.previous_kind.value if change.previous_kind else "?"
        now = change.kind.value if change.kind else "?"
        rprint(
            f"[magenta]warning:[/magenta] {escape(change.path)} changed from {was} to {now}; "
            "run observe again after tracking to see its contents"
        )


# ---------------------------------------------------------------------------
# Repository commands
# ---------------------------------------------------------------------------


@app.command()
def create(
    name: Annotated[
        str | None, typer.Argument(help="Directory to create the repository in (default: cwd)")
    ] = None,
) -> None:
    """Create a new gyat repository."""
    if name is not None and name.strip() in ("", ".", ".."):
        err_console.print("[red]error:[/red] invalid repository name")
        raise typer.Exit(1)
    with _errors():
        repo = Repository.create(Path(name) if name else Path("."), _get_config())
    rprint(f"[green]Initialized[/green] empty gyat repository in {repo.root}")


@app.command()
def observe(
    paths: Annotated[
        list[Path] | None, typer.Argument(help="Only observe these paths (default: everything)")
    ] = None,
) -> None:
    """Take a look at the repository for changes and stage them."""
    with _errors():
        staged = _open_repo().observe(paths)
    _display_changes(staged, "Staged changes")


@app.command()
def status(
    paths: Annotated[
        list[Path] | None, typer.Argument(help="Only compare these paths (default: everything)")
    ] = None,
) -> None:
    """Show changes against head without staging them."""
    with _errors():
        staged = _open_repo().status(paths)
    _display_changes(staged, "Changes")


@app.command()
def discard() -> None:
    """Drop the staged changes."""
    with _errors():
        _open_repo().discard()
    rprint("[yellow]Staged changes discarded.[/yellow]")


@app.command()
def track(
    message: Annotated[str, typer.Option("--message", "-m", help="The commit message")],
    track_all: Annotated[
        bool, typer.Option("--all", "-a", help="Observe before tracking")
    ] = False,
) -> None:
    """Commit the observed changes."""
    with _errors():
        commit = _open_repo().track(message, track_all=track_all)
    rprint(f"[green]Tracked[/green] {commit.digest}")
    rprint(f"[dim]Tree:[/dim] {commit.tree}")


@app.command()
def fallback(
    commit_hash: Annotated[str, typer.Argument(help="Full or abbreviated commit hash")],
) -> None:
    """Fall back to a previous track."""
    with _errors():
        target = _open_repo().fallback(commit_hash)
    rprint(f"[green]Fell back[/green] to {target.digest}")


@app.command()
def wood(
    lines: Annotated[int, typer.Option("--lines", "-n", help="Maximum number of commits")] = 10,
) -> None:
    """Print a log of tracked commits, newest first."""
    if lines <= 0:
        return
    with _errors():
        commits = _open_repo().log(lines)
    if not commits:
        rprint("[yellow]No commits yet.[/yellow]")
        return
    for commit in commits:
        stamp = commit.timestamp.astimezone().strftime("%a %b %d %H:%M:%S %Y")
        rprint(f"[yellow]{commit.digest}[/yellow]")
        rprint(f"[dim]Date:[/dim]   {stamp}")
        rprint(f"    {escape(commit.message)}\n")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    with _errors():
        cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default gyat.yaml in current directory."""
    target = Path(CONFIG_FILENAME)
    if target.exists() and not force:
        rprint(f"[yellow]{CONFIG_FILENAME} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
