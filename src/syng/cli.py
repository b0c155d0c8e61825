import argparse
import datetime
import subprocess
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import daemon, ops
from .config import Config
from .constants import (
    APP_NAME,
    ENV_FORCE_SYNC_AFTER,
    ENV_SYNC_AFTER,
    GIT_DIR,
    LOG_FILE,
)
from .git_wrapper import GitRepo
from .observer import ChangeObserver
from .scheduler import shortest_age

console = Console()


def _require_repo() -> Path:
    """Returns the current directory, exiting if it is not a repository root."""
    cwd = Path.cwd()
    if not (cwd / GIT_DIR).exists():
        daemon.err_console.print(
            "[bold red]ERROR:[/bold red] not in git root directory "
            f"({GIT_DIR} directory not found)"
        )
        sys.exit(1)
    return cwd


def _format_age(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    if seconds < 3600:
        return f"{seconds / 60:.0f}m"
    return f"{seconds / 3600:.1f}h"


def show_status() -> None:
    """Displays pending changes and when the watcher would sync them."""
    cwd = _require_repo()
    conf = Config.load(cwd)
    repo = GitRepo(cwd)
    now = time.time()
    changes = ChangeObserver(repo).list_changes()

    repo_content = Text()
    repo_content.append(f"Branch:      {repo.current_branch() or '(detached)'}\n")
    repo_content.append(
        f"Sync after:  {_format_age(conf.scheduler.sync_after)} quiet, "
        f"forced after {_format_age(conf.scheduler.force_sync_after)}\n",
        style="dim",
    )
    repo_content.append(f"Pending:     {len(changes)} files changed\n")

    if changes:
        shortest = shortest_age(changes, now, conf.scheduler)
        remaining = conf.scheduler.sync_after - shortest
        if remaining < 0:
            repo_content.append("Next sync:   due now\n", style="bold yellow")
        else:
            repo_content.append(
                f"Next sync:   in ~{_format_age(remaining)} if edits stop\n"
            )

    if ops.is_paused(cwd):
        repo_content.append("Mode:        PAUSED", style="bold yellow")
    else:
        repo_content.append("Mode:        Active", style="green")

    console.print(Panel(repo_content, title="Repository Status", expand=False))

    if not changes:
        return

    table = Table(title="Pending Changes")
    table.add_column("Path", style="cyan")
    table.add_column("Modified", style="dim")
    table.add_column("Age", justify="right")
    for change in sorted(changes, key=lambda c: c.path):
        if change.deleted:
            table.add_row(change.path, "deleted", "-", style="red")
            continue
        modified = datetime.datetime.fromtimestamp(change.modified_at)
        table.add_row(
            change.path,
            modified.strftime("%Y-%m-%d %H:%M:%S"),
            _format_age(max(0.0, now - change.modified_at)),
        )
    console.print(table)


def show_config() -> None:
    """Displays the effective configuration for the current repository."""
    conf = Config.load(_require_repo())
    sched = conf.scheduler

    table = Table(title="syng Configuration", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Value", style="yellow")
    table.add_column("Description")

    table.add_row(
        "core",
        "remote_name",
        str(conf.core.remote_name),
        "Remote for pull/push (None = branch upstream).",
    )
    table.add_row(
        "",
        "commit_message",
        repr(conf.core.commit_message),
        "Commit message; '{timestamp}' is expanded.",
    )
    table.add_row(
        "scheduler",
        "sync_after",
        f"{sched.sync_after_ms}ms",
        f"Quiet period before syncing (env {ENV_SYNC_AFTER}).",
    )
    table.add_row(
        "",
        "force_sync_after",
        f"{int(sched.force_sync_after * 1000)}ms",
        f"Hard ceiling for pending changes (env {ENV_FORCE_SYNC_AFTER}).",
    )

    console.print(table)


def sync_now() -> None:
    """Runs one sync action in the current repository."""
    cwd = _require_repo()
    daemon.setup_logging(interactive=True)
    conf = Config.load(cwd)
    action = ops.SyncAction(GitRepo(cwd), conf.core)

    with console.status("Syncing changes...", spinner="dots"):
        ok = action.run()

    if ok:
        console.print("[bold green]✔ Sync complete.[/bold green]")
    else:
        console.print("[bold red]✘ Sync failed or skipped. See log above.[/bold red]")
        sys.exit(1)


def set_pause_state(paused: bool) -> None:
    """Toggles sync actions for the current repository.

    Args:
        paused (bool): True to pause syncing, False to resume it.
    """
    cwd = _require_repo()
    ops.set_paused(cwd, paused)
    if paused:
        console.print(
            "syng paused. Syncing suspended for this repo.", style="bold yellow"
        )
    else:
        console.print("syng resumed. Syncing active.", style="bold green")


def tail_log() -> None:
    """Follows the daemon log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the syng CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Automatically commit and push changes in a git repository.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("watch", help="Watch the current repo (default)")
    subparsers.add_parser("now", help="Stage, commit and push immediately")
    subparsers.add_parser("status", help="Show pending changes and sync timing")
    subparsers.add_parser("pause", help="Suspend syncing for current repo")
    subparsers.add_parser("resume", help="Resume syncing for current repo")
    subparsers.add_parser("config", help="Show the effective configuration")
    subparsers.add_parser("log", help="Tail the daemon log file")

    args = parser.parse_args(argv)

    if args.command == "now":
        sync_now()
        return
    elif args.command == "status":
        show_status()
        return
    elif args.command == "pause":
        set_pause_state(True)
        return
    elif args.command == "resume":
        set_pause_state(False)
        return
    elif args.command == "config":
        show_config()
        return
    elif args.command == "log":
        tail_log()
        return

    # Default Action ('watch' or no subcommand)
    daemon.main()


if __name__ == "__main__":
    main()
