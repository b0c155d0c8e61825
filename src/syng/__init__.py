"""syng: Automatic commit-and-push for git working trees.

This package provides a debounced watcher that stages, commits and pushes
changes once edits go quiet, with a hard ceiling so continuous edits are still
synced regularly.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    git_wrapper,
    observer,
    ops,
    scheduler,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "git_wrapper",
    "observer",
    "ops",
    "scheduler",
]
