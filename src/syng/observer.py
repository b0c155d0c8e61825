"""Change observation for a git working tree.

The observer turns `git status` into a list of `ChangeRecord`s carrying each
path's modification time, which is all the scheduler needs to debounce.
"""

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass

from .constants import APP_NAME
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)

EPOCH = 0.0
"""float: Timestamp reported for paths that no longer exist."""


@dataclass(frozen=True)
class ChangeRecord:
    """A single pending change in the working tree.

    Attributes:
        path (str): Path relative to the repository root.
        modified_at (float): Last modification time (epoch seconds).
        deleted (bool): Whether the path no longer exists on disk.
    """

    path: str
    modified_at: float
    deleted: bool = False


class ChangeObserver:
    """Polls a repository for pending changes.

    Attributes:
        repo (GitRepo): The repository to inspect.
    """

    def __init__(self, repo: GitRepo, clock: Callable[[], float] = time.time):
        self.repo = repo
        self._clock = clock

    def list_changes(self) -> list[ChangeRecord]:
        """Returns one record per pending path.

        A failing `git status` yields an empty list so a transient git error
        never stops the watch loop.
        """
        try:
            paths = self.repo.status_porcelain()
        except Exception as e:
            logger.warning(f"Could not list changes in {self.repo.path.name}: {e}")
            return []

        return [self._record(path) for path in paths]

    def _record(self, path: str) -> ChangeRecord:
        try:
            mtime = os.lstat(self.repo.path / path).st_mtime
        except (FileNotFoundError, NotADirectoryError):
            return ChangeRecord(path, EPOCH, deleted=True)
        except OSError as e:
            # Assume a fresh edit so the file is never skipped.
            logger.warning(f"Error checking modtime of {path}: {e}")
            return ChangeRecord(path, self._clock())
        return ChangeRecord(path, mtime)
