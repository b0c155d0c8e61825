import datetime
import logging
import threading
import time
from pathlib import Path

from .config import CoreConfig
from .constants import (
    APP_NAME,
    GIT_DIR,
    GIT_LOCK_FILES,
    PAUSE_FILE,
    STALE_LOCK_HOURS,
)
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)


def is_paused(repo_path: Path) -> bool:
    """Checks for the pause marker inside the repository's .git directory."""
    return (repo_path / GIT_DIR / PAUSE_FILE).exists()


def set_paused(repo_path: Path, paused: bool) -> None:
    """Creates or removes the pause marker.

    Args:
        repo_path (Path): The repository root.
        paused (bool): True to suspend sync actions, False to resume them.
    """
    marker = repo_path / GIT_DIR / PAUSE_FILE
    if paused:
        marker.touch()
    else:
        marker.unlink(missing_ok=True)


def is_repo_busy(repo_path: Path) -> bool:
    """Determines if a repository is currently locked by a Git operation.

    Checks for in-progress merges/rebases and for index locks held by
    another git process.

    Args:
        repo_path (Path): The path to the repository.

    Returns:
        bool: True if the repository is busy/locked, False otherwise.
    """
    git_dir = repo_path / GIT_DIR

    # 1. Check for operational locks (e.g., MERGE_HEAD).
    for f in GIT_LOCK_FILES:
        if (git_dir / f).exists():
            return True

    # 2. Check for index.lock.
    lock_file = git_dir / "index.lock"
    if lock_file.exists():
        try:
            age_hours = (time.time() - lock_file.stat().st_mtime) / 3600
            if age_hours > STALE_LOCK_HOURS:
                logger.warning(
                    f"Stale lock detected in {repo_path.name} ({age_hours:.1f}h old). "
                    f"Run 'rm {lock_file}' to fix."
                )
                return True
        except OSError:
            pass  # File vanished (race resolved).

        # Wait-and-see to ride out short-lived git commands.
        time.sleep(1.0)
        if lock_file.exists():
            return True

    return False


def pull_updates(repo: GitRepo, config: CoreConfig) -> bool:
    """Pulls from the remote once. Failures are logged, never raised.

    Returns:
        bool: True if the pull succeeded.
    """
    logger.info("Pulling updates...")
    try:
        repo.pull(config.remote_name)
    except (RuntimeError, OSError) as e:
        logger.error(f"PULL ERROR {repo.path.name}: {e}")
        return False
    return True


class SyncAction:
    """The stage -> commit -> push sequence, serialized by a single lock.

    The periodic scheduler and the shutdown path share one instance, so two
    sequences never interleave.

    Attributes:
        repo (GitRepo): The repository to sync.
        config (CoreConfig): Remote and commit message settings.
    """

    def __init__(self, repo: GitRepo, config: CoreConfig):
        self.repo = repo
        self.config = config
        self._lock = threading.Lock()

    def __call__(self) -> bool:
        return self.run()

    def commit_message(self) -> str:
        """Expands the configured commit message template."""
        timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return self.config.commit_message.replace("{timestamp}", timestamp)

    def run(self) -> bool:
        """Stages, commits and pushes every pending change.

        A failing step is logged and the remaining steps are skipped; the
        next call starts again from staging.

        Returns:
            bool: True if the push completed.
        """
        with self._lock:
            name = self.repo.path.name

            if is_paused(self.repo.path):
                logger.info(f"SKIPPED {name}: Paused by user")
                return False
            if is_repo_busy(self.repo.path):
                logger.info(f"SKIPPED {name}: Repository busy (merge/rebase/lock)")
                return False

            try:
                logger.info("Staging changes...")
                self.repo.add_all()

                if self.repo.has_staged_changes():
                    logger.info("Creating commit...")
                    self.repo.commit(self.commit_message())
                else:
                    logger.info("Nothing to commit.")

                logger.info("Pushing...")
                self.repo.push(self.config.remote_name)
            except (RuntimeError, OSError) as e:
                logger.error(f"SYNC ERROR {name}: {e}")
                return False

            logger.info(f"SUCCESS {name}: Synced.")
            return True
