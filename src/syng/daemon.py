import logging
import signal
import sys
import threading
import time
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType

from rich.console import Console

from .config import Config
from .constants import APP_NAME, GIT_DIR, LOG_FILE, MAX_LOG_SIZE
from .git_wrapper import GitRepo
from .observer import ChangeObserver
from .ops import SyncAction, pull_updates
from .scheduler import SyncScheduler

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)

err_console = Console(stderr=True)

EXIT_ON_SIGNAL = 1
"""int: Exit status after a signal-triggered shutdown."""


def setup_logging(interactive: bool) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to stderr and
                            to a rotating log file.
    """
    if logger.handlers:
        return

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        try:
            LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=MAX_LOG_SIZE,
                backupCount=5,
            )
        except OSError as e:
            logger.warning(f"Could not open log file {LOG_FILE}: {e}")
            return
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


class SyncDaemon:
    """Runs the scheduler on a worker thread and owns the shutdown path.

    Attributes:
        repo (GitRepo): The watched repository.
        config (Config): The effective configuration.
        action (SyncAction): The shared, lock-guarded sync action.
        scheduler (SyncScheduler): The debounce loop.
    """

    def __init__(
        self, repo: GitRepo, config: Config, clock: Callable[[], float] = time.time
    ):
        self.repo = repo
        self.config = config
        self.action = SyncAction(repo, config.core)
        self.scheduler = SyncScheduler(
            config.scheduler, ChangeObserver(repo, clock=clock), self.action, clock
        )
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None

    def request_stop(self, signum: int, _frame: FrameType | None = None) -> None:
        """Signal handler: asks the scheduler to stop at its next iteration boundary."""
        logger.info(
            f"Received {signal.Signals(signum).name}, saving changes and stopping..."
        )
        self._stop.set()

    def start(self) -> None:
        """Starts the scheduler loop on a worker thread."""
        self._worker = threading.Thread(
            target=self.scheduler.run,
            args=(self._stop,),
            name=f"{APP_NAME}-scheduler",
            daemon=True,
        )
        self._worker.start()

    def shutdown(self) -> None:
        """Stops the loop and runs one final sync.

        The worker is joined first, so an in-flight sync finishes before the
        final one starts.
        """
        self._stop.set()
        if self._worker is not None:
            self._worker.join()
        self.action.run()

    def serve(self) -> int:
        """Blocks until a stop is requested, then shuts down.

        Returns:
            int: The process exit status.
        """
        self.start()
        # Timed waits keep the main thread responsive to signals.
        while not self._stop.wait(timeout=1.0):
            pass
        self.shutdown()
        return EXIT_ON_SIGNAL


def main(repo_path: Path | None = None) -> None:
    """Watches the repository in the current directory until interrupted.

    Args:
        repo_path (Path | None, optional): Repository root. Defaults to the
                                           current working directory.
    """
    root = repo_path or Path.cwd()
    if not (root / GIT_DIR).exists():
        err_console.print(
            "[bold red]ERROR:[/bold red] not in git root directory "
            f"({GIT_DIR} directory not found)"
        )
        sys.exit(1)

    setup_logging(interactive=False)
    config = Config.load(root)
    repo = GitRepo(root)

    pull_updates(repo, config.core)

    daemon = SyncDaemon(repo, config)
    signal.signal(signal.SIGINT, daemon.request_stop)
    signal.signal(signal.SIGTERM, daemon.request_stop)

    sys.exit(daemon.serve())


if __name__ == "__main__":
    main()
