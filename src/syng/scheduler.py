"""The adaptive debounce loop that decides when to sync.

Two deadlines compete on every iteration: the quiet period (`sync_after`),
which closes once no path has been touched for that long, and the force-sync
ceiling (`force_sync_after`), measured from the start of the current burst of
edits. The scheduler always sleeps until the nearer of the two and then
re-evaluates, so continuous edits are batched without ever being deferred
forever.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from .config import SchedulerConfig
from .constants import APP_NAME
from .observer import ChangeRecord

logger = logging.getLogger(APP_NAME)


class Observer(Protocol):
    """Anything that can report the pending changes of a working tree."""

    def list_changes(self) -> list[ChangeRecord]: ...


@dataclass
class SyncState:
    """Debounce state owned by the scheduler.

    Attributes:
        last_sync_time (float): Anchor for the force-sync ceiling. Back-dated to
            the start of a burst when the first pending change is seen.
        clean (bool): True when no unsynced change is known.
    """

    last_sync_time: float
    clean: bool = True


def shortest_age(
    changes: Iterable[ChangeRecord], now: float, config: SchedulerConfig
) -> float:
    """Returns the age of the most recently touched pending change.

    Deleted paths count as exactly old enough to be synced, so a deletion
    never extends the quiet period on its own. Modification times in the
    future are treated as brand new edits.

    Args:
        changes (Iterable[ChangeRecord]): The pending changes. Must not be empty.
        now (float): The current time (epoch seconds).
        config (SchedulerConfig): Supplies the deleted-path age.

    Returns:
        float: The smallest age in seconds.
    """
    return min(
        config.deleted_age if c.deleted else max(0.0, now - c.modified_at)
        for c in changes
    )


class SyncScheduler:
    """Decides when to trigger the sync action for a stream of observations.

    Attributes:
        config (SchedulerConfig): Debounce window and force-sync ceiling.
        observer (Observer): Source of pending changes.
        state (SyncState): The current debounce state.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        observer: Observer,
        sync: Callable[[], object],
        clock: Callable[[], float] = time.time,
    ):
        """Initializes the scheduler in the clean state.

        Args:
            config (SchedulerConfig): Debounce settings.
            observer (Observer): Anything with a `list_changes()` method.
            sync (Callable[[], object]): The sync action. Its return value is
                ignored; failures are expected to be logged by the action itself.
            clock (Callable[[], float], optional): Wall-clock source comparable
                with file modification times. Defaults to time.time.
        """
        self.config = config
        self.observer = observer
        self._sync = sync
        self._clock = clock
        self.state = SyncState(last_sync_time=clock())

    def step(self) -> float:
        """Runs one iteration of the debounce state machine.

        Returns:
            float: Seconds to sleep before the next iteration.
        """
        sync_after = self.config.sync_after
        force_sync_after = self.config.force_sync_after
        state = self.state
        now = self._clock()

        # 1. Force-sync ceiling reached while edits kept coming.
        if not state.clean and now - state.last_sync_time > force_sync_after:
            logger.info("Force sync: pending changes reached the sync ceiling.")
            self._trigger(now)
            return sync_after

        changes = self.observer.list_changes()
        if not changes:
            return sync_after

        shortest = shortest_age(changes, now, self.config)

        # 2. Anchor the ceiling to the start of this burst.
        if state.clean:
            state.last_sync_time = now - shortest
            logger.debug(f"Detected {len(changes)} pending change(s).")
        state.clean = False

        # 3. Quiet period elapsed.
        if shortest > sync_after:
            self._trigger(now)
            return sync_after

        until_force_sync = force_sync_after - (now - state.last_sync_time)
        until_normal_sync = sync_after - shortest
        return max(0.0, min(until_force_sync, until_normal_sync))

    def _trigger(self, now: float) -> None:
        self._sync()
        self.state.clean = True
        self.state.last_sync_time = now

    def run(self, stop: threading.Event) -> None:
        """Loops until `stop` is set.

        Sleeping on the event means a shutdown request cuts the current
        sleep short. An iteration that raises is logged and retried after
        one debounce window.

        Args:
            stop (threading.Event): The shutdown signal.
        """
        logger.info(
            f"Watching for changes (sync after {self.config.sync_after:g}s, "
            f"force sync after {self.config.force_sync_after:g}s)..."
        )
        while not stop.is_set():
            try:
                delay = self.step()
            except Exception:
                logger.exception("LOOP ERROR")
                delay = self.config.sync_after
            stop.wait(delay)
        logger.info("Scheduler stopped.")
