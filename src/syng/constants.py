import os
from pathlib import Path

"""Global constants and path definitions for syng.

This module defines the filesystem layout (XDG state and config directories),
the application identifier, scheduler defaults, and the git markers the daemon
inspects before touching a repository.
"""

# --- Identity ---
APP_NAME = "syng"
"""str: The application name, also used as the logger name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "syng"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The file path for the daemon process logs."""

MAX_LOG_SIZE = 5 * 1024 * 1024
"""int: Max bytes for the log file before rotation."""

CONFIG_DIR: Path = Path.home() / ".config/syng"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The global configuration file path."""

LOCAL_CONFIG_NAME = "syng.toml"
"""str: Per-repository configuration file name."""

# --- Scheduler defaults ---
DEFAULT_SYNC_AFTER_MS = 30000
"""int: Quiet period (ms) after the last change before a sync."""

FORCE_SYNC_FACTOR = 10
"""int: Default force-sync ceiling as a multiple of the debounce window."""

DELETED_AGE_PADDING_MS = 1
"""int: Extra age (ms) granted to deleted paths on top of the debounce window."""

ENV_SYNC_AFTER = "SYNC_AFTER_MS"
ENV_FORCE_SYNC_AFTER = "FORCE_SYNC_AFTER_MS"

# --- Git ---
GIT_DIR = ".git"
"""str: The marker directory identifying a repository root."""

PAUSE_FILE = "syng_paused"
"""str: Marker file inside .git that suspends sync actions."""

GIT_LOCK_FILES = [
    "MERGE_HEAD",
    "REBASE_HEAD",
    "CHERRY_PICK_HEAD",
    "BISECT_LOG",
    "rebase-merge",
    "rebase-apply",
]
"""
list[str]: Git internal files indicating an
active state (merge/rebase) that blocks sync actions.
"""

STALE_LOCK_HOURS = 24
"""int: Age after which an index.lock is reported as stale."""
