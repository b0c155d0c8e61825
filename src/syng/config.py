import logging
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, ClassVar

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_SYNC_AFTER_MS,
    DELETED_AGE_PADDING_MS,
    ENV_FORCE_SYNC_AFTER,
    ENV_SYNC_AFTER,
    FORCE_SYNC_FACTOR,
    LOCAL_CONFIG_NAME,
)

logger = logging.getLogger(APP_NAME)


def parse_duration(value: int | str) -> int:
    """Converts human-readable durations (e.g., '500ms', '30s', '5m') to milliseconds."""
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(ms|s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid duration format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "ms": 1,
        "s": 1000,
        "sec": 1000,
        "m": 60_000,
        "min": 60_000,
        "h": 3_600_000,
        "hr": 3_600_000,
    }
    return int(num * multiplier[unit])


@dataclass
class CoreConfig:
    """Core git settings.

    Attributes:
        remote_name (str | None): Remote used for pull/push. None lets git pick
            the branch's upstream.
        commit_message (str): Commit message template. '{timestamp}' is expanded.
    """

    remote_name: str | None = None
    commit_message: str = "Update"


@dataclass
class SchedulerConfig:
    """Debounce settings for the sync scheduler.

    Attributes:
        sync_after_ms (int): Quiet period before a sync is triggered.
        force_sync_after_ms (int | None): Hard ceiling on how long pending
            changes may wait. None means FORCE_SYNC_FACTOR x sync_after_ms.
    """

    sync_after_ms: int = DEFAULT_SYNC_AFTER_MS
    force_sync_after_ms: int | None = None

    @property
    def sync_after(self) -> float:
        """float: The debounce window in seconds."""
        return self.sync_after_ms / 1000

    @property
    def force_sync_after(self) -> float:
        """float: The force-sync ceiling in seconds."""
        if self.force_sync_after_ms is None:
            return FORCE_SYNC_FACTOR * self.sync_after
        return self.force_sync_after_ms / 1000

    @property
    def deleted_age(self) -> float:
        """float: The fixed age (seconds) assigned to deleted paths."""
        return (self.sync_after_ms + DELETED_AGE_PADDING_MS) / 1000


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        core (CoreConfig): Git settings.
        scheduler (SchedulerConfig): Debounce settings.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    # Cache for the base global configuration
    _global_cache: ClassVar["Config | None"] = None

    @classmethod
    def load(
        cls, repo_path: Path | None = None, environ: Mapping[str, str] | None = None
    ) -> "Config":
        """Loads and merges configuration from defaults, files and the environment.

        Args:
            repo_path (Path | None): The repository root to search for local config.
            environ (Mapping[str, str] | None): Environment to read overrides
                from. Defaults to os.environ.

        Returns:
            Config: The fully merged configuration object.
        """
        # 1. Load or Retrieve Global Config
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        instance = replace(
            cls._global_cache,
            core=replace(cls._global_cache.core),
            scheduler=replace(cls._global_cache.scheduler),
        )

        # 2. Load Local Config (if applicable)
        if repo_path:
            local_toml = repo_path / LOCAL_CONFIG_NAME
            pyproject = repo_path / "pyproject.toml"

            if local_toml.exists():
                instance._merge_from_file(local_toml)
            elif pyproject.exists():
                instance._merge_from_file(pyproject, section="tool.syng")

        # 3. Environment overrides win over every file.
        instance._merge_from_env(os.environ if environ is None else environ)
        return instance

    def _merge_from_file(self, path: Path, section: str | None = None) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
            section (str | None): Dot-separated section path (e.g., 'tool.syng').
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if section:
                for key in section.split("."):
                    data = data.get(key, {})

            if not data:
                return

            if "core" in data:
                self.core = self._update_dataclass("core", self.core, data["core"])
            if "scheduler" in data:
                self.scheduler = self._update_dataclass(
                    "scheduler", self.scheduler, data["scheduler"]
                )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    def _merge_from_env(self, environ: Mapping[str, str]) -> None:
        """Applies the millisecond overrides from the environment."""
        sync_after = _read_ms_env(environ, ENV_SYNC_AFTER)
        if sync_after is not None:
            logger.info(f"{ENV_SYNC_AFTER} set: syncing after {sync_after} ms")
            self.scheduler = replace(self.scheduler, sync_after_ms=sync_after)

        force_sync_after = _read_ms_env(environ, ENV_FORCE_SYNC_AFTER)
        if force_sync_after is not None:
            logger.info(
                f"{ENV_FORCE_SYNC_AFTER} set: force syncing after {force_sync_after} ms"
            )
            self.scheduler = replace(
                self.scheduler, force_sync_after_ms=force_sync_after
            )

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing durations."""
        # TOML keys drop the unit suffix the dataclass fields carry.
        aliases = {
            "sync_after": "sync_after_ms",
            "force_sync_after": "force_sync_after_ms",
        }
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = {k for k in updates if aliases.get(k, k) not in valid_keys}
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            name = aliases.get(k, k)
            if name not in valid_keys:
                continue

            try:
                if name in ["sync_after_ms", "force_sync_after_ms"]:
                    filtered_updates[name] = _positive(parse_duration(v))
                else:
                    filtered_updates[name] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)


def _positive(value: int) -> int:
    if value <= 0:
        raise ValueError(f"Duration must be positive, got {value}")
    return value


def _read_ms_env(environ: Mapping[str, str], key: str) -> int | None:
    """Reads a positive integer millisecond value, logging and ignoring bad input."""
    raw = environ.get(key, "")
    if not raw:
        return None
    try:
        return _positive(int(raw))
    except ValueError as e:
        logger.warning(f"Error interpreting {key} ({raw!r}) as milliseconds: {e}")
        return None
