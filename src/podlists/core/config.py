"""Configuration management for podlists.

Handles TOML configuration loading from local and global paths, with an
environment variable override for the evaluation time zone.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from podlists.core.errors import ConfigError
from podlists.core.periods import EvaluationContext, Weekday
from podlists.core.rules import DEFAULT_REFRESH_INTERVAL, SortBy

logger = logging.getLogger(__name__)

# Configuration file paths
LOCAL_CONFIG_PATH = Path(".podlists/config")
GLOBAL_CONFIG_PATH = Path.home() / ".podlists" / "config"

TIMEZONE_ENV_VAR = "PODLISTS_TIMEZONE"

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "evaluation": {
        "week_start": Weekday.MONDAY.value,
        "timezone": "",
    },
    "smart_lists": {
        "default_sort": SortBy.PUB_DATE_NEWEST.value,
        "refresh_interval": int(DEFAULT_REFRESH_INTERVAL),
        "max_episodes": 0,
    },
    "search": {
        "include_archived": False,
    },
}


@dataclass
class EvaluationConfig:
    """Clock and calendar settings for rule evaluation."""

    week_start: Weekday = Weekday.MONDAY
    timezone: str = ""


@dataclass
class SmartListConfig:
    """Defaults for smart list files that leave sort_by or refresh_interval out."""

    default_sort: SortBy = SortBy.PUB_DATE_NEWEST
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    max_episodes: int = 0  # 0 = unbounded

    @property
    def episode_limit(self) -> int | None:
        return self.max_episodes or None


@dataclass
class SearchConfig:
    include_archived: bool = False


@dataclass
class Config:
    """Main configuration container.

    Loaded from local and global config files, with the PODLISTS_TIMEZONE
    environment variable overriding the configured time zone.
    """

    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    smart_lists: SmartListConfig = field(default_factory=SmartListConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    def get_timezone_name(self) -> str:
        """Get the time zone name with environment variable precedence."""
        env_tz = os.environ.get(TIMEZONE_ENV_VAR, "")
        if env_tz:
            return env_tz
        return self.evaluation.timezone

    def get_timezone(self) -> tzinfo | None:
        """Resolve the configured time zone, None for system local time.

        Raises:
            ConfigError: If the name is not a known IANA time zone.
        """
        name = self.get_timezone_name()
        if not name:
            return None
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown time zone '{name}'") from e

    def evaluation_context(self, now: datetime | None = None) -> EvaluationContext:
        """Build the evaluation context rule sets are evaluated against.

        Args:
            now: Pin the current moment, e.g. in tests. It is converted to the
                configured time zone when one is set.
        """
        tz = self.get_timezone()
        week_start = self.evaluation.week_start
        if now is None:
            return EvaluationContext.current(tz, week_start)
        if tz is not None and now.tzinfo is not None:
            now = now.astimezone(tz)
        return EvaluationContext(now=now, week_start=week_start)


def _generate_default_config_toml() -> str:
    """Generate default configuration as TOML string."""
    return """# podlists configuration file

[evaluation]
# First day of "this week" and "last week"
week_start = "monday"
# IANA time zone name, empty for system local time
# Environment variable PODLISTS_TIMEZONE takes precedence
timezone = ""

[smart_lists]
# Default sort order: pubDate_desc, pubDate_asc, duration, title,
# playStatus, downloadStatus, rating, dateAdded
default_sort = "pubDate_desc"
# Seconds between automatic refreshes
refresh_interval = 300
# Maximum episodes per list, 0 for no limit
max_episodes = 0

[search]
# Include archived episodes in search results
include_archived = false
"""


def _ensure_local_config_exists(local_path: Path) -> None:
    """Create local config file with defaults if it doesn't exist."""
    if not local_path.exists():
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_text(_generate_default_config_toml())


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load and parse a TOML configuration file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed configuration dictionary, empty if the file does not exist.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text()
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file {path}: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _warn_unknown_keys(config_dict: dict[str, Any]) -> None:
    for section, values in config_dict.items():
        if section not in DEFAULT_CONFIG:
            logger.warning("Ignoring unknown config section [%s]", section)
            continue
        if not isinstance(values, dict):
            raise ConfigError(f"[{section}] must be a table, got {type(values).__name__}")
        for key in values:
            if key not in DEFAULT_CONFIG[section]:
                logger.warning("Ignoring unknown config key %s.%s", section, key)


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values.

    Raises:
        ConfigError: If configuration values are invalid.
    """
    _warn_unknown_keys(config_dict)

    evaluation = config_dict["evaluation"]
    week_start = evaluation["week_start"]
    if week_start not in {day.value for day in Weekday}:
        raise ConfigError(
            f"Invalid evaluation.week_start '{week_start}'. "
            f"Valid options: {', '.join(day.value for day in Weekday)}"
        )
    if not isinstance(evaluation["timezone"], str):
        raise ConfigError(
            f"evaluation.timezone must be a string, got {type(evaluation['timezone']).__name__}"
        )

    smart_lists = config_dict["smart_lists"]
    default_sort = smart_lists["default_sort"]
    if default_sort not in {order.value for order in SortBy}:
        raise ConfigError(
            f"Invalid smart_lists.default_sort '{default_sort}'. "
            f"Valid options: {', '.join(order.value for order in SortBy)}"
        )

    # bool is an int subclass, so reject it explicitly
    interval = smart_lists["refresh_interval"]
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < 0:
        raise ConfigError(
            f"smart_lists.refresh_interval must be a non-negative number, got {interval!r}"
        )
    max_episodes = smart_lists["max_episodes"]
    if isinstance(max_episodes, bool) or not isinstance(max_episodes, int) or max_episodes < 0:
        raise ConfigError(
            f"smart_lists.max_episodes must be a non-negative integer, got {max_episodes!r}"
        )

    include_archived = config_dict["search"]["include_archived"]
    if not isinstance(include_archived, bool):
        raise ConfigError(
            f"search.include_archived must be a boolean, got {type(include_archived).__name__}"
        )


def _dict_to_config(config_dict: dict[str, Any]) -> Config:
    """Convert a validated configuration dictionary to a Config dataclass."""
    evaluation = config_dict["evaluation"]
    smart_lists = config_dict["smart_lists"]
    search = config_dict["search"]

    return Config(
        evaluation=EvaluationConfig(
            week_start=Weekday(evaluation["week_start"]),
            timezone=evaluation["timezone"],
        ),
        smart_lists=SmartListConfig(
            default_sort=SortBy(smart_lists["default_sort"]),
            refresh_interval=float(smart_lists["refresh_interval"]),
            max_episodes=smart_lists["max_episodes"],
        ),
        search=SearchConfig(include_archived=search["include_archived"]),
    )


def load_config(
    local_path: Path | None = None,
    global_path: Path | None = None,
    auto_create_local: bool = True,
) -> Config:
    """Load configuration from local and global config files.

    Configuration priority (highest to lowest):
    1. Local config file (.podlists/config in current directory)
    2. Global config file ($HOME/.podlists/config)
    3. Default values

    If no configuration exists, creates local config with defaults.
    The global config is never auto-created.

    Args:
        local_path: Override path for local config file.
        global_path: Override path for global config file.
        auto_create_local: If True, create local config with defaults if no config exists.

    Returns:
        Config object with merged configuration values.

    Raises:
        ConfigError: If configuration files are invalid.
    """
    local_path = local_path or LOCAL_CONFIG_PATH
    global_path = global_path or GLOBAL_CONFIG_PATH

    merged_config = {section: values.copy() for section, values in DEFAULT_CONFIG.items()}

    global_config = _load_toml_file(global_path)
    if global_config:
        merged_config = _deep_merge(merged_config, global_config)

    local_config = _load_toml_file(local_path)
    if local_config:
        merged_config = _deep_merge(merged_config, local_config)

    if auto_create_local and not local_config and not global_config:
        logger.debug("No configuration found, creating %s", local_path)
        _ensure_local_config_exists(local_path)

    _validate_config(merged_config)

    return _dict_to_config(merged_config)


def get_config() -> Config:
    """Get the application configuration using default paths.

    Raises:
        ConfigError: If configuration files are invalid.
    """
    return load_config()
