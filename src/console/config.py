"""
Configuration for the console application.

Configuration lives in a TOML file with global settings and one
``[[watch]]`` table per group of directories::

    log = "logtrail.log"
    log_level = "info"
    poll = false
    prefix_time = false
    prefix_path = true

    [[watch]]
    paths = ["/var/log/app"]
    file_pattern = "\\.log$"
    file_ignore_pattern = "\\.gz$"
    file_ignore_duration = "168h"
    file_follow_duration = "24h"
    path_pattern = ""
    line_pattern = "ERROR"
    line_ignore_pattern = "healthcheck"
    out = "errors.log"
    desc = "app"

Keys are matched ignoring case and underscores, so ``FilePattern`` and
``file_pattern`` are the same key.
"""

import logging
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from src.trail.config import DEFAULT_MAX_AGE, TrailOptions

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


LOG_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


@dataclass
class WatchConfig:
    """
    One group of directories followed with the same rules.

    Attributes:
        paths: Directories to watch
        file_pattern: Only follow file names matching this regex
        file_ignore_pattern: Never follow file names matching this regex
        file_ignore_duration: Ignore files older than this many seconds
        file_follow_duration: Unfollow files older than this many seconds
        path_pattern: Only follow files whose directory matches this regex
        line_pattern: Only output lines matching this regex
        line_ignore_pattern: Drop lines matching this regex
        out: File to append output to; stdout when empty
        desc: Label added to every output line
    """
    paths: List[Path] = field(default_factory=list)
    file_pattern: str = ""
    file_ignore_pattern: str = ""
    file_ignore_duration: Optional[float] = None
    file_follow_duration: Optional[float] = None
    path_pattern: str = ""
    line_pattern: str = ""
    line_ignore_pattern: str = ""
    out: str = ""
    desc: str = ""


@dataclass
class AppConfig:
    """
    Global application settings.

    Attributes:
        watches: Watch groups
        log: File receiving the application's own log; stderr when unset
        poll: Poll for changes instead of using native notifications
        log_level: Logging level name
        prefix_time: Prefix the read time to every output line
        prefix_path: Prefix the file path to every output line
    """
    watches: List[WatchConfig] = field(default_factory=list)
    log: Optional[Path] = None
    poll: bool = False
    log_level: str = "info"
    prefix_time: bool = False
    prefix_path: bool = True


def _norm(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


_WATCH_KEYS = {_norm(f.name): f.name for f in fields(WatchConfig)}
_APP_KEYS = {_norm(f.name): f.name for f in fields(AppConfig)}
_APP_KEYS["watch"] = "watches"
_APP_KEYS["pool"] = "poll"


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) and duration strings such as ``"300ms"``,
    ``"1.5h"`` or ``"2h45m"``.

    Raises:
        ConfigError: If the value is not a valid duration
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ConfigError(f"Invalid duration: {value!r}")

    text = value.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        raise ConfigError(f"Invalid duration: {value!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ConfigError(f"Invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def resolve_log_level(name: str) -> int:
    """
    Map a level name to a logging level.

    Raises:
        ConfigError: If the name is unknown
    """
    try:
        return LOG_LEVELS[name.strip().lower()]
    except KeyError:
        raise ConfigError(f"Unknown log level: {name!r}") from None


def _normalize_table(table: Dict[str, Any], known: Dict[str, str], where: str) -> Dict[str, Any]:
    result = {}
    for key, value in table.items():
        name = known.get(_norm(key))
        if name is None:
            logger.warning(f"Unknown key '{key}' in {where}, ignored")
            continue
        result[name] = value
    return result


def _parse_watch(table: Dict[str, Any], index: int) -> WatchConfig:
    if not isinstance(table, dict):
        raise ConfigError(f"watch #{index} must be a table")
    data = _normalize_table(table, _WATCH_KEYS, f"watch #{index}")

    paths = data.pop("paths", [])
    if isinstance(paths, str):
        paths = [paths]
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        raise ConfigError(f"watch #{index}: paths must be a list of strings")

    for key in ("file_ignore_duration", "file_follow_duration"):
        if key in data:
            data[key] = parse_duration(data[key])

    for key, value in data.items():
        if key.endswith("_duration"):
            continue
        if not isinstance(value, str):
            raise ConfigError(f"watch #{index}: {key} must be a string")

    return WatchConfig(paths=[Path(p).expanduser() for p in paths], **data)


def parse_config(data: Dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from decoded TOML.

    Raises:
        ConfigError: If a value has the wrong type
    """
    data = _normalize_table(data, _APP_KEYS, "config")

    watches = data.pop("watches", [])
    if isinstance(watches, dict):
        watches = [watches]
    if not isinstance(watches, list):
        raise ConfigError("watch must be an array of tables")

    config = AppConfig(watches=[_parse_watch(w, i) for i, w in enumerate(watches)])

    if data.get("log"):
        config.log = Path(data["log"]).expanduser()
    for key in ("poll", "prefix_time", "prefix_path"):
        if key in data:
            if not isinstance(data[key], bool):
                raise ConfigError(f"{key} must be true or false")
            setattr(config, key, data[key])
    if data.get("log_level"):
        resolve_log_level(data["log_level"])
        config.log_level = data["log_level"]

    return config


def load_config(path: Union[str, Path]) -> AppConfig:
    """
    Load the application configuration from a TOML file.

    Args:
        path: Configuration file

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    return parse_config(data)


def compile_pattern(
    pattern: str,
    name: str,
    log: Optional[logging.Logger] = None,
) -> Optional[re.Pattern]:
    """
    Compile an optional regex from the configuration.

    An invalid regex is logged and treated as unset.

    Returns:
        The compiled regex, or None if empty or invalid
    """
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        (log or logger).error(f"Invalid {name} {pattern!r}: {e}")
        return None


def _age_or_default(value: Optional[float]) -> float:
    if value is None or value <= 0:
        return DEFAULT_MAX_AGE
    return value


def build_trail_options(
    watch: WatchConfig,
    app: AppConfig,
    log: Optional[logging.Logger] = None,
) -> TrailOptions:
    """
    Build the trail options for one watch group.

    Missing or non-positive durations fall back to seven days.
    """
    log = log or logger
    return TrailOptions(
        poll_changes=app.poll,
        file_include=compile_pattern(watch.file_pattern, "file_pattern", log),
        file_exclude=compile_pattern(watch.file_ignore_pattern, "file_ignore_pattern", log),
        path_include=compile_pattern(watch.path_pattern, "path_pattern", log),
        ignore_if_older_than=_age_or_default(watch.file_ignore_duration),
        unfollow_if_older_than=_age_or_default(watch.file_follow_duration),
        logger=log,
    )
