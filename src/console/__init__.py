"""
Console application around the trail package: configuration, output and
process guard.
"""

from .config import (
    AppConfig,
    WatchConfig,
    load_config,
    parse_config,
    parse_duration,
    resolve_log_level,
    compile_pattern,
    build_trail_options,
)
from .exceptions import ConsoleError, ConfigError, PidFileError
from .handler import LineWriter, format_time
from .pidfile import write_pid_file, remove_pid_file, read_pid, is_running


__all__ = [
    "AppConfig",
    "WatchConfig",
    "load_config",
    "parse_config",
    "parse_duration",
    "resolve_log_level",
    "compile_pattern",
    "build_trail_options",
    "ConsoleError",
    "ConfigError",
    "PidFileError",
    "LineWriter",
    "format_time",
    "write_pid_file",
    "remove_pid_file",
    "read_pid",
    "is_running",
]
