"""Configuration for the trail package."""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

DAY = 24 * 60 * 60
DEFAULT_MAX_AGE = 7 * DAY


def _default_logger() -> logging.Logger:
    return logging.getLogger("src.trail")


@dataclass(frozen=True)
class TrailOptions:
    """
    Configuration options for a trail.

    Regexes are compiled by the caller. Ages are in seconds; ``None``
    switches the corresponding age policy off, while ``0`` is honoured
    literally.

    Attributes:
        poll_changes: Poll files and directories instead of relying on
            native change notifications
        file_include: Only follow files whose name matches
        file_exclude: Never follow files whose name matches
        path_include: Only follow files whose directory matches
        ignore_if_older_than: Skip files not modified within this age
        unfollow_if_older_than: Stop following files not modified within
            this age (checked every ``sweep_interval``)
        sweep_interval: Seconds between staleness sweeps
        poll_interval: Seconds between tailer reads in poll mode
        notify_timeout: Longest a tailer waits for a wake-up in notify mode
        stop_timeout: Longest to wait for a thread to finish when stopping
        logger: Logger receiving file events and errors
    """
    poll_changes: bool = False
    file_include: Optional[re.Pattern] = None
    file_exclude: Optional[re.Pattern] = None
    path_include: Optional[re.Pattern] = None
    ignore_if_older_than: Optional[float] = DEFAULT_MAX_AGE
    unfollow_if_older_than: Optional[float] = DEFAULT_MAX_AGE
    sweep_interval: float = 10.0
    poll_interval: float = 0.25
    notify_timeout: float = 1.0
    stop_timeout: float = 5.0
    logger: logging.Logger = field(default_factory=_default_logger)

    def __post_init__(self):
        if self.sweep_interval <= 0:
            raise ValueError(f"sweep_interval must be positive: {self.sweep_interval}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive: {self.poll_interval}")
        if self.notify_timeout <= 0:
            raise ValueError(f"notify_timeout must be positive: {self.notify_timeout}")
        if self.stop_timeout <= 0:
            raise ValueError(f"stop_timeout must be positive: {self.stop_timeout}")
        if self.logger is None:
            object.__setattr__(self, "logger", _default_logger())
