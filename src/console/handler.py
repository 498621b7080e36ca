"""Line handler that filters, formats and writes followed lines."""

import logging
import re
import threading
from datetime import datetime, tzinfo
from typing import Optional, TextIO

from src.trail.models import Line

logger = logging.getLogger(__name__)


def format_time(timestamp: float, tz: Optional[tzinfo] = None) -> str:
    """
    Format a timestamp like ``Jan 2, 2006 at 3:04pm (MST)``.

    Args:
        timestamp: Unix timestamp
        tz: Time zone; local time when omitted
    """
    if tz is None:
        dt = datetime.fromtimestamp(timestamp).astimezone()
    else:
        dt = datetime.fromtimestamp(timestamp, tz)
    hour = dt.hour % 12 or 12
    suffix = "am" if dt.hour < 12 else "pm"
    return f"{dt:%b} {dt.day}, {dt.year} at {hour}:{dt:%M}{suffix} ({dt:%Z})"


class LineWriter:
    """
    Handler writing matching lines to an output stream.

    Lines matching ``line_ignore_pattern`` are dropped. When
    ``line_pattern`` is set only matching lines are kept. Each written line
    is prefixed, in this order and when enabled, with ``[path]``,
    ``[time]`` and ``[desc]``.

    Writes from different follower threads are serialized.
    """

    def __init__(
        self,
        out: TextIO,
        line_pattern: Optional[re.Pattern] = None,
        line_ignore_pattern: Optional[re.Pattern] = None,
        prefix_path: bool = True,
        prefix_time: bool = False,
        desc: str = "",
        tz: Optional[tzinfo] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.out = out
        self.line_pattern = line_pattern
        self.line_ignore_pattern = line_ignore_pattern
        self.prefix_path = prefix_path
        self.prefix_time = prefix_time
        self.desc = desc
        self.tz = tz
        self.logger = log or logger
        self._lock = threading.Lock()

    def __call__(self, line: Line) -> None:
        if line.err is not None:
            return
        if self.line_ignore_pattern is not None and self.line_ignore_pattern.search(line.text):
            return
        if self.line_pattern is not None and not self.line_pattern.search(line.text):
            return
        self.write(self.format(line))

    def format(self, line: Line) -> str:
        output = ""
        if self.prefix_path:
            output += f"[{line.path}] "
        if self.prefix_time:
            output += f"[{format_time(line.timestamp, self.tz)}] "
        if self.desc:
            output += f"[{self.desc}] "
        return output + line.text

    def write(self, text: str) -> None:
        """Write one output line; failures are logged."""
        with self._lock:
            try:
                self.out.write(text + "\n")
                self.out.flush()
            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to write output: {e}")
