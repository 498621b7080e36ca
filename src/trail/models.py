"""Data models for the trail package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
import time


class FileOp(Enum):
    """Kinds of filesystem change reported by a watcher."""
    CREATE = "create"
    REMOVE = "remove"
    RENAME = "rename"
    WRITE = "write"
    OTHER = "other"


class FollowMode(Enum):
    """
    Where a follower starts reading.

    EXISTING files were already present when following began, so only
    content appended afterwards is read. NEW files appeared later and are
    read from their first byte.
    """
    EXISTING = "existing"
    NEW = "new"


@dataclass(frozen=True)
class FileEvent:
    """
    A filesystem change inside a watched directory.

    Attributes:
        path: Path of the affected file
        op: What happened to it
        timestamp: Unix timestamp when the event was observed
    """
    path: Path
    op: FileOp
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "path": str(self.path),
            "op": self.op.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileEvent":
        """Create from dictionary."""
        return cls(
            path=Path(data["path"]),
            op=FileOp(data["op"]),
            timestamp=data.get("timestamp", time.time()),
        )


@dataclass(frozen=True)
class TailLine:
    """One line (or one failure) produced by a tailer."""
    text: str
    timestamp: float = field(default_factory=time.time)
    err: Optional[BaseException] = None


@dataclass(frozen=True)
class Line:
    """
    A log line read from a followed file.

    Attributes:
        path: File the line was read from
        text: Line content without the trailing newline
        timestamp: Unix timestamp when the line was read
        err: Set when the tailer failed; the follower stops after this line
    """
    path: Path
    text: str
    timestamp: float = field(default_factory=time.time)
    err: Optional[BaseException] = None

    @classmethod
    def from_tail_line(cls, path: Path, tail_line: TailLine) -> "Line":
        return cls(
            path=path,
            text=tail_line.text,
            timestamp=tail_line.timestamp,
            err=tail_line.err,
        )


LineHandler = Callable[[Line], None]
