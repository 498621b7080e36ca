"""
Trail Package

Follows log files in watched directories and streams their new lines to
a handler.

Features:
- Existing files are followed from their end, new files from their start
- Name, directory and age based ignore rules
- Followers stop when their file is removed
- Quiet files are unfollowed by a periodic staleness sweep
- Native change notifications or polling, via watchdog
"""

from .models import (
    FileOp,
    FollowMode,
    FileEvent,
    TailLine,
    Line,
    LineHandler,
)

from .config import TrailOptions

from .exceptions import (
    TrailError,
    InitialListingError,
    SpawnError,
    WatcherError,
    TrailAlreadyFollowingError,
    TrailEndedError,
)

from .policy import PolicyFilter
from .tailer import Tailer
from .follower import Follower
from .pool import FollowerPool, FollowerHandle
from .watcher import Watcher, DirectoryWatcher, FileEventHandler
from .event_loop import EventLoop
from .sweeper import StalenessSweeper
from .trail import Trail


__all__ = [
    # Models
    "FileOp",
    "FollowMode",
    "FileEvent",
    "TailLine",
    "Line",
    "LineHandler",
    # Config
    "TrailOptions",
    # Exceptions
    "TrailError",
    "InitialListingError",
    "SpawnError",
    "WatcherError",
    "TrailAlreadyFollowingError",
    "TrailEndedError",
    # Components
    "PolicyFilter",
    "Tailer",
    "Follower",
    "FollowerPool",
    "FollowerHandle",
    "Watcher",
    "DirectoryWatcher",
    "FileEventHandler",
    "EventLoop",
    "StalenessSweeper",
    # Facade
    "Trail",
]

__version__ = "0.2.5"
