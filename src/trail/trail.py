"""Trail: follows every log file of a watched directory."""

import queue
import threading
from pathlib import Path
from typing import List, Optional

from .config import TrailOptions
from .event_loop import EventLoop
from .exceptions import (
    InitialListingError,
    SpawnError,
    TrailAlreadyFollowingError,
    TrailEndedError,
    WatcherError,
)
from .follower import Follower, TailerFactory
from .models import FileEvent, FollowMode, LineHandler
from .policy import PolicyFilter
from .pool import FollowerPool
from .sweeper import StalenessSweeper
from .tailer import Tailer
from .watcher import Watcher


class Trail:
    """
    A log trail that can be followed for new lines.

    In conjunction with a Watcher, a Trail monitors existing and new files
    in a directory. Files present when following starts are read from
    their end, files created later from their beginning. Every line goes
    to the handler given to ``follow()``.

    A trail is followed at most once and ended at most once; ``end()``
    stops the watcher, the staleness sweeper and every follower.
    """

    def __init__(
        self,
        watcher: Watcher,
        options: Optional[TrailOptions] = None,
        tailer_factory: TailerFactory = Tailer,
    ):
        """
        Initialize the trail.

        Args:
            watcher: Source of files and file events
            options: Trail options; defaults apply when omitted
            tailer_factory: Builds the tailer behind each follower
        """
        self.watcher = watcher
        self.options = options or TrailOptions()
        self.logger = self.options.logger

        self._tailer_factory = tailer_factory
        self._policy = PolicyFilter(self.options)
        self._pool = FollowerPool(self.logger, join_timeout=self.options.stop_timeout)
        self._events: "queue.Queue[FileEvent]" = queue.Queue()
        self._loop = EventLoop(
            self._events,
            watcher,
            self._pool,
            self._policy,
            self._follow,
            self.options,
        )
        self._sweeper: Optional[StalenessSweeper] = None
        if self.options.unfollow_if_older_than is not None:
            self._sweeper = StalenessSweeper(self._pool, self.options)

        self._handler: Optional[LineHandler] = None
        self._ended = False
        self._lock = threading.Lock()

    def follow(self, handler: LineHandler) -> None:
        """
        Start following the trail. Returns immediately.

        Every time a followed file grows, its new lines are passed to the
        handler, one call per line. The handler could do something as
        simple as printing the lines, or ship them to a log server.

        Args:
            handler: Receives every line of every followed file

        Raises:
            InitialListingError: If the watched files cannot be listed
            TrailAlreadyFollowingError: If follow() was already called
            TrailEndedError: If the trail was ended
            WatcherError: If watching could not start; the trail is ended
        """
        with self._lock:
            if self._ended:
                raise TrailEndedError("Trail has been ended")
            if self._handler is not None:
                raise TrailAlreadyFollowingError("Trail is already following")

            self.logger.info(f"Now watching {self.watcher}")
            self._handler = handler

            # Events queue up from here until the loop starts.
            try:
                self.watcher.watch(self._events)
            except (OSError, WatcherError) as e:
                self.logger.error(f"Failed to watch directory: {e}")
                self._ended = True
                self.watcher.end()
                raise WatcherError(f"Failed to watch: {e}") from e

            try:
                files = self.watcher.walk()
            except OSError as e:
                self.logger.error(f"Failed to walk directory: {e}")
                self._ended = True
                self.watcher.end()
                raise InitialListingError(f"Failed to list files: {e}") from e

            for path in files:
                if self._policy.should_ignore(path):
                    self.logger.debug(f"Ignored: {path}")
                    continue
                self._follow(path, FollowMode.EXISTING)

            self._loop.start()
            if self._sweeper is not None:
                self._sweeper.start()

    def end(self) -> bool:
        """
        Stop following. Only the first call has an effect.

        When this returns no follower of this trail is running, unless one
        was stuck in its handler past ``stop_timeout``, and no further line
        is delivered.

        Returns:
            True if this call ended the trail, False if it was already ended
        """
        with self._lock:
            if self._ended:
                return False
            self._ended = True

        self.logger.info("Stopping...")

        if self._sweeper is not None:
            self._sweeper.stop()

        if not self._loop.stop():
            self.logger.warning(f"Event loop did not stop within {self.options.stop_timeout}s")

        # Covers a loop that has not finished its own shutdown yet.
        self.watcher.end()
        self._pool.close()
        return True

    def followed_paths(self) -> List[Path]:
        """
        Get the files currently followed.

        Returns:
            Sorted list of paths
        """
        return self._pool.paths()

    @property
    def pool(self) -> FollowerPool:
        return self._pool

    @property
    def is_following(self) -> bool:
        """Check if the trail was followed and not ended."""
        with self._lock:
            return self._handler is not None and not self._ended

    @property
    def is_ended(self) -> bool:
        with self._lock:
            return self._ended

    def _follow(self, path: Path, mode: FollowMode) -> bool:
        """Start a follower for a path; failures are logged and not retried."""
        handler = self._handler

        def factory(p: Path) -> Follower:
            return Follower.spawn(
                p,
                mode,
                handler,
                self.options,
                on_exit=self._pool.release,
                tailer_factory=self._tailer_factory,
            )

        try:
            return self._pool.spawn(path, factory) is not None
        except SpawnError as e:
            self.logger.error(f"Failed to follow, skipping it (no retry): {e}")
            return False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end()
        return False
