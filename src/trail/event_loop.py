"""Control loop turning watcher events into follower pool changes."""

import queue
import threading
from pathlib import Path
from typing import Callable, Optional

from .config import TrailOptions
from .models import FileEvent, FileOp, FollowMode
from .policy import PolicyFilter
from .pool import FollowerPool
from .watcher import Watcher


_SHUTDOWN = object()


class EventLoop:
    """
    Consumes FileEvents on one thread and applies them to the pool.

    - CREATE of a file that passes the policy and is not yet followed
      starts a follower reading from the beginning of the file; a followed
      path that now names a new file (rotation) gets a fresh follower
    - REMOVE stops and drops the file's follower
    - WRITE wakes the file's follower unless tailers poll on their own
    - RENAME and anything else is only logged

    Stopping the loop ends the watcher and closes the pool. A stopped loop
    cannot be started again.
    """

    def __init__(
        self,
        events: "queue.Queue[FileEvent]",
        watcher: Watcher,
        pool: FollowerPool,
        policy: PolicyFilter,
        follow: Callable[[Path, FollowMode], bool],
        options: TrailOptions,
    ):
        """
        Initialize the event loop.

        Args:
            events: Queue the watcher puts events on
            watcher: Watcher to end on shutdown
            pool: Followers to mutate
            policy: Decides which created files to follow
            follow: Starts a follower for a path in a mode; False on failure
            options: Trail options (polling, timeouts, logger)
        """
        self.events = events
        self.watcher = watcher
        self.pool = pool
        self.policy = policy
        self.follow = follow
        self.options = options
        self.logger = options.logger

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._finished = False

    def start(self) -> None:
        """
        Start the loop thread.

        Raises:
            RuntimeError: If the loop was already started
        """
        with self._lock:
            if self._thread is not None or self._stop_event.is_set():
                raise RuntimeError("Event loop cannot be restarted")
            self._thread = threading.Thread(target=self._run, name="EventLoop", daemon=True)
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Shut the loop down and wait (bounded) for it to finish.

        Returns:
            True if the loop finished within the timeout
        """
        with self._lock:
            self._stop_event.set()
            thread = self._thread

        if thread is None:
            self._shutdown()
            return True

        self.events.put(_SHUTDOWN)
        if thread is threading.current_thread():
            return False
        thread.join(timeout=self.options.stop_timeout if timeout is None else timeout)
        return not thread.is_alive()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def dispatch(self, event: FileEvent) -> None:
        """Apply one event to the pool."""
        path = event.path

        if event.op is FileOp.CREATE:
            self.logger.debug(f"Created: {path}")
            if self.policy.should_ignore(path):
                self.logger.debug(f"Ignored: {path}")
                return
            # The pool ignores a path it follows unless the file was rotated.
            self.follow(path, FollowMode.NEW)

        elif event.op is FileOp.REMOVE:
            self.logger.debug(f"Removed: {path}")
            self.pool.remove(path)

        elif event.op is FileOp.RENAME:
            self.logger.debug(f"Renamed: {path}")

        elif event.op is FileOp.WRITE:
            self.logger.debug(f"Write: {path}")
            if not self.options.poll_changes:
                self.pool.notify(path)

        else:
            self.logger.debug(f"Event {event.op.value}: {path}")

    def _run(self) -> None:
        self.logger.debug("Event loop started")
        try:
            while True:
                event = self.events.get()
                if event is _SHUTDOWN or self._stop_event.is_set():
                    break
                try:
                    self.dispatch(event)
                except Exception as e:
                    self.logger.error(f"Failed to handle {event.op.value} event for {event.path}: {e}")
        finally:
            self._shutdown()

    def _shutdown(self) -> None:
        with self._lock:
            if self._finished:
                return
            self._finished = True

        try:
            self.watcher.end()
        except Exception as e:
            self.logger.error(f"Failed to end watcher: {e}")

        count = self.pool.close()
        self.logger.debug(f"Event loop stopped, {count} follower(s) stopped")
