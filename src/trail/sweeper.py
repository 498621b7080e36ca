"""Periodic eviction of followers whose files went quiet."""

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from .config import TrailOptions
from .policy import file_age
from .pool import FollowerPool


class StalenessSweeper:
    """
    Stops following files that have not been modified for a while.

    Every ``sweep_interval`` seconds the sweeper takes a snapshot of the
    pool and evicts each follower whose file is older than
    ``unfollow_if_older_than``. Eviction goes through the pool, under the
    same lock the event loop uses. A file that cannot be stat'ed is kept.
    """

    def __init__(
        self,
        pool: FollowerPool,
        options: TrailOptions,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the sweeper.

        Args:
            pool: Followers to sweep
            options: Trail options (max age, interval, logger)
            clock: Source of the current time
        """
        self.pool = pool
        self.max_age = options.unfollow_if_older_than
        self.interval = options.sweep_interval
        self.stop_timeout = options.stop_timeout
        self.logger = options.logger
        self._clock = clock

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """
        Start the sweep thread.

        Raises:
            RuntimeError: If the sweeper was already started or stopped
        """
        if self._thread is not None or self._stop_event.is_set():
            raise RuntimeError("Sweeper cannot be restarted")

        self.logger.info(f"Unfollowing files older than {self.max_age}s, checking every {self.interval}s")
        self._thread = threading.Thread(target=self._run, name="StalenessSweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop the sweeper and wait (bounded) for a running sweep to finish.

        Returns:
            True if the thread finished within the timeout
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout=self.stop_timeout if timeout is None else timeout)
        return not thread.is_alive()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep(self, now: Optional[float] = None) -> List[Path]:
        """
        Run one staleness pass.

        Args:
            now: Current time; defaults to the sweeper's clock

        Returns:
            Paths that were unfollowed
        """
        if self.max_age is None:
            return []

        self.logger.debug("Sweeping stale followers")
        if now is None:
            now = self._clock()

        evicted = []
        for handle in self.pool.snapshot():
            if self._stop_event.is_set():
                break

            try:
                age = file_age(handle.path, lambda: now)
            except OSError as e:
                self.logger.error(f"Failed to get file info, keeping follower: {e}")
                continue

            if age > self.max_age:
                if self.pool.remove(handle.path, follower=handle.follower):
                    self.logger.debug(f"Unfollow stale file: {handle.path}")
                    evicted.append(handle.path)
            else:
                self.logger.debug(f"Still following: {handle.path}")

        if evicted:
            self.logger.info(f"Unfollowed {len(evicted)} stale file(s)")
        return evicted

    def _run(self) -> None:
        while not self._stop_event.wait(timeout=self.interval):
            try:
                self.sweep()
            except Exception as e:
                self.logger.error(f"Sweep error: {e}")
