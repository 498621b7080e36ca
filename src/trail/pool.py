"""Thread-safe registry of the followers a trail is running."""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .follower import Follower


@dataclass(frozen=True)
class FollowerHandle:
    """
    A follower registered in the pool.

    Attributes:
        path: File being followed
        follower: The running follower
        created_at: Unix timestamp when the follower was registered
    """
    path: Path
    follower: Follower
    created_at: float = field(default_factory=time.time)


class FollowerPool:
    """
    Thread-safe mapping of path to follower handle.

    Holds at most one follower per path. Every structural change goes
    through this class under one lock, whether it comes from the event
    loop, the staleness sweeper or a follower that finished on its own.
    Followers are stopped before their entry disappears. Waiting for their
    threads happens after the lock is released.

    Once closed the pool stops every follower and refuses new ones.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        join_timeout: float = 5.0,
    ):
        """
        Initialize the pool.

        Args:
            logger: Logger for pool changes
            join_timeout: Longest to wait for each stopped follower's thread
        """
        self.logger = logger or logging.getLogger(__name__)
        self.join_timeout = join_timeout
        self._handles: Dict[Path, FollowerHandle] = {}
        self._closed = False
        self._lock = threading.RLock()

    def spawn(
        self,
        path: Union[str, Path],
        factory: Callable[[Path], Follower],
    ) -> Optional[FollowerHandle]:
        """
        Create, register and start a follower unless the path already has one.

        The check and the insertion happen under the pool lock, so two
        concurrent spawns for one path yield a single follower. A path
        whose registered follower reads a file that was rotated away (the
        path now names another inode) gets its follower replaced.

        Args:
            path: File to follow
            factory: Builds the follower; may raise SpawnError

        Returns:
            The new handle, or None if the path is already followed or the
            pool is closed

        Raises:
            SpawnError: Propagated from the factory
        """
        path = Path(path)
        stale: Optional[FollowerHandle] = None

        try:
            with self._lock:
                if self._closed:
                    self.logger.debug(f"Pool closed, not following: {path}")
                    return None

                existing = self._handles.get(path)
                if existing is not None:
                    if not self._is_rotated(existing):
                        self.logger.debug(f"Already following: {path}")
                        return None
                    self.logger.debug(f"Rotated, replacing follower: {path}")
                    existing.follower.stop()
                    del self._handles[path]
                    stale = existing

                follower = factory(path)
                handle = FollowerHandle(path=path, follower=follower)
                self._handles[path] = handle
                follower.start()
                return handle
        finally:
            if stale is not None:
                self._join(stale)

    def remove(
        self,
        path: Union[str, Path],
        follower: Optional[Follower] = None,
        wait: bool = True,
    ) -> bool:
        """
        Stop a follower and drop it from the pool.

        Args:
            path: File whose follower should go
            follower: Only remove if the registered follower is this one
            wait: Wait (bounded) for the follower thread to finish

        Returns:
            True if a follower was removed, False if none matched
        """
        path = Path(path)

        with self._lock:
            handle = self._handles.get(path)
            if handle is None:
                return False
            if follower is not None and handle.follower is not follower:
                return False

            handle.follower.stop()
            del self._handles[path]

        self.logger.debug(f"Unfollowed: {path}")
        if wait:
            self._join(handle)
        return True

    def release(self, follower: Follower) -> bool:
        """
        Forget a follower that finished on its own.

        Used as the followers' exit callback. The entry is dropped only if
        it still belongs to that follower.

        Returns:
            True if the entry was dropped
        """
        return self.remove(follower.path, follower=follower, wait=False)

    def notify(self, path: Union[str, Path]) -> bool:
        """
        Wake the follower of a path after its file was written.

        Returns:
            True if the path is followed
        """
        handle = self.get(path)
        if handle is None:
            return False
        handle.follower.wake()
        return True

    def close(self) -> int:
        """
        Stop every follower and refuse further spawns.

        Safe to call more than once.

        Returns:
            Number of followers stopped by this call
        """
        with self._lock:
            self._closed = True
            handles = list(self._handles.values())
            for handle in handles:
                handle.follower.stop()
            self._handles.clear()

        for handle in handles:
            self._join(handle)

        if handles:
            self.logger.debug(f"Stopped {len(handles)} follower(s)")
        return len(handles)

    def get(self, path: Union[str, Path]) -> Optional[FollowerHandle]:
        """
        Get the handle registered for a path.

        Returns:
            The handle, or None if the path is not followed
        """
        with self._lock:
            return self._handles.get(Path(path))

    def snapshot(self) -> List[FollowerHandle]:
        """
        Get a copy of the current handles, safe to iterate while the pool changes.

        Returns:
            List of handles
        """
        with self._lock:
            return list(self._handles.values())

    def paths(self) -> List[Path]:
        """
        Get the followed paths.

        Returns:
            Sorted list of paths
        """
        with self._lock:
            return sorted(self._handles.keys())

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _is_rotated(self, handle: FollowerHandle) -> bool:
        inode = getattr(handle.follower.tailer, "inode", None)
        if inode is None:
            return False
        try:
            return os.stat(handle.path).st_ino != inode
        except OSError:
            return False

    def _join(self, handle: FollowerHandle) -> None:
        if not handle.follower.join(timeout=self.join_timeout):
            if handle.follower.is_alive:
                self.logger.warning(
                    f"Follower for {handle.path} did not stop within {self.join_timeout}s"
                )

    def __len__(self) -> int:
        """Return the number of followed files."""
        with self._lock:
            return len(self._handles)

    def __contains__(self, path: Union[str, Path]) -> bool:
        """Check if a path is followed."""
        with self._lock:
            return Path(path) in self._handles
