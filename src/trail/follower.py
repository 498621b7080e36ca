"""One thread per followed file, feeding its lines to a handler."""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from .config import TrailOptions
from .exceptions import SpawnError
from .models import FollowMode, Line, LineHandler
from .tailer import Tailer


TailerFactory = Callable[..., Tailer]


class Follower:
    """
    Runs a tailer on its own thread and hands every line to a handler.

    Lines of one file reach the handler in file order, one at a time. A
    handler that raises is logged and the follower carries on with the
    next line; the failed line is not retried.

    The follower ends when it is stopped, when its tailer runs out (file
    removed or rotated away) or after delivering a line that carries a tail
    error. ``on_exit`` is called in the latter two cases only, so an owner
    can forget a follower that finished on its own.
    """

    def __init__(
        self,
        path: Path,
        tailer: Tailer,
        handler: LineHandler,
        logger: Optional[logging.Logger] = None,
        on_exit: Optional[Callable[["Follower"], None]] = None,
    ):
        self.path = path
        self.tailer = tailer
        self.handler = handler
        self.logger = logger or logging.getLogger(__name__)
        self.on_exit = on_exit

        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def spawn(
        cls,
        path: Path,
        mode: FollowMode,
        handler: LineHandler,
        options: TrailOptions,
        on_exit: Optional[Callable[["Follower"], None]] = None,
        tailer_factory: TailerFactory = Tailer,
    ) -> "Follower":
        """
        Open a tailer for a file and wrap it in a follower (not yet started).

        Args:
            path: File to follow
            mode: EXISTING starts at end-of-file, NEW at the beginning
            handler: Receives every line
            options: Trail options (polling, intervals, logger)
            on_exit: Called when the follower finishes on its own
            tailer_factory: Builds the tailer; defaults to Tailer

        Raises:
            SpawnError: If the file cannot be opened for tailing
        """
        logger = options.logger
        logger.debug(f"Following: {path} ({mode.value})")
        if options.poll_changes:
            logger.debug("Polling enabled")

        try:
            tailer = tailer_factory(
                path,
                from_start=mode is FollowMode.NEW,
                poll=options.poll_changes,
                poll_interval=options.poll_interval,
                notify_timeout=options.notify_timeout,
            )
        except OSError as e:
            raise SpawnError(path, f"cannot open for tailing: {e}") from e

        return cls(path, tailer, handler, logger=logger, on_exit=on_exit)

    def start(self) -> None:
        """Start the follower thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            name=f"Follower:{self.path.name}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Signal the follower to stop without waiting for it.

        No line is handed to the handler once this returns, apart from one
        whose delivery had already begun.
        """
        self._stopped.set()
        self.tailer.stop()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the follower thread to finish.

        Returns:
            True if the thread is no longer running
        """
        thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            return False
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def wake(self) -> None:
        """Tell the tailer its file has probably changed."""
        self.tailer.wake()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        lines = self.tailer.lines()
        try:
            for tail_line in lines:
                if self.stopped:
                    break
                line = Line.from_tail_line(self.path, tail_line)
                self._deliver(line)
                if line.err is not None:
                    self.logger.error(
                        f"Tailing failed for {self.path}, giving up on it (no retry): {line.err}"
                    )
                    break
        except Exception as e:
            self.logger.error(f"Follower for {self.path} crashed: {e}")
        finally:
            self.tailer.stop()
            lines.close()
            if not self.stopped:
                self.logger.debug(f"Follower finished: {self.path}")
                if self.on_exit:
                    self.on_exit(self)

    def _deliver(self, line: Line) -> None:
        try:
            self.handler(line)
        except Exception as e:
            self.logger.error(f"Line handler failed for {self.path}, line dropped (no retry): {e}")

    def __repr__(self) -> str:
        return f"Follower({str(self.path)!r}, stopped={self.stopped})"
