"""Line-oriented file tailer with truncation and rotation handling."""

import os
import threading
from pathlib import Path
from typing import Iterator, Union

from .models import TailLine


class Tailer:
    """
    Follows one file and yields each complete line appended to it.

    The file is opened on construction so that callers learn about
    unreadable files immediately. Reading continues until ``stop()`` is
    called, the file is removed or rotated away from its path, or a read
    fails. A truncated file is re-read from its start.

    In poll mode the file is re-checked every ``poll_interval`` seconds.
    Otherwise the tailer waits for ``wake()`` and re-checks on its own
    only every ``notify_timeout`` seconds.
    """

    def __init__(
        self,
        path: Union[str, Path],
        from_start: bool = False,
        poll: bool = False,
        poll_interval: float = 0.25,
        notify_timeout: float = 1.0,
    ):
        """
        Open the file and position the read offset.

        Args:
            path: File to follow
            from_start: Read existing content too, instead of starting at EOF
            poll: Re-check on a fixed interval instead of waiting for wake()
            poll_interval: Seconds between re-checks in poll mode
            notify_timeout: Fallback re-check period when not polling

        Raises:
            OSError: If the file cannot be opened
        """
        self.path = Path(path)
        self.poll = poll
        self.poll_interval = poll_interval
        self.notify_timeout = notify_timeout

        self._file = open(self.path, "rb")
        try:
            self._inode = os.fstat(self._file.fileno()).st_ino
            if not from_start:
                self._file.seek(0, os.SEEK_END)
        except OSError:
            self._file.close()
            raise

        self._position = self._file.tell()
        self._partial = b""
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()

    @property
    def inode(self) -> int:
        """Inode of the file opened on construction."""
        return self._inode

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the line sequence to end. Safe to call from any thread."""
        self._stop_event.set()
        self._wake_event.set()

    def wake(self) -> None:
        """Signal that the file has probably changed."""
        self._wake_event.set()

    def lines(self) -> Iterator[TailLine]:
        """
        Yield lines until the tailer stops.

        A read failure is yielded once as a TailLine with ``err`` set and
        ends the sequence. The underlying file is closed when the sequence
        ends.
        """
        try:
            while not self.stopped:
                try:
                    chunk = self._file.readline()
                except OSError as e:
                    yield TailLine(text="", err=e)
                    return

                if chunk:
                    self._position = self._file.tell()
                    if not chunk.endswith(b"\n"):
                        self._partial += chunk
                        continue
                    text = (self._partial + chunk).rstrip(b"\r\n")
                    self._partial = b""
                    yield TailLine(text=text.decode("utf-8", errors="replace"))
                    continue

                if not self._check_file():
                    return
                self._wait()
        finally:
            self._file.close()

    def _check_file(self) -> bool:
        """
        Detect removal, rotation and truncation at EOF.

        Returns:
            False when the file is gone from its path and the sequence should end
        """
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return False

        if st.st_ino != self._inode:
            return False

        if st.st_size < self._position:
            self._file.seek(0, os.SEEK_SET)
            self._position = 0
            self._partial = b""
        return True

    def _wait(self) -> None:
        timeout = self.poll_interval if self.poll else self.notify_timeout
        self._wake_event.wait(timeout)
        self._wake_event.clear()

    def __repr__(self) -> str:
        return f"Tailer({str(self.path)!r}, poll={self.poll})"

