"""Directory watchers producing FileEvents, built on the watchdog library."""

import os
import queue
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .exceptions import WatcherError
from .models import FileEvent, FileOp


class Watcher(ABC):
    """Source of the files to follow and of changes to them."""

    @abstractmethod
    def walk(self) -> List[Path]:
        """
        List the files present right now.

        Raises:
            OSError: If the listing fails
        """
        pass

    @abstractmethod
    def watch(self, events: "queue.Queue[FileEvent]") -> None:
        """Start putting FileEvents on the given queue. Returns immediately."""
        pass

    @abstractmethod
    def end(self) -> None:
        """Stop producing events and release resources."""
        pass


class FileEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to FileEvents on a queue."""

    def __init__(self, events: "queue.Queue[FileEvent]"):
        super().__init__()
        self.events = events

    def _emit(self, op: FileOp, path) -> None:
        self.events.put(FileEvent(path=Path(os.fsdecode(path)), op=op))

    def on_created(self, event):
        if not event.is_directory:
            self._emit(FileOp.CREATE, event.src_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self._emit(FileOp.REMOVE, event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._emit(FileOp.WRITE, event.src_path)

    def on_moved(self, event):
        # inotify reports the destination of a move as a new file
        if not event.is_directory:
            self._emit(FileOp.RENAME, event.src_path)
            self._emit(FileOp.CREATE, event.dest_path)

    def on_closed(self, event):
        if not event.is_directory:
            self._emit(FileOp.OTHER, event.src_path)


class DirectoryWatcher(Watcher):
    """
    Watches one directory with a watchdog observer.

    Uses the platform's native observer, or a PollingObserver when
    ``poll`` is set. Paths are reported under the resolved directory so
    that listings and events name files the same way.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        recursive: bool = True,
        poll: bool = False,
        join_timeout: float = 5.0,
    ):
        """
        Initialize the watcher.

        Args:
            directory: Directory to watch
            recursive: Include subdirectories
            poll: Use a polling observer instead of native notifications
            join_timeout: Longest to wait for the observer thread on end()

        Raises:
            WatcherError: If the directory does not exist
        """
        directory = Path(directory).resolve()
        if not directory.is_dir():
            raise WatcherError(f"Not a directory: {directory}")

        self.directory = directory
        self.recursive = recursive
        self.poll = poll
        self.join_timeout = join_timeout
        self._observer: Optional[Observer] = None
        self._ended = False
        self._lock = threading.Lock()

    def walk(self) -> List[Path]:
        """
        List the regular files under the directory.

        Returns:
            Sorted list of file paths

        Raises:
            OSError: If the directory cannot be listed
        """
        def _raise(err: OSError) -> None:
            raise err

        files = []
        for dirpath, dirnames, filenames in os.walk(self.directory, onerror=_raise):
            for name in filenames:
                path = Path(dirpath) / name
                if path.is_file():
                    files.append(path)
            if not self.recursive:
                dirnames.clear()
        return sorted(files)

    def watch(self, events: "queue.Queue[FileEvent]") -> None:
        """
        Start the observer.

        Raises:
            WatcherError: If already watching or already ended
        """
        with self._lock:
            if self._ended:
                raise WatcherError(f"Watcher already ended: {self.directory}")
            if self._observer is not None:
                raise WatcherError(f"Already watching: {self.directory}")

            observer = PollingObserver() if self.poll else Observer()
            observer.schedule(
                FileEventHandler(events),
                str(self.directory),
                recursive=self.recursive,
            )
            observer.start()
            self._observer = observer

    def end(self) -> None:
        """Stop the observer. Safe to call more than once."""
        with self._lock:
            self._ended = True
            observer = self._observer
            self._observer = None

        if observer is not None:
            observer.stop()
            observer.join(timeout=self.join_timeout)

    @property
    def is_watching(self) -> bool:
        with self._lock:
            return self._observer is not None

    def __repr__(self) -> str:
        return f"DirectoryWatcher({str(self.directory)!r}, poll={self.poll})"
