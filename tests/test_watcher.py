"""Tests for directory watcher module."""

import pytest
import queue
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from src.trail.exceptions import WatcherError
from src.trail.models import FileOp
from src.trail.watcher import DirectoryWatcher, FileEventHandler


def drain(events: queue.Queue):
    items = []
    while True:
        try:
            items.append(events.get_nowait())
        except queue.Empty:
            return items


def wait_for_event(events: queue.Queue, path: Path, op: FileOp, timeout: float = 5.0) -> bool:
    """Consume events until one matches."""
    try:
        while True:
            event = events.get(timeout=timeout)
            if event.path == path and event.op is op:
                return True
    except queue.Empty:
        return False


class TestFileEventHandler:
    """Tests for FileEventHandler class."""

    def test_created(self):
        events = queue.Queue()
        FileEventHandler(events).on_created(FileCreatedEvent("/logs/a.log"))

        [event] = drain(events)
        assert event.path == Path("/logs/a.log")
        assert event.op is FileOp.CREATE

    def test_deleted(self):
        events = queue.Queue()
        FileEventHandler(events).on_deleted(FileDeletedEvent("/logs/a.log"))

        assert [e.op for e in drain(events)] == [FileOp.REMOVE]

    def test_modified(self):
        events = queue.Queue()
        FileEventHandler(events).on_modified(FileModifiedEvent("/logs/a.log"))

        assert [e.op for e in drain(events)] == [FileOp.WRITE]

    def test_moved_reports_both_ends(self):
        events = queue.Queue()
        FileEventHandler(events).on_moved(FileMovedEvent("/logs/a.log", "/logs/a.log.1"))

        assert [(e.path, e.op) for e in drain(events)] == [
            (Path("/logs/a.log"), FileOp.RENAME),
            (Path("/logs/a.log.1"), FileOp.CREATE),
        ]

    def test_closed_is_other(self):
        events = queue.Queue()
        FileEventHandler(events).on_closed(FileClosedEvent("/logs/a.log"))

        assert [e.op for e in drain(events)] == [FileOp.OTHER]

    def test_directories_ignored(self):
        events = queue.Queue()
        FileEventHandler(events).on_created(DirCreatedEvent("/logs/sub"))

        assert drain(events) == []

    def test_bytes_paths_decoded(self):
        events = queue.Queue()
        FileEventHandler(events).on_created(FileCreatedEvent(b"/logs/a.log"))

        [event] = drain(events)
        assert event.path == Path("/logs/a.log")


class TestDirectoryWatcherWalk:
    """Tests for DirectoryWatcher.walk."""

    def test_missing_directory(self, tmp_path):
        with pytest.raises(WatcherError):
            DirectoryWatcher(tmp_path / "missing")

    def test_file_is_not_a_directory(self, tmp_path):
        path = tmp_path / "a.log"
        path.write_text("")

        with pytest.raises(WatcherError):
            DirectoryWatcher(path)

    def test_walk_lists_files(self, tmp_path):
        (tmp_path / "b.log").write_text("")
        (tmp_path / "a.log").write_text("")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "c.log").write_text("")
        watcher = DirectoryWatcher(tmp_path)
        root = watcher.directory

        assert watcher.walk() == [root / "a.log", root / "b.log", root / "sub" / "c.log"]

    def test_walk_non_recursive(self, tmp_path):
        (tmp_path / "a.log").write_text("")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "c.log").write_text("")
        watcher = DirectoryWatcher(tmp_path, recursive=False)

        assert watcher.walk() == [watcher.directory / "a.log"]

    def test_walk_empty_directory(self, tmp_path):
        assert DirectoryWatcher(tmp_path).walk() == []

    def test_walk_removed_directory_raises(self, tmp_path):
        directory = tmp_path / "logs"
        directory.mkdir()
        watcher = DirectoryWatcher(directory)
        directory.rmdir()

        with pytest.raises(OSError):
            watcher.walk()


class TestDirectoryWatcherWatch:
    """Tests for DirectoryWatcher.watch and end."""

    @pytest.mark.parametrize("poll", [False, True])
    def test_reports_created_and_removed(self, tmp_path, poll):
        watcher = DirectoryWatcher(tmp_path, poll=poll)
        events = queue.Queue()
        path = watcher.directory / "a.log"

        watcher.watch(events)
        try:
            path.write_text("hello\n")
            assert wait_for_event(events, path, FileOp.CREATE)

            path.unlink()
            assert wait_for_event(events, path, FileOp.REMOVE)
        finally:
            watcher.end()

    def test_is_watching(self, tmp_path):
        watcher = DirectoryWatcher(tmp_path)

        assert watcher.is_watching is False
        watcher.watch(queue.Queue())
        assert watcher.is_watching is True
        watcher.end()
        assert watcher.is_watching is False

    def test_watch_twice_raises(self, tmp_path):
        watcher = DirectoryWatcher(tmp_path)
        watcher.watch(queue.Queue())
        try:
            with pytest.raises(WatcherError):
                watcher.watch(queue.Queue())
        finally:
            watcher.end()

    def test_watch_after_end_raises(self, tmp_path):
        watcher = DirectoryWatcher(tmp_path)
        watcher.end()

        with pytest.raises(WatcherError):
            watcher.watch(queue.Queue())

    def test_end_is_idempotent(self, tmp_path):
        watcher = DirectoryWatcher(tmp_path)
        watcher.watch(queue.Queue())

        watcher.end()
        watcher.end()

        assert watcher.is_watching is False

    def test_repr(self, tmp_path):
        watcher = DirectoryWatcher(tmp_path, poll=True)

        assert "poll=True" in repr(watcher)
