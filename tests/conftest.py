"""Shared fixtures and fakes for the trail tests."""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import List, Optional

import pytest

from src.trail.config import TrailOptions
from src.trail.models import FileEvent, TailLine
from src.trail.watcher import Watcher


class FakeWatcher(Watcher):
    """In-memory watcher: a fixed listing and events pushed by the test."""

    def __init__(self, files: Optional[List[Path]] = None, walk_error: Optional[OSError] = None,
                 watch_error: Optional[Exception] = None):
        self.files = list(files or [])
        self.walk_error = walk_error
        self.watch_error = watch_error
        self.events: Optional[queue.Queue] = None
        self.end_calls = 0

    def walk(self) -> List[Path]:
        if self.walk_error is not None:
            raise self.walk_error
        return list(self.files)

    def watch(self, events: queue.Queue) -> None:
        if self.watch_error is not None:
            raise self.watch_error
        self.events = events

    def end(self) -> None:
        self.end_calls += 1

    def emit(self, event: FileEvent) -> None:
        assert self.events is not None, "watch() was not called"
        self.events.put(event)

    def __repr__(self) -> str:
        return "FakeWatcher()"


class ScriptedTailer:
    """Tailer stand-in that yields scripted lines, then waits to be stopped."""

    instances: List["ScriptedTailer"] = []

    def __init__(self, path, from_start=False, poll=False, poll_interval=0.25, notify_timeout=1.0, script=None,
                 inode=None):
        self.path = Path(path)
        self.from_start = from_start
        self.poll = poll
        self.script = list(script or [])
        self.inode = inode
        self.wakes = 0
        self._stop_event = threading.Event()
        ScriptedTailer.instances.append(self)

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        self._stop_event.set()

    def wake(self) -> None:
        self.wakes += 1

    def lines(self):
        for item in self.script:
            if self.stopped:
                return
            if item is None:
                return
            yield item if isinstance(item, TailLine) else TailLine(text=item)
        self._stop_event.wait()


@pytest.fixture
def fake_watcher():
    return FakeWatcher()


@pytest.fixture
def make_watcher():
    """Build FakeWatchers with a given listing, listing error or watch error."""
    return FakeWatcher


@pytest.fixture
def scripted_tailer():
    """Factory class for ScriptedTailer; records every instance it builds."""
    ScriptedTailer.instances = []
    yield ScriptedTailer
    for tailer in ScriptedTailer.instances:
        tailer.stop()


@pytest.fixture
def options():
    """Fast options with age policies switched off."""
    return TrailOptions(
        ignore_if_older_than=None,
        unfollow_if_older_than=None,
        poll_interval=0.02,
        notify_timeout=0.05,
        stop_timeout=2.0,
        logger=logging.getLogger("tests.trail"),
    )


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout passes."""
    def _wait(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
        deadline = time.time() + timeout
        while time.time() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    return _wait


@pytest.fixture
def collector():
    """Thread-safe line collector usable as a handler."""
    return LineCollector()


class LineCollector:
    def __init__(self):
        self.lines = []
        self._lock = threading.Lock()

    def __call__(self, line) -> None:
        with self._lock:
            self.lines.append(line)

    def texts(self, path=None) -> List[str]:
        with self._lock:
            return [l.text for l in self.lines if path is None or l.path == Path(path)]

    def __len__(self) -> int:
        with self._lock:
            return len(self.lines)
