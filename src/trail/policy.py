"""Decides which discovered files a trail should ignore."""

import logging
import os
import time
from pathlib import Path
from typing import Callable, Union

from .config import TrailOptions


class PolicyFilter:
    """
    Name, directory and age based ignore rules.

    A path is ignored when any rule holds:

    - ``path_include`` is set and the parent directory does not match it
    - ``file_include`` is set and the file name does not match it
    - ``file_exclude`` is set and the file name matches it
    - the file was last modified more than ``ignore_if_older_than`` ago

    The age rule fails open: a file that cannot be stat'ed is never
    ignored because of its age.
    """

    def __init__(
        self,
        options: TrailOptions,
        clock: Callable[[], float] = time.time,
    ):
        self.options = options
        self.logger: logging.Logger = options.logger
        self._clock = clock

    def should_ignore(self, path: Union[str, Path]) -> bool:
        """
        Check whether a path should be left unfollowed.

        Args:
            path: Path of a discovered or created file

        Returns:
            True if the path should be ignored
        """
        path = Path(path)
        options = self.options

        if options.path_include is not None and not options.path_include.search(str(path.parent)):
            return True
        if options.file_include is not None and not options.file_include.search(path.name):
            return True
        if options.file_exclude is not None and options.file_exclude.search(path.name):
            return True
        return self.is_too_old(path)

    def is_too_old(self, path: Path) -> bool:
        """Check the age rule alone."""
        max_age = self.options.ignore_if_older_than
        if max_age is None:
            return False

        try:
            age = file_age(path, self._clock)
        except OSError as e:
            self.logger.error(f"Failed to get file info, not ignoring it by age: {e}")
            return False
        return age > max_age


def file_age(path: Path, clock: Callable[[], float] = time.time) -> float:
    """
    Seconds since a file was last modified.

    Raises:
        OSError: If the file cannot be stat'ed
    """
    return clock() - os.stat(path).st_mtime
