"""Single-instance guard through a PID file."""

import os
from pathlib import Path
from typing import Optional, Union

from .exceptions import PidFileError


def read_pid(path: Union[str, Path]) -> Optional[int]:
    """
    Read the PID stored in a file.

    Returns:
        The PID, or None if the file is missing or does not hold a number
    """
    try:
        return int(Path(path).read_text().strip())
    except (OSError, ValueError):
        return None


def is_running(pid: int) -> bool:
    """
    Check whether a process with this PID is running and ours to signal.

    Signal zero checks without delivering anything. A process owned by
    someone else counts as not running.
    """
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def write_pid_file(path: Union[str, Path]) -> Path:
    """
    Record the current PID, refusing if another live instance holds the file.

    Returns:
        The PID file path

    Raises:
        PidFileError: If the file names another running process
    """
    path = Path(path)
    pid = read_pid(path)
    if pid is not None and pid != os.getpid() and is_running(pid):
        raise PidFileError(f"pid already running: {pid}")

    path.write_text(str(os.getpid()))
    return path


def remove_pid_file(path: Union[str, Path]) -> bool:
    """
    Delete the PID file if it holds the current PID.

    Returns:
        True if the file was removed
    """
    path = Path(path)
    if read_pid(path) != os.getpid():
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
