"""Custom exceptions for the trail package."""


class TrailError(Exception):
    """Base exception for all trail errors."""
    pass


class InitialListingError(TrailError):
    """The watched directory could not be listed when following started."""
    pass


class SpawnError(TrailError):
    """A follower could not be started for a single file."""

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class WatcherError(TrailError):
    """Error related to the directory watcher."""
    pass


class TrailAlreadyFollowingError(TrailError):
    """Trail is already following."""
    pass


class TrailEndedError(TrailError):
    """Trail has been ended and cannot be followed again."""
    pass
