"""Custom exceptions for the console application."""


class ConsoleError(Exception):
    """Base exception for console application errors."""
    pass


class ConfigError(ConsoleError):
    """Configuration file is missing or invalid."""
    pass


class PidFileError(ConsoleError):
    """Another instance already owns the PID file."""
    pass
