"""Exceptions raised by the ssmshell cache, sync engine and interpreter."""

from __future__ import annotations


class ShellError(Exception):
    """Base class for every recoverable ssmshell condition."""


# Cache-local conditions


class NotCached(ShellError):
    """The path was never fetched into the local cache."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path} is not cached")
        self.path = path


class UnknownPath(ShellError):
    """A ``set`` targeted a path that has no cached entry."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Unknown parameter {path}; use insert to create it")
        self.path = path


class AlreadyExists(ShellError):
    """An ``insert`` targeted a path that already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Parameter {path} already exists; use set to change it")
        self.path = path


# Remote store conditions


class RemoteError(ShellError):
    """Raised when an SSM API call fails."""


class ParameterNotFound(ShellError):
    """The remote store has no parameter at the path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Parameter {path} not found")
        self.path = path


class SyncFailed(ShellError):
    """A remote round-trip failed; the cache keeps its last known-good state."""

    def __init__(self, target: str, cause: Exception) -> None:
        super().__init__(f"Sync of {target} failed: {cause}")
        self.target = target
        self.cause = cause


# Command grammar


class InvalidCommand(ShellError):
    """A line could not be parsed as a command."""

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"{reason}: {raw!r}")
        self.raw = raw
        self.reason = reason
