"""Data models for ssmshell."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

PARAMETER_TYPES = ("String", "SecureString", "StringList")
ParameterType = Literal["String", "SecureString", "StringList"]

# Short names accepted by the ``insert`` command.
TYPE_ALIASES: dict[str, ParameterType] = {
    "plain": "String",
    "string": "String",
    "secret": "SecureString",
    "securestring": "SecureString",
    "list": "StringList",
    "stringlist": "StringList",
}

SEPARATOR = "/"
_SSM_PATH_RE = re.compile(r"^/[a-zA-Z0-9_./-]+$")


def normalize_prefix(prefix: str) -> str:
    """Strip trailing separators, keeping ``"/"`` for the root."""
    stripped = prefix.rstrip(SEPARATOR)
    return stripped or SEPARATOR


def directory_of(prefix: str) -> str:
    """The fully typed namespace part of a partial path: ``/app/d`` -> ``/app``."""
    idx = prefix.rfind(SEPARATOR)
    if idx <= 0:
        return SEPARATOR
    return prefix[:idx]


def is_valid_path(path: str) -> bool:
    """True when *path* looks like a valid absolute SSM parameter path."""
    return path == SEPARATOR or bool(_SSM_PATH_RE.match(path))


def parse_type(raw: str) -> ParameterType:
    """Map a user-supplied type name (``Plain``, ``SecureString``, ...) to its SSM name."""
    try:
        return TYPE_ALIASES[raw.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown parameter type {raw!r}; expected one of "
            "Plain, Secret, List (or String, SecureString, StringList)"
        ) from None


@dataclass
class Parameter:
    """A cached SSM Parameter Store entry."""

    path: str                              # full SSM path, e.g. /app/prod/db/password
    value: str = ""                        # never parsed for hierarchy
    type: ParameterType = "String"
    version: int = 0
    last_modified: datetime | None = None  # remote modification time
    fetched_at: datetime | None = None     # None: known to exist, value not fetched
    dirty: bool = False                    # local edit not yet confirmed remotely

    def __post_init__(self) -> None:
        if self.type not in PARAMETER_TYPES:
            raise ValueError(
                f"Invalid parameter type {self.type!r}; "
                f"expected one of {PARAMETER_TYPES}"
            )

    @property
    def name(self) -> str:
        """Leaf segment of the path, e.g. ``"password"``."""
        segments = [s for s in self.path.split(SEPARATOR) if s]
        return segments[-1] if segments else self.path

    @property
    def is_secure(self) -> bool:
        return self.type == "SecureString"

    @property
    def is_string_list(self) -> bool:
        return self.type == "StringList"

    @property
    def is_fetched(self) -> bool:
        return self.fetched_at is not None


@dataclass
class TrieNode:
    """A node in the parameter path trie, one per path segment."""

    name: str                                # path segment for this node
    path: str                                # full path up to (and including) this segment
    children: dict[str, TrieNode] = field(default_factory=dict)
    terminal: bool = False                   # a cached parameter exists at this exact path

    @property
    def is_leaf(self) -> bool:
        return len(self.children) == 0


@dataclass(frozen=True)
class Completions:
    """Completion candidates for a partial path.

    ``complete`` is *False* when the prefix lies under a subtree that has not
    been exhaustively fetched, so the list may be missing remote paths.
    """

    paths: list[str]
    complete: bool
    selected: str | None = None


@dataclass(frozen=True)
class Ack:
    """A command completed successfully."""

    action: str
    path: str
    entry: Parameter | None = None
    count: int = 0


@dataclass(frozen=True)
class SearchResults:
    """Indexed matches of a ``search`` command."""

    term: str
    paths: list[str]


@dataclass(frozen=True)
class Exit:
    """The session should terminate."""


ShellResult = Completions | Ack | SearchResults | Exit
