"""Local cache of record for fetched SSM parameters."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import replace

from ssmshell.errors import NotCached
from ssmshell.logging_config import get_logger
from ssmshell.models import (
    SEPARATOR,
    Completions,
    Parameter,
    directory_of,
    normalize_prefix,
)
from ssmshell.trie import PathTrie

logger = get_logger(__name__)


def _ancestors(prefix: str) -> Iterable[str]:
    """Yield *prefix* and each of its ancestors, deepest first, ending at ``"/"``."""
    current = normalize_prefix(prefix)
    yield current
    while current not in (SEPARATOR, ""):
        idx = current.rfind(SEPARATOR)
        if idx < 0:
            return
        current = current[:idx] or SEPARATOR
        yield current


class ParameterCache:
    """Parameters keyed by path, mirrored into a :class:`PathTrie` for completion.

    Also carries the per-session state the interpreter works against: the
    selected path, the base prefix and the last search results.  Writers are
    serialized by a re-entrant lock; completion reads take the same lock only
    long enough to materialize their result, so a reader sees a batch either
    entirely or not at all.

    Stored entries are replaced on update, never mutated in place.
    """

    def __init__(self, base_path: str = SEPARATOR) -> None:
        self.base_path = base_path
        self.selected_path: str | None = None
        self.search_results: list[str] = []
        self._entries: dict[str, Parameter] = {}
        self._trie = PathTrie()
        self._loaded: set[str] = set()
        self._revision = 0
        self._written: dict[str, int] = {}  # path -> revision of its last write or removal
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    @property
    def trie(self) -> PathTrie:
        return self._trie

    @property
    def revision(self) -> int:
        """Counter bumped by every write and removal."""
        with self._lock:
            return self._revision

    @property
    def loaded_prefixes(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._loaded)

    def get(self, path: str) -> Parameter:
        """Return the cached entry at *path*.

        Raises:
            NotCached: If *path* was never fetched.
        """
        try:
            return self._entries[path]
        except KeyError:
            raise NotCached(path) from None

    def put(self, entry: Parameter, confirmed: bool = True) -> Parameter:
        """Upsert *entry*.

        A *confirmed* entry reflects the remote store and is stored clean; an
        unconfirmed one is a pending local write and is stored dirty.
        """
        stored = replace(entry, dirty=not confirmed)
        with self._lock:
            self._entries[stored.path] = stored
            self._trie.insert(stored.path)
            self._touch(stored.path)
        logger.debug("Cached %s (dirty=%s)", stored.path, stored.dirty)
        return stored

    def put_batch(
        self,
        entries: Iterable[Parameter],
        prefix: str | None = None,
        since_revision: int | None = None,
    ) -> int:
        """Commit remote-confirmed *entries* in one step, then mark *prefix* loaded.

        Entries are copied before the lock is taken, so a bad entry leaves the
        cache untouched.

        Args:
            since_revision: :attr:`revision` when the batch was requested.
                Paths written or removed after that are newer than the batch
                and are left alone.

        Returns:
            Number of entries committed.
        """
        staged = [replace(entry, dirty=False) for entry in entries]
        committed = 0
        with self._lock:
            for entry in staged:
                newer = self._written.get(entry.path, 0)
                if since_revision is not None and newer > since_revision:
                    logger.debug("Kept %s: changed while the batch was in flight", entry.path)
                    continue
                self._entries[entry.path] = entry
                self._trie.insert(entry.path)
                self._touch(entry.path)
                committed += 1
            if prefix is not None:
                self._loaded.add(normalize_prefix(prefix))
        logger.debug("Committed %d parameter(s) under %s", committed, prefix)
        return committed

    def _touch(self, path: str) -> None:
        self._revision += 1
        self._written[path] = self._revision

    def remove(self, path: str) -> bool:
        """Drop *path* from the cache and the trie."""
        with self._lock:
            removed = self._entries.pop(path, None)
            self._trie.remove(path)
            self._touch(path)
            if self.selected_path == path:
                self.selected_path = None
        return removed is not None

    def mark_prefix_loaded(self, prefix: str) -> None:
        with self._lock:
            self._loaded.add(normalize_prefix(prefix))

    def is_prefix_loaded(self, prefix: str) -> bool:
        """True when *prefix* or one of its ancestors was fetched exhaustively."""
        with self._lock:
            return any(candidate in self._loaded for candidate in _ancestors(prefix))

    def is_namespace(self, path: str) -> bool:
        with self._lock:
            return self._trie.is_namespace(path)

    def completions(self, prefix: str) -> Completions:
        """Cached paths starting with *prefix*, flagged with whether the list is exhaustive."""
        with self._lock:
            paths = list(self._trie.completions(prefix))
            complete = self.is_prefix_loaded(directory_of(prefix))
        return Completions(paths=paths, complete=complete)

    def search(self, term: str) -> list[str]:
        """Cached paths containing *term*, case-insensitively, in path order."""
        needle = term.lower()
        with self._lock:
            return [path for path in self._trie.completions("") if needle in path.lower()]

    def entries(self) -> list[Parameter]:
        """Snapshot of every cached entry, sorted by path."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda p: p.path)

    def dirty_entries(self) -> list[Parameter]:
        return [entry for entry in self.entries() if entry.dirty]
