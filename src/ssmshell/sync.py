"""Reconcile the local parameter cache with the remote store."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import UTC, datetime

from ssmshell.cache import ParameterCache
from ssmshell.errors import (
    AlreadyExists,
    NotCached,
    ParameterNotFound,
    RemoteError,
    SyncFailed,
    UnknownPath,
)
from ssmshell.logging_config import get_logger
from ssmshell.models import SEPARATOR, Ack, Parameter, ParameterType, normalize_prefix
from ssmshell.remote import RemoteStore

logger = get_logger(__name__)


class SyncEngine:
    """Moves data between a :class:`RemoteStore` and a :class:`ParameterCache`.

    Every remote failure is raised as :class:`SyncFailed` and leaves the
    cache at its last known-good state.  The engine never retries; retry
    policy belongs to the remote client (boto3's adaptive retry for SSM).
    """

    def __init__(self, cache: ParameterCache, remote: RemoteStore) -> None:
        self.cache = cache
        self.remote = remote
        self._executor: ThreadPoolExecutor | None = None
        self._pending: dict[str, Future[int]] = {}
        self._pending_lock = threading.Lock()
        self._closed = threading.Event()

    def __enter__(self) -> SyncEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def bulk_load(self, prefix: str) -> int:
        """Fetch everything under *prefix* and commit it as one batch.

        Entries written or removed locally while the fetch was in flight are
        newer than the batch and keep their cached state.

        Returns:
            Number of parameters committed.  0 if the engine was closed while
            the fetch was in flight; that batch is discarded.

        Raises:
            SyncFailed: If the remote listing fails.  Nothing is committed and
                *prefix* is not marked loaded.
        """
        logger.info("Loading parameters under %s", prefix)
        requested_at = self.cache.revision
        try:
            batch = self.remote.list_by_prefix(prefix)
        except RemoteError as exc:
            logger.warning("Loading %s failed: %s", prefix, exc)
            raise SyncFailed(prefix, exc) from exc

        if self.closed:
            logger.info("Discarding %d fetched parameter(s) under %s", len(batch), prefix)
            return 0
        return self.cache.put_batch(batch, prefix=prefix, since_revision=requested_at)

    def reload(self, path: str) -> Ack:
        """Re-fetch *path* from the remote store, discarding any unconfirmed local edit.

        A *path* ending in ``/``, or naming a namespace rather than a cached
        parameter, reloads the whole subtree.  If the remote no longer has the
        parameter it is dropped from the cache and :class:`SyncFailed` is
        raised with :class:`ParameterNotFound` as its cause.
        """
        if path.endswith(SEPARATOR) or (path not in self.cache and self.cache.is_namespace(path)):
            count = self.bulk_load(path)
            return Ack(action="reload", path=normalize_prefix(path), count=count)

        try:
            fresh = self.remote.get_value(path)
        except ParameterNotFound as exc:
            if self.cache.remove(path):
                logger.info("Dropped %s: no longer in the remote store", path)
            raise SyncFailed(path, exc) from exc
        except RemoteError as exc:
            raise SyncFailed(path, exc) from exc

        entry = self.cache.put(fresh, confirmed=True)
        return Ack(action="reload", path=path, entry=entry, count=1)

    def set_value(self, path: str, new_value: str) -> Parameter:
        """Optimistically change a cached parameter, then write it through.

        The cached entry is updated and marked dirty before the remote call.
        It stays dirty if the write fails, until a successful retry or
        :meth:`reload`.

        Raises:
            UnknownPath: If *path* has no cached entry.
            SyncFailed: If the remote write fails.
        """
        try:
            current = self.cache.get(path)
        except NotCached:
            raise UnknownPath(path) from None

        pending = self.cache.put(replace(current, value=new_value), confirmed=False)
        try:
            version = self.remote.put_value(path, new_value, current.type)
        except RemoteError as exc:
            logger.warning("%s left dirty: %s", path, exc)
            raise SyncFailed(path, exc) from exc

        now = datetime.now(UTC)
        return self.cache.put(
            replace(pending, version=version, last_modified=now, fetched_at=now),
            confirmed=True,
        )

    def insert_value(self, path: str, value: str, param_type: ParameterType) -> Parameter:
        """Create a new parameter remotely, caching it only once the store confirms.

        Raises:
            AlreadyExists: If *path* is already cached (no remote call is made)
                or the remote store already has it.
            SyncFailed: If the remote create fails for any other reason.
        """
        if path in self.cache:
            raise AlreadyExists(path)

        try:
            version = self.remote.create_value(path, value, param_type)
        except RemoteError as exc:
            raise SyncFailed(path, exc) from exc

        now = datetime.now(UTC)
        entry = Parameter(
            path=path,
            value=value,
            type=param_type,
            version=version,
            last_modified=now,
            fetched_at=now,
        )
        return self.cache.put(entry, confirmed=True)

    def prefetch(self, prefix: str) -> Future[int] | None:
        """Load *prefix* on a background worker unless it is already loaded or pending."""
        if self.closed:
            return None
        key = normalize_prefix(prefix)
        if self.cache.is_prefix_loaded(key):
            return None

        with self._pending_lock:
            future = self._pending.get(key)
            if future is not None and not future.done():
                return future
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="ssmshell-prefetch"
                )
            future = self._executor.submit(self._prefetch, key)
            self._pending[key] = future
        logger.debug("Scheduled background load of %s", key)
        return future

    def _prefetch(self, prefix: str) -> int:
        try:
            return self.bulk_load(prefix)
        except SyncFailed as exc:
            logger.warning("Background load of %s failed: %s", prefix, exc.cause)
            return 0

    def close(self) -> None:
        """Stop background work; fetches still in flight are discarded on return."""
        self._closed.set()
        with self._pending_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
            self._pending.clear()
