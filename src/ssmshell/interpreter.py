"""Turn interactive input lines into cache and sync operations."""

from __future__ import annotations

from collections.abc import Callable

from ssmshell.cache import ParameterCache
from ssmshell.errors import InvalidCommand
from ssmshell.logging_config import get_logger
from ssmshell.models import (
    SEPARATOR,
    Ack,
    Completions,
    Exit,
    ParameterType,
    SearchResults,
    ShellResult,
    directory_of,
    is_valid_path,
    normalize_prefix,
    parse_type,
)
from ssmshell.sync import SyncEngine

logger = get_logger(__name__)

COMMANDS = ("exit", "insert", "refresh", "reload", "search", "select", "set")
INSERT_DELIMITER = ":"
INSERT_USAGE = "expected insert <path>:<value>:<type>"


class CommandInterpreter:
    """Classify one input line at a time and dispatch it.

    The first whitespace-separated word is matched case-insensitively
    against :data:`COMMANDS`; anything else is a path fragment to navigate
    to.  The only state the interpreter touches is the session held by the
    cache (selected path, base path, last search results).

    :meth:`submit_line` returns a :class:`Completions`, :class:`Ack`,
    :class:`SearchResults` or :class:`Exit`, and raises
    :class:`~ssmshell.errors.ShellError` subclasses for everything the user
    should be told about.  None of them end the session.
    """

    def __init__(self, cache: ParameterCache, engine: SyncEngine, prefetch: bool = True) -> None:
        self.cache = cache
        self.engine = engine
        self.prefetch = prefetch
        self._handlers: dict[str, Callable[[str, str, bool], ShellResult]] = {
            "exit": self._exit,
            "insert": self._insert,
            "refresh": self._refresh,
            "reload": self._reload,
            "search": self._search,
            "select": self._select,
            "set": self._set,
        }

    def submit_line(self, raw: str) -> ShellResult:
        line = raw.rstrip("\r\n")
        stripped = line.lstrip()
        keyword, sep, rest = stripped.partition(" ")
        handler = self._handlers.get(keyword.lower())
        if handler is None:
            return self._navigate(stripped.rstrip())
        logger.debug("Dispatching %s", keyword.lower())
        return handler(raw, rest, bool(sep))

    def request_completions(self, partial_path: str) -> Completions:
        """Complete *partial_path* from the cache without waiting on the network.

        When the answer may be partial, a background load of the enclosing
        namespace is scheduled so a later request can be exhaustive.  Only
        absolute paths below the root qualify: bare words and first-level
        fragments such as ``/ap`` would otherwise pull the whole store.
        """
        result = self.cache.completions(partial_path)
        if result.complete or not self.prefetch or not partial_path.startswith(SEPARATOR):
            return result
        namespace = directory_of(partial_path)
        if namespace != SEPARATOR:
            self.engine.prefetch(namespace)
        return result

    def _require_selection(self, raw: str) -> str:
        if self.cache.selected_path is None:
            raise InvalidCommand(raw, "no parameter selected; enter a path first")
        return self.cache.selected_path

    def _exit(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        return Exit()

    def _reload(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        if rest.strip():
            raise InvalidCommand(raw, "reload takes no arguments")
        return self.engine.reload(self._require_selection(raw))

    def _refresh(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        if rest.strip():
            raise InvalidCommand(raw, "refresh takes no arguments")
        base = self.cache.base_path
        count = self.engine.bulk_load(base)
        return Ack(action="refresh", path=normalize_prefix(base), count=count)

    def _set(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        # Everything after "set " is the value, spaces included.
        if not has_args:
            raise InvalidCommand(raw, "set requires a value")
        path = self._require_selection(raw)
        entry = self.engine.set_value(path, rest)
        return Ack(action="set", path=path, entry=entry)

    def _insert(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        path, value, param_type = parse_insert(raw, rest)
        entry = self.engine.insert_value(path, value, param_type)
        return Ack(action="insert", path=path, entry=entry)

    def _search(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        term = rest.strip()
        if not term:
            raise InvalidCommand(raw, "search requires a term")
        self.cache.search_results = self.cache.search(term)
        return SearchResults(term=term, paths=list(self.cache.search_results))

    def _select(self, raw: str, rest: str, has_args: bool) -> ShellResult:
        target = rest.strip()
        if not target:
            raise InvalidCommand(raw, "select requires a search index or a path")
        if target.isdigit():
            index = int(target)
            if index >= len(self.cache.search_results):
                raise InvalidCommand(raw, f"no search result #{index}")
            target = self.cache.search_results[index]
        elif target not in self.cache and not self.cache.is_namespace(target):
            raise InvalidCommand(raw, f"{target} is not a known parameter or namespace")

        self.cache.selected_path = target
        entry = self.cache.get(target) if target in self.cache else None
        return Ack(action="select", path=target, entry=entry)

    def _navigate(self, fragment: str) -> Completions:
        result = self.request_completions(fragment)

        if fragment in self.cache:
            selected = fragment
        elif fragment and self.cache.is_namespace(fragment):
            selected = normalize_prefix(fragment)
        elif len(result.paths) == 1:
            selected = result.paths[0]
        else:
            selected = None

        if selected is not None:
            self.cache.selected_path = selected
            logger.debug("Selected %s", selected)
        return Completions(paths=result.paths, complete=result.complete, selected=selected)


def parse_insert(raw: str, rest: str) -> tuple[str, str, ParameterType]:
    """Split ``<path>:<value>:<type>`` at the first and last delimiter.

    Neither an SSM path nor a type name can contain ``:``, so the value is
    everything between the first and last delimiter, colons included.

    Raises:
        InvalidCommand: On a missing delimiter, invalid path or unknown type.
    """
    first = rest.find(INSERT_DELIMITER)
    last = rest.rfind(INSERT_DELIMITER)
    if first < 0 or first == last:
        raise InvalidCommand(raw, INSERT_USAGE)

    path = rest[:first].strip()
    value = rest[first + 1 : last]
    if not path or path == "/" or not is_valid_path(path):
        raise InvalidCommand(raw, f"invalid parameter path {path!r}")
    try:
        param_type = parse_type(rest[last + 1 :])
    except ValueError as exc:
        raise InvalidCommand(raw, str(exc)) from None
    return path, value, param_type
