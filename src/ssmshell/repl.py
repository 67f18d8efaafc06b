"""prompt_toolkit front end for the command interpreter."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pyperclip
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import FileHistory, InMemoryHistory
from rich.console import Console
from rich.text import Text

from ssmshell.cache import ParameterCache
from ssmshell.errors import ShellError, SyncFailed
from ssmshell.formatters import render_ack, render_completions, render_error, render_search
from ssmshell.interpreter import COMMANDS, INSERT_DELIMITER, CommandInterpreter
from ssmshell.logging_config import get_logger
from ssmshell.models import Ack, Completions, Exit, Parameter, SearchResults, ShellResult

logger = get_logger(__name__)

_MUTATING_ACTIONS = ("set", "insert", "reload", "refresh")
_COPIED_ACTIONS = ("set", "insert", "reload", "select")


class ParameterCompleter(Completer):
    """Tab completion over cached paths and command keywords.

    ``set`` and ``insert`` complete to a template filled from the selected
    parameter, so its current value can be edited in place.
    """

    def __init__(self, interpreter: CommandInterpreter) -> None:
        self.interpreter = interpreter

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterator[Completion]:
        text = document.text_before_cursor.lstrip()
        keyword = text.strip().lower()

        template = self._template(keyword)
        if template is not None:
            yield Completion(template, start_position=-len(text))
            return

        if " " in text:
            return

        if text:
            for command in COMMANDS:
                if command.startswith(keyword):
                    yield Completion(command, start_position=-len(text), display_meta="command")
        for path in self.interpreter.request_completions(text).paths:
            yield Completion(path, start_position=-len(text))

    def _template(self, keyword: str) -> str | None:
        cache = self.interpreter.cache
        selected = cache.selected_path
        if keyword not in ("set", "insert") or selected is None or selected not in cache:
            return None
        entry = cache.get(selected)
        if keyword == "set":
            return f"set {entry.value}"
        return INSERT_DELIMITER.join((f"insert {selected}", entry.value, entry.type))


def prompt_text(interpreter: CommandInterpreter) -> str:
    """Prompt showing the selected path, with ``*`` while it holds an unsaved edit."""
    cache = interpreter.cache
    selected = cache.selected_path
    dirty = selected is not None and selected in cache and cache.get(selected).dirty
    return f"{selected or cache.base_path}{'*' if dirty else ''} >> "


def copy_to_clipboard(param: Parameter, console: Console, reveal: bool = False) -> bool:
    """Put *param*'s value on the system clipboard.

    Redacted SecureString values and entries with no fetched value are
    skipped.  A clipboard failure is reported on *console* and the session
    carries on.
    """
    if param.is_secure and not reveal:
        return False
    if not param.is_fetched and not param.dirty:
        return False
    try:
        pyperclip.copy(param.value)
    except pyperclip.PyperclipException as exc:
        logger.debug("Clipboard copy of %s failed: %s", param.path, exc)
        console.print(Text(f"Could not copy to clipboard: {exc}", style="dim red"))
        return False
    console.print(Text("Copied to clipboard", style="dim"))
    return True


def _shown_entry(result: ShellResult, cache: ParameterCache) -> Parameter | None:
    """The entry a result displays, if it displays exactly one."""
    if isinstance(result, Completions):
        if result.selected is not None and result.selected in cache:
            return cache.get(result.selected)
        return None
    if isinstance(result, Ack) and result.action in _COPIED_ACTIONS:
        return result.entry
    return None


def run_repl(
    interpreter: CommandInterpreter,
    console: Console,
    history_path: Path | None = None,
    reveal: bool = False,
    on_change: Callable[[], None] | None = None,
    session: Any = None,
    clipboard: bool = False,
) -> None:
    """Read lines until ``exit``, Ctrl-C or Ctrl-D, printing each result.

    *on_change* runs after every command that touched the remote store,
    including failed writes that left an entry dirty.  With *clipboard*, the
    value of a selected, written or reloaded parameter is also copied.
    """
    if session is None:
        history = FileHistory(str(history_path)) if history_path else InMemoryHistory()
        session = PromptSession(
            history=history,
            completer=ParameterCompleter(interpreter),
            complete_while_typing=False,
        )

    console.print("AWS Parameter Store shell")
    console.print("Type a parameter path and use [red]Tab[/] for completion")
    console.print("Type '[yellow]exit[/]' to quit")

    while True:
        try:
            line = session.prompt(prompt_text(interpreter))
        except (KeyboardInterrupt, EOFError):
            break
        if not line.strip():
            continue

        try:
            result = interpreter.submit_line(line)
        except ShellError as exc:
            console.print(render_error(exc))
            if isinstance(exc, SyncFailed) and on_change is not None:
                on_change()
            continue

        if isinstance(result, Exit):
            break
        if isinstance(result, Completions):
            console.print(render_completions(result, interpreter.cache, reveal))
        elif isinstance(result, SearchResults):
            console.print(render_search(result))
        elif isinstance(result, Ack):
            console.print(render_ack(result, reveal))
            if result.action in _MUTATING_ACTIONS and on_change is not None:
                on_change()

        if clipboard:
            entry = _shown_entry(result, interpreter.cache)
            if entry is not None:
                copy_to_clipboard(entry, console, reveal)

    logger.debug("Session ended")
