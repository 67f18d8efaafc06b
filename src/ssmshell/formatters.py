"""Rich-based formatters for ssmshell output."""

from __future__ import annotations

from rich.table import Table
from rich.text import Text

from ssmshell.cache import ParameterCache
from ssmshell.errors import ShellError, SyncFailed
from ssmshell.models import Ack, Completions, Parameter, SearchResults

_MAX_VALUE_LEN = 60
_MAX_COMPLETIONS = 50

_REDACTED_LABEL = "[redacted]"
_UNFETCHED_LABEL = "[not fetched; reload to read]"
_DIRTY_LABEL = "[unsaved: remote write failed]"


def _truncate(value: str) -> str:
    if len(value) <= _MAX_VALUE_LEN:
        return value
    return value[:_MAX_VALUE_LEN] + "…"


def _display_value(param: Parameter, reveal: bool, truncate: bool = True) -> str:
    """Return the value to display, or a placeholder for secrets and unfetched entries."""
    if not param.is_fetched and not param.dirty:
        return _UNFETCHED_LABEL
    if param.is_secure and not reveal:
        return _REDACTED_LABEL
    return _truncate(param.value) if truncate else param.value


def _type_style(param: Parameter) -> tuple[str, str]:
    if param.is_secure:
        return "bold yellow", "[SecureString]"
    if param.is_string_list:
        return "bold cyan", "[StringList]"
    return "bold green", "[String]"


def render_entry(param: Parameter, reveal: bool = False) -> Text:
    """One-line description of a cached parameter: path, type, value, dirty marker."""
    name_style, type_tag = _type_style(param)
    label = Text()
    label.append(param.path, style=name_style)
    label.append(f" {type_tag}", style="dim")

    display = _display_value(param, reveal, truncate=False)
    style = "dim red" if display in (_REDACTED_LABEL, _UNFETCHED_LABEL) else "italic"
    label.append(f"  {display}", style=style)

    if param.dirty:
        label.append(f"  {_DIRTY_LABEL}", style="bold red")
    return label


def render_completions(
    result: Completions, cache: ParameterCache, reveal: bool = False
) -> Text:
    """Render completion candidates, the selected entry and a partial-result note."""
    text = Text()
    if result.selected is not None and result.selected in cache:
        text.append("Selected: ", style="bold")
        text.append_text(render_entry(cache.get(result.selected), reveal))
        text.append("\n")
        if result.paths == [result.selected]:
            return text
    elif result.selected is not None:
        text.append("Selected namespace: ", style="bold")
        text.append(f"{result.selected}\n", style="bold blue")

    if not result.paths:
        text.append("No matching parameters", style="dim")
    for path in result.paths[:_MAX_COMPLETIONS]:
        dirty = path in cache and cache.get(path).dirty
        text.append(path, style="bold red" if dirty else "")
        text.append("\n")
    hidden = len(result.paths) - _MAX_COMPLETIONS
    if hidden > 0:
        text.append(f"… and {hidden} more\n", style="dim")
    if not result.complete:
        text.append("\n(partial: this namespace is still being loaded)", style="dim yellow")
    return text


def render_ack(ack: Ack, reveal: bool = False) -> Text:
    """Describe a successful command."""
    text = Text()
    if ack.action in ("refresh", "reload") and ack.entry is None:
        text.append(f"Reloaded {ack.count} parameter(s) under {ack.path}", style="bold green")
        return text

    verbs = {"set": "Set", "insert": "Inserted", "reload": "Reloaded", "select": "Selected"}
    text.append(f"{verbs.get(ack.action, ack.action)}: ", style="bold green")
    if ack.entry is not None:
        text.append_text(render_entry(ack.entry, reveal))
    else:
        text.append(ack.path, style="bold blue")
    return text


def render_search(results: SearchResults) -> Table:
    """Render indexed search matches, usable with ``select <index>``."""
    table = Table(title=f"Search: {results.term}", show_lines=False)
    table.add_column("#", style="yellow", justify="right")
    table.add_column("Path", style="cyan")
    for index, path in enumerate(results.paths):
        table.add_row(str(index), path)
    return table


def render_error(exc: ShellError) -> Text:
    """Render a recoverable error the way the CLI reports fatal ones."""
    text = Text()
    text.append("Error: ", style="bold red")
    text.append(str(exc))
    if isinstance(exc, SyncFailed):
        text.append("\nLocal and remote may differ; retry or run reload.", style="dim")
    return text
