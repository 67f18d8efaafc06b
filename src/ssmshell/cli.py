"""CLI entry point for ssmshell."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from botocore.exceptions import BotoCoreError
from rich.console import Console

from ssmshell import __version__
from ssmshell.cache import ParameterCache
from ssmshell.config import DEFAULT_STORE_DIR, ShellConfig
from ssmshell.errors import SyncFailed
from ssmshell.interpreter import CommandInterpreter
from ssmshell.logging_config import get_logger, setup_logging
from ssmshell.models import is_valid_path, normalize_prefix
from ssmshell.remote import SsmRemoteStore
from ssmshell.repl import run_repl
from ssmshell.store import CacheStore
from ssmshell.sync import SyncEngine

console = Console()
logger = get_logger(__name__)


def _abort(msg: str) -> None:
    console.print(f"[bold red]Error:[/] {msg}")
    sys.exit(1)


def _validate_path(path: str) -> None:
    """Validate that *path* looks like a valid SSM parameter path."""
    if not path or not path.strip():
        _abort("Path must not be empty.")
    if not is_valid_path(path):
        _abort(
            f"Invalid SSM path {path!r}. "
            "Paths must start with '/' and contain only alphanumerics, '.', '_', '-', or '/'."
        )


def _save(store: CacheStore, cache: ParameterCache) -> None:
    try:
        store.save(cache)
    except OSError as exc:
        logger.warning("Could not write offline cache %s: %s", store.path, exc)


def _history_path(config: ShellConfig) -> Path | None:
    if not config.persist:
        return None
    try:
        config.store_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("No command history: %s", exc)
        return None
    return config.store_dir / "history"


def _initial_load(config: ShellConfig, engine: SyncEngine, store: CacheStore | None) -> None:
    """Fill the cache from the offline file, or from SSM when refreshing or missing."""
    cache = engine.cache
    if store is not None and not config.refresh and store.load(cache):
        console.print(
            f"[dim]Loaded {len(cache)} parameter(s) from offline cache; "
            "type 'refresh' to update from SSM.[/]"
        )
        return

    try:
        count = engine.bulk_load(config.base_path)
    except SyncFailed as exc:
        if store is not None and store.load(cache):
            console.print(
                f"[bold yellow]WARNING:[/] {exc}. Using the offline cache "
                f"({len(cache)} parameter(s))."
            )
            return
        _abort(str(exc))
        return

    console.print(f"Loaded {count} parameter(s) under {config.base_path}")
    if store is not None:
        _save(store, cache)


@click.command()
@click.argument("path", required=False, default="/")
@click.option("--profile", envvar="AWS_PROFILE", default=None, help="AWS named profile.")
@click.option("--region", envvar="AWS_REGION", default=None, help="AWS region.")
@click.option(
    "--decrypt/--no-decrypt",
    default=True,
    help="Fetch SecureString values decrypted (default: decrypt).",
)
@click.option(
    "--show-secrets",
    is_flag=True,
    default=False,
    help="Display SecureString values (default: redacted).",
)
@click.option(
    "--refresh", "-r", is_flag=True, default=False, help="Ignore the offline cache and load from SSM."
)
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="SSMSHELL_STORE_DIR",
    default=DEFAULT_STORE_DIR,
    show_default=True,
    help="Directory for the offline cache and history.",
)
@click.option(
    "--persist/--no-persist",
    default=True,
    help="Read and write the offline cache (default: on).",
)
@click.option(
    "--prefetch/--no-prefetch",
    default=True,
    help="Load unloaded namespaces in the background while completing (default: on).",
)
@click.option(
    "--clipboard/--no-clipboard",
    default=True,
    help="Copy the value of each shown parameter to the clipboard (default: on).",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v INFO, -vv DEBUG, -vvv include botocore).",
)
@click.version_option(__version__, "--version", "-V")
def main(
    path: str,
    profile: str | None,
    region: str | None,
    decrypt: bool,
    show_secrets: bool,
    refresh: bool,
    store_dir: Path,
    persist: bool,
    prefetch: bool,
    clipboard: bool,
    verbose: int,
) -> None:
    """Browse and edit AWS SSM Parameter Store with tab completion.

    PATH (optional positional argument) is the namespace loaded at startup
    and defaults to "/" (the root).

    \b
    Commands inside the shell:
      <path>                    select a parameter and show its value
      set <value>               change the selected parameter
      insert <path>:<value>:<type>
                                create a parameter (type: Plain, Secret, List)
      reload                    re-read the selected parameter from SSM
      refresh                   re-read everything under PATH
      search <term> / select N  find and select a cached parameter
      exit                      quit

    \b
    Examples:
      ssmshell /app/prod
      ssmshell --refresh --profile prod /app
      ssmshell --show-secrets /app/prod
    """
    _validate_path(path)
    setup_logging(verbose)

    config = ShellConfig(
        base_path=normalize_prefix(path),
        region=region,
        profile=profile,
        decrypt=decrypt,
        refresh=refresh,
        store_dir=store_dir,
        persist=persist,
        prefetch=prefetch,
        clipboard=clipboard,
        verbose=verbose,
    )

    try:
        remote = SsmRemoteStore(profile=config.profile, region=config.region, decrypt=config.decrypt)
    except BotoCoreError as exc:
        _abort(str(exc))
        return

    cache = ParameterCache(base_path=config.base_path)
    store = CacheStore(config.cache_file) if config.persist else None

    with SyncEngine(cache, remote) as engine:
        _initial_load(config, engine, store)
        interpreter = CommandInterpreter(cache, engine, prefetch=config.prefetch)
        run_repl(
            interpreter,
            console,
            history_path=_history_path(config),
            reveal=show_secrets,
            on_change=(lambda: _save(store, cache)) if store is not None else None,
            clipboard=config.clipboard,
        )

    if store is not None:
        _save(store, cache)
    dirty = cache.dirty_entries()
    if dirty:
        console.print(
            f"[bold yellow]WARNING:[/] {len(dirty)} parameter(s) were not written to SSM: "
            + ", ".join(p.path for p in dirty)
        )
