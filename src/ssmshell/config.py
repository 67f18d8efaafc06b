"""Runtime configuration for an ssmshell session."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

DEFAULT_STORE_DIR = Path.home() / ".ssmshell"


def cache_file_name(base_path: str) -> str:
    """File name of the offline cache for *base_path*.

    The readable part flattens separators, so the name also carries a digest
    of the exact path: ``/app_x`` and ``/app/x`` get different files.
    """
    slug = base_path.strip("/").replace("/", "_") or "root"
    digest = hashlib.sha1(base_path.encode("utf-8")).hexdigest()[:10]
    return f"parameters_{slug}_{digest}.json"


@dataclass(frozen=True)
class ShellConfig:
    """Settings collected from the command line and environment."""

    base_path: str = "/"
    region: str | None = None
    profile: str | None = None
    decrypt: bool = True
    refresh: bool = False           # ignore the offline cache file on startup
    store_dir: Path = DEFAULT_STORE_DIR
    persist: bool = True            # read and write the offline cache file
    prefetch: bool = True           # load unloaded namespaces in the background
    clipboard: bool = True          # copy shown values to the system clipboard
    verbose: int = 0

    @property
    def cache_file(self) -> Path:
        """Offline cache file for :attr:`base_path`."""
        return self.store_dir / cache_file_name(self.base_path)
