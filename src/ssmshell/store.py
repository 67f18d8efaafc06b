"""Offline persistence of the parameter cache between sessions."""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ssmshell.cache import ParameterCache
from ssmshell.logging_config import get_logger
from ssmshell.models import Parameter

logger = get_logger(__name__)

FORMAT_VERSION = 1


def _dump_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _load_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _to_record(param: Parameter) -> dict[str, Any]:
    # SecureString values never touch the disk; they come back as
    # known-but-unfetched entries.
    if param.is_secure:
        value, fetched_at = "", None
    else:
        value, fetched_at = param.value, param.fetched_at
    return {
        "path": param.path,
        "value": value,
        "type": param.type,
        "version": param.version,
        "last_modified": _dump_time(param.last_modified),
        "fetched_at": _dump_time(fetched_at),
        "dirty": param.dirty and not param.is_secure,
    }


def _from_record(record: dict[str, Any]) -> Parameter:
    return Parameter(
        path=record["path"],
        value=record.get("value", ""),
        type=record.get("type", "String"),
        version=record.get("version", 0),
        last_modified=_load_time(record.get("last_modified")),
        fetched_at=_load_time(record.get("fetched_at")),
        dirty=bool(record.get("dirty", False)),
    )


class CacheStore:
    """JSON file holding one base path's cached parameters.

    A missing or unreadable file is treated as an empty store; the shell then
    falls back to the remote store.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self, cache: ParameterCache) -> bool:
        """Fill *cache* from the file and mark its base path loaded.

        A file written for a different base path counts as missing.

        Returns:
            *True* if the file was read, *False* if it was missing or invalid.
        """
        if not self.exists():
            logger.info("No offline cache at %s", self.path)
            return False
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            stored_base = data["base_path"]
            params = [_from_record(record) for record in data["parameters"]]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable offline cache %s: %s", self.path, exc)
            return False
        if stored_base != cache.base_path:
            logger.warning(
                "Ignoring offline cache %s: it holds %s, not %s",
                self.path,
                stored_base,
                cache.base_path,
            )
            return False

        clean = [p for p in params if not p.dirty]
        cache.put_batch(clean, prefix=cache.base_path)
        for param in params:
            if param.dirty:
                cache.put(param, confirmed=False)
        logger.info("Loaded %d parameter(s) from %s", len(params), self.path)
        return True

    def save(self, cache: ParameterCache) -> None:
        """Write *cache* to the file, replacing it atomically."""
        payload = {
            "format": FORMAT_VERSION,
            "base_path": cache.base_path,
            "saved_at": datetime.now(UTC).isoformat(),
            "parameters": [_to_record(param) for param in cache.entries()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.chmod(tmp, 0o600)
        os.replace(tmp, self.path)
        logger.debug("Saved %d parameter(s) to %s", len(payload["parameters"]), self.path)
