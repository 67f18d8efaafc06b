"""Logging setup for ssmshell."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "ssmshell"


def setup_logging(verbose: int = 0) -> None:
    """Configure the ``ssmshell`` logger hierarchy.

    Args:
        verbose: 0 for warnings only, 1 for INFO, 2 or more for DEBUG.
            3 or more also lets botocore/boto3 debug output through.
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbose >= 2,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger(_LOGGER_NAME)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    logging.getLogger("botocore").setLevel(logging.DEBUG if verbose >= 3 else logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.DEBUG if verbose >= 3 else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name* within the ``ssmshell`` hierarchy."""
    return logging.getLogger(name)
