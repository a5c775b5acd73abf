"""
Console logging for fund-kraken entry points.

Library modules only create module loggers; handlers are installed once by the
CLI through `configure_logging`. Verbosity maps as:

    0 -> WARNING, 1 -> INFO (progress), 2+ -> DEBUG (raw HTML, tables, rows)
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["configure_logging", "level_for_verbosity"]


def level_for_verbosity(verbosity: int) -> int:
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbosity: int = 0, console: Console | None = None) -> None:
    """Route the ``fundkraken`` logger tree to a rich console handler."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger("fundkraken")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level_for_verbosity(verbosity))
    root.propagate = False
