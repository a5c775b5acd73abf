"""
Lightweight file I/O helpers.

- All files are read/written as UTF-8.
- `write_json` pretty-prints with 2-space indentation and does not escape non-ASCII.
- `read_identifiers` reads a newline-delimited list of fund identifiers in full.
- Parent directories are created as needed.
- Functions surface underlying I/O and JSON errors (no silent swallowing).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import cast

from fundkraken.common.types import JSONLike

__all__ = ["write_json", "read_json", "read_identifiers"]


def write_json(path: Path, data: JSONLike) -> Path:
    """Write JSON to disk, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, ensure_ascii=False, indent=2)
    # newline ensures consistent line endings across platforms
    path.write_text(text, encoding="utf-8", newline="\n")
    return path


def read_json(path: Path) -> JSONLike:
    """Read JSON from disk."""
    return cast(JSONLike, json.loads(path.read_text(encoding="utf-8")))


def read_identifiers(path: Path) -> tuple[str, ...]:
    """
    Read fund identifiers (one per line) from `path`.

    Surrounding whitespace is stripped, blank lines are dropped and lines
    starting with ``#`` are treated as comments. Order and duplicates are kept.
    """
    out: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        ident = line.strip()
        if not ident or ident.startswith("#"):
            continue
        out.append(ident)
    return tuple(out)
