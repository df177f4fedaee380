"""Shared utility functions used across the RAG service."""
from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Any

import orjson


# --- Text Utilities -----------------------------------------------------------

def normalize_newlines(text: str) -> str:
    """Convert CRLF to LF and collapse runs of 3+ newlines to a single blank line."""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate_text(text: str, max_chars: int = 300) -> str:
    """Truncate text for display purposes."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "..."


# --- File I/O -----------------------------------------------------------------

def save_json_atomic(data: Any, path: str | Path) -> None:
    """
    Serialise data to JSON with orjson and swap it into place atomically.

    The payload is written to a temp file in the target directory, flushed
    to disk, then renamed over the destination, so readers only ever see
    the old file or the complete new one.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = orjson.dumps(data, default=str, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def load_json(path: str | Path) -> Any:
    """Load JSON data from file."""
    with open(Path(path), "rb") as f:
        return orjson.loads(f.read())
