"""Operating system and data helpers."""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping

try:
    import resource
except ImportError:  # Windows
    resource = None  # type: ignore[assignment]


def open_file_limit() -> str:
    """Return the soft limit on open files as text, or why it is not known."""
    if resource is None:
        return "unsupported"
    try:
        soft, _hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    except (OSError, ValueError):
        return "unknown"
    if soft == resource.RLIM_INFINITY:
        return "unlimited"
    return str(soft)


def is_tty() -> bool:
    """Return True when standard output is a terminal."""
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def to_json(value: Any) -> bytes:
    """Serialise a value as compact JSON with HTML-sensitive characters escaped."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    text = (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return text.encode()


def keys(mapping: Mapping[str, Any]) -> list[str]:
    """Return the keys of a mapping as a list."""
    return list(mapping)