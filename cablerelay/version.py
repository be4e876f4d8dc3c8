"""Program version information."""

from __future__ import annotations

DEFAULT_VERSION = "1.3.0"

# Filled in by release builds.
_BASE = ""
_MODIFIER = ""
_SHA = ""


def build_version(base: str, modifier: str, sha: str) -> str:
    """Compose a version string from a base version, modifier and commit sha."""
    result = base or DEFAULT_VERSION
    if modifier:
        result = f"{result}-{modifier}"
    if sha:
        result = f"{result}-{sha}"
    return result


_VERSION = build_version(_BASE, _MODIFIER, _SHA)


def version() -> str:
    """Return the current program version."""
    return _VERSION


def sha() -> str:
    """Return the build commit sha, empty when unknown."""
    return _SHA