"""
Package version.

Installed distributions report their metadata version; a source checkout
falls back to BASE_VERSION with a local `+src` marker so it never compares
equal to a release.
"""
from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as _pkg_version

# Bump together with pyproject.toml.
BASE_VERSION = "0.1.0"

_PKG_NAME = "vrf-coordinator"


@lru_cache(maxsize=1)
def get_version() -> str:
    try:
        return _pkg_version(_PKG_NAME)
    except PackageNotFoundError:
        return f"{BASE_VERSION}+src"


def version_tuple() -> tuple:
    """(major, minor, patch) of the release part, ignoring local markers."""
    release = get_version().split("+", 1)[0]
    parts = []
    for p in release.split(".")[:3]:
        digits = "".join(ch for ch in p if ch.isdigit())
        parts.append(int(digits or 0))
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


__version__ = get_version()
__all__ = ["__version__", "get_version", "version_tuple", "BASE_VERSION"]
