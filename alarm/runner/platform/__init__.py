from __future__ import annotations

import sys

from .base import PlatformSupport
from .posix import PosixPlatformSupport


def get_platform_support(*, verbose: bool = False) -> PlatformSupport:
    """Return the platform adapter for the current host."""

    if sys.platform == "win32":
        raise RuntimeError("alarm relies on flock() and POSIX signals; Windows is not supported")
    return PosixPlatformSupport(verbose=verbose)


__all__ = [
    "PlatformSupport",
    "PosixPlatformSupport",
    "get_platform_support",
]
