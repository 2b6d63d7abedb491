from __future__ import annotations

import os
import sys
from typing import IO, Optional


class Color:
    """ANSI color codes for terminal output"""

    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    RESET = '\033[0m'


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""

    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.2f}s"


def env_flag(name: str) -> bool:
    """Return True if the specified environment variable is truthy."""

    value = os.environ.get(name)
    if value is None:
        return False

    normalized = value.strip().lower()
    if not normalized:
        return False

    return normalized not in {"0", "false", "no", "off"}


def _colorize(stream: IO[str], color: str, text: str) -> str:
    isatty = getattr(stream, "isatty", None)
    if isatty is not None and isatty():
        return f"{color}{text}{Color.RESET}"
    return text


def warn(message: str, stream: Optional[IO[str]] = None) -> None:
    """Print a warning to ``stream`` (stderr by default)."""

    stream = stream if stream is not None else sys.stderr
    print(_colorize(stream, Color.YELLOW, f"Warning: {message}"), file=stream, flush=True)


def error(message: str, stream: Optional[IO[str]] = None) -> None:
    """Print an error to ``stream`` (stderr by default)."""

    stream = stream if stream is not None else sys.stderr
    print(_colorize(stream, Color.RED, f"alarm: {message}"), file=stream, flush=True)


def debug(message: str, stream: Optional[IO[str]] = None) -> None:
    """Print a verbose diagnostic line to ``stream`` (stderr by default)."""

    stream = stream if stream is not None else sys.stderr
    print(_colorize(stream, Color.BLUE, f"alarm: {message}"), file=stream, flush=True)
