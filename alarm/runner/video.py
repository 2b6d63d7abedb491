"""Query and reset the X display's video mode through ``xrandr``.

A test that changes the screen resolution and never restores it breaks
every test that runs after it, so the mode is sampled before and after
each non-whitelisted test.
"""
from __future__ import annotations

import subprocess
import sys
from typing import List, Optional

from .utils import warn


QUERY_COMMAND = ["xrandr", "-q"]
RESET_COMMAND = ["xrandr", "-s", "0"]

# ``xrandr -q`` prints the screen line and the output line before the modes.
HEADER_LINES = 2

PROBE_TIMEOUT = 30.0


def parse_video_mode(output: str) -> Optional[int]:
    """Return the index of the active mode (the line marked ``*``), or None."""

    for line_number, line in enumerate(output.splitlines(), 1):
        if "*" in line:
            return line_number - HEADER_LINES
    return None


def format_video_mode(mode: Optional[int]) -> str:
    return "unknown" if mode is None else str(mode)


class VideoModeProbe:
    """Reads the active video mode; None means the probe was unavailable."""

    def __init__(
        self,
        *,
        query_command: Optional[List[str]] = None,
        reset_command: Optional[List[str]] = None,
        verbose: bool = False,
    ) -> None:
        self.query_command = list(query_command or QUERY_COMMAND)
        self.reset_command = list(reset_command or RESET_COMMAND)
        self.verbose = verbose

    def query(self) -> Optional[int]:
        try:
            result = subprocess.run(
                self.query_command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                timeout=PROBE_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            if self.verbose:
                warn(f"video mode probe unavailable: {exc}", sys.stderr)
            return None

        if result.returncode != 0:
            if self.verbose:
                warn(f"{self.query_command[0]} exited with status {result.returncode}", sys.stderr)
            return None

        return parse_video_mode(result.stdout)

    def reset(self) -> bool:
        """Switch back to the default mode. Returns False if that failed."""

        try:
            result = subprocess.run(
                self.reset_command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                timeout=PROBE_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            if self.verbose:
                warn(f"could not reset video mode: {exc}", sys.stderr)
            return False

        if result.returncode != 0 and self.verbose:
            warn(f"{self.reset_command[0]} exited with status {result.returncode}", sys.stderr)
        return result.returncode == 0
