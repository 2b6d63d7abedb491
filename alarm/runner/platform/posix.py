from __future__ import annotations

import os
import signal
import subprocess
import sys
from typing import List, Optional

import psutil

from .base import PlatformSupport


class PosixPlatformSupport(PlatformSupport):
    """Platform helpers for Unix-like systems."""

    def kill_process(self, process: subprocess.Popen) -> None:
        # Only the direct child is targeted; grandchildren keep running.
        try:
            os.kill(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    def kill_process_tree(self, process: subprocess.Popen) -> None:
        descendants = self.collect_descendant_pids(process.pid)
        self.kill_process(process)
        for pid in descendants:
            try:
                os.kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                continue
            except PermissionError as exc:
                if self.verbose:
                    print(f"Warning: Failed to kill process {pid}: {exc}", file=sys.stderr)

    def collect_descendant_pids(self, root_pid: int) -> List[int]:
        try:
            children = psutil.Process(root_pid).children(recursive=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return []
        return [child.pid for child in children]

    def decode_signal(self, returncode: int) -> Optional[int]:
        if returncode < 0:
            return -returncode
        return None
