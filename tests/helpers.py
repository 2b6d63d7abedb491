from __future__ import annotations

import sys
import time
from typing import List, Optional

import psutil


WHITELISTED_ARGS = ["wine", "ntdll_test.exe", "generated.c"]
UNLISTED_ARGS = ["wine", "user32_test.exe", "win.c"]


def python_child(code: str, *test_args: str) -> List[str]:
    """Invocation running ``code`` in a fresh interpreter, followed by ``test_args``."""

    return [sys.executable, "-c", code, *test_args]


def process_gone(pid: int, timeout: float = 5.0) -> bool:
    """Return True once ``pid`` has exited (a zombie counts as exited)."""

    deadline = time.monotonic() + timeout
    while True:
        try:
            status = psutil.Process(pid).status()
        except psutil.NoSuchProcess:
            return True
        if status == psutil.STATUS_ZOMBIE:
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(0.05)


class FakeProbe:
    """Stands in for ``VideoModeProbe`` with canned readings."""

    def __init__(self, *readings: Optional[int]) -> None:
        self.readings = list(readings)
        self.queries = 0
        self.resets = 0

    def query(self) -> Optional[int]:
        self.queries += 1
        if self.readings:
            return self.readings.pop(0)
        return None

    def reset(self) -> bool:
        self.resets += 1
        return True
