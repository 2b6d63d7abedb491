"""Building blocks used by the alarm supervisor."""
from __future__ import annotations

from .capture import OutputCapture
from .configuration import RunSettings, Whitelist, WhitelistError, is_parallel_run, load_whitelist
from .deadline import DeadlineRunner, ExecutionResult, Outcome
from .identity import extract_test_id
from .locks import FileLock
from .video import VideoModeProbe

__all__ = [
    "DeadlineRunner",
    "ExecutionResult",
    "FileLock",
    "Outcome",
    "OutputCapture",
    "RunSettings",
    "VideoModeProbe",
    "Whitelist",
    "WhitelistError",
    "extract_test_id",
    "is_parallel_run",
    "load_whitelist",
]
