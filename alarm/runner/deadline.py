from __future__ import annotations

import subprocess
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from .platform import PlatformSupport
from .utils import debug, warn


# How long to wait for the kernel to reap a child after SIGKILL.
REAP_GRACE_SECONDS = 5.0

_Redirect = Union[None, int]


class Outcome(Enum):
    EXITED = "exited"
    ABNORMAL = "abnormal"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ExecutionResult:
    """How a supervised child finished."""

    outcome: Outcome
    pid: int
    duration: float
    returncode: Optional[int] = None
    signal: Optional[int] = None

    @property
    def timed_out(self) -> bool:
        return self.outcome is Outcome.TIMED_OUT


class DeadlineRunner:
    """Runs one child process and kills it if it outlives ``timeout`` seconds.

    The deadline is armed as soon as the child has been launched. Waiting is a
    plain ``Popen.wait`` bounded by the time left, so no signal handler or
    global state is involved: the ``Popen`` handle created at launch is the
    only thing the kill path touches.
    """

    def __init__(
        self,
        timeout: float,
        platform: PlatformSupport,
        *,
        kill_tree: bool = False,
        verbose: bool = False,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.timeout = timeout
        self.platform = platform
        self.kill_tree = kill_tree
        self.verbose = verbose

    def run(
        self,
        invocation: Sequence[str],
        *,
        stdout: _Redirect = None,
        stderr: _Redirect = None,
    ) -> ExecutionResult:
        """Launch ``invocation`` and block until it exits or the deadline passes.

        Raises ``OSError`` if the program cannot be started.
        """

        start = time.monotonic()
        process = subprocess.Popen(list(invocation), stdout=stdout, stderr=stderr)
        deadline = time.monotonic() + self.timeout

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._kill(process)
                return ExecutionResult(
                    outcome=Outcome.TIMED_OUT,
                    pid=process.pid,
                    duration=time.monotonic() - start,
                )
            try:
                returncode = process.wait(timeout=remaining)
                break
            except subprocess.TimeoutExpired:
                continue

        duration = time.monotonic() - start
        signal_number = self.platform.decode_signal(returncode)
        if self.platform.is_abnormal_exit(returncode):
            return ExecutionResult(
                outcome=Outcome.ABNORMAL,
                pid=process.pid,
                duration=duration,
                returncode=returncode,
                signal=signal_number,
            )
        return ExecutionResult(
            outcome=Outcome.EXITED,
            pid=process.pid,
            duration=duration,
            returncode=returncode,
        )

    def _kill(self, process: subprocess.Popen) -> None:
        if self.verbose:
            scope = "and its descendants" if self.kill_tree else "only"
            debug(f"deadline of {self.timeout}s passed, killing pid {process.pid} {scope}", sys.stderr)

        if self.kill_tree:
            self.platform.kill_process_tree(process)
        else:
            self.platform.kill_process(process)

        try:
            process.wait(timeout=REAP_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            warn(f"child {process.pid} still running {REAP_GRACE_SECONDS:.0f}s after SIGKILL", sys.stderr)
