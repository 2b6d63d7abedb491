from __future__ import annotations

import subprocess
from typing import List, Optional


class PlatformSupport:
    """Abstract base class describing platform specific process control."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    def kill_process(self, process: subprocess.Popen) -> None:
        """Forcibly terminate ``process`` without giving it a chance to clean up."""

        raise NotImplementedError

    def kill_process_tree(self, process: subprocess.Popen) -> None:
        """Forcibly terminate ``process`` and every descendant still running."""

        raise NotImplementedError

    def collect_descendant_pids(self, root_pid: int) -> List[int]:
        """Return all descendant process IDs for ``root_pid``."""

        return []

    def decode_signal(self, returncode: int) -> Optional[int]:
        """Return the signal number encoded in ``returncode``, or None."""

        return None

    def is_abnormal_exit(self, returncode: int) -> bool:
        """Return True when ``returncode`` means the child did not exit on its own."""

        return self.decode_signal(returncode) is not None
