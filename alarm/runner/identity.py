"""Derive the ``module:file`` identity of a Wine conformance test run."""
from __future__ import annotations

from typing import Optional, Sequence


LAUNCHER_MARKER = "wine"


def extract_test_id(invocation: Sequence[str], marker: str = LAUNCHER_MARKER) -> Optional[str]:
    """Return ``"module:file"`` for ``invocation``, or None if it cannot be derived.

    The first token containing ``marker`` is taken to be the launcher; it must
    be followed by the test executable (``ntdll_test.exe``) and the test file
    (``generated.c``). The module name ends at the executable's last ``_`` and
    the file name at the test file's last ``.``.
    """

    for index, token in enumerate(invocation):
        if marker in token:
            break
    else:
        return None

    if index + 2 >= len(invocation):
        return None

    module, sep, _ = invocation[index + 1].rpartition("_")
    if not sep:
        return None

    file_name, sep, _ = invocation[index + 2].rpartition(".")
    if not sep:
        return None

    return f"{module}:{file_name}"
