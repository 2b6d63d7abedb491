from __future__ import annotations

import os
from bisect import bisect_left
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional, Tuple

from .utils import env_flag


WHITELIST_ENV = "ALARM_WHITELIST"
VERBOSE_ENV = "ALARM_VERBOSE"
KILL_TREE_ENV = "ALARM_KILL_TREE"

MAKEFLAGS_ENV = "MAKEFLAGS"
JOBSERVER_MARKER = "jobserver"

EXECUTION_LOCK_NAME = "alarm.lock"
LOG_LOCK_NAME = "log.lock"
CAPTURE_SUFFIX = ".tmplog"

DEFAULT_WHITELIST_PATH = Path(__file__).resolve().parent / "whitelist.txt"


class WhitelistError(ValueError):
    """Raised when the whitelist file cannot be read or is not sorted."""


class Whitelist:
    """Sorted set of test identities known to be safe to run in parallel."""

    def __init__(self, entries: Iterable[str]) -> None:
        items = tuple(entries)
        for previous, current in zip(items, items[1:]):
            if not previous < current:
                raise WhitelistError(
                    f"whitelist is not strictly sorted: {previous!r} precedes {current!r}"
                )
        self._entries: Tuple[str, ...] = items

    def contains(self, test_id: Optional[str]) -> bool:
        if test_id is None:
            return False
        index = bisect_left(self._entries, test_id)
        return index < len(self._entries) and self._entries[index] == test_id

    def __contains__(self, test_id: object) -> bool:
        return isinstance(test_id, str) and self.contains(test_id)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def parse_whitelist(path: Path) -> Whitelist:
    """Parse a whitelist file: one identity per line, ``#`` starts a comment."""

    entries = []
    try:
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                text = line.strip()
                if not text or text.startswith("#"):
                    continue
                entries.append(text)
    except OSError as exc:
        raise WhitelistError(f"cannot read whitelist {path}: {exc}") from exc

    return Whitelist(entries)


def load_whitelist(environ: Optional[Mapping[str, str]] = None) -> Whitelist:
    """Load the whitelist named by ``ALARM_WHITELIST``, or the packaged one."""

    environ = os.environ if environ is None else environ
    override = environ.get(WHITELIST_ENV)
    if override:
        return parse_whitelist(Path(override))
    return parse_whitelist(DEFAULT_WHITELIST_PATH)


def is_parallel_run(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when running under ``make -jN`` (a jobserver is advertised)."""

    environ = os.environ if environ is None else environ
    makeflags = environ.get(MAKEFLAGS_ENV)
    return makeflags is not None and JOBSERVER_MARKER in makeflags


@dataclass(frozen=True)
class RunSettings:
    """Run-wide switches derived from the command line and the environment."""

    parallel: bool = False
    verbose: bool = False
    kill_tree: bool = False
    workdir: Path = Path(".")

    @classmethod
    def from_environment(cls, *, verbose: bool = False, workdir: Optional[Path] = None) -> "RunSettings":
        return cls(
            parallel=is_parallel_run(),
            verbose=verbose or env_flag(VERBOSE_ENV),
            kill_tree=env_flag(KILL_TREE_ENV),
            workdir=workdir if workdir is not None else Path("."),
        )
