"""
alarm - run one Wine conformance test under supervision.

Usage:
    alarm [--verbose] TIMEOUT COMMAND [ARGS...]

e.g. ``WINETEST_WRAPPER="alarm 150" make -k -j8 test``.

Runs COMMAND with the following twists:

1. If it takes longer than TIMEOUT seconds it is killed, ``alarm: Timeout!
   Killing child.`` is printed and alarm exits with status 1.
2. If it crashes, ``alarm: Terminated abnormally`` is printed and alarm exits
   with status 99.
3. Unless the test is on the whitelist, the screen's video mode is compared
   before and after the run; a change is reported, reset, and alarm exits 1.

When running inside ``make -jN`` (MAKEFLAGS advertises a jobserver):

4. The test's stdout and stderr are collected in ``<module>:<file>.tmplog`` and
   printed as one framed block once the test is done, so the logs of tests
   running side by side do not interleave.
5. Tests not on the whitelist hold an exclusive lock on ``alarm.lock`` while
   they run, so they never run at the same time as each other.

The whitelist lists tests known to run well in parallel, i.e. tests that do
not touch the video mode, depend on or move the mouse cursor, or bind fixed
port numbers.

Environment:
    ALARM_VERBOSE      print what alarm decides and why (same as --verbose)
    ALARM_WHITELIST    use this whitelist file instead of the built-in one
    ALARM_KILL_TREE    on timeout, also kill the test's own child processes
"""
from __future__ import annotations

import argparse
import contextlib
import os
import sys
from pathlib import Path
from typing import IO, List, NoReturn, Optional, Sequence, Tuple

from .runner.capture import OutputCapture
from .runner.configuration import (
    CAPTURE_SUFFIX,
    EXECUTION_LOCK_NAME,
    LOG_LOCK_NAME,
    RunSettings,
    Whitelist,
    WhitelistError,
    load_whitelist,
)
from .runner.deadline import DeadlineRunner, ExecutionResult, Outcome
from .runner.identity import extract_test_id
from .runner.locks import FileLock
from .runner.platform import PlatformSupport, get_platform_support
from .runner.utils import debug, error, format_duration, warn
from .runner.video import VideoModeProbe, format_video_mode


TIMEOUT_MESSAGE = "alarm: Timeout!  Killing child."
ABNORMAL_MESSAGE = "alarm: Terminated abnormally"

EXIT_FAILURE = 1
EXIT_ABNORMAL = 99


class Supervisor:
    """Runs a single test invocation and turns its fate into alarm's exit code."""

    def __init__(
        self,
        timeout: int,
        invocation: Sequence[str],
        *,
        whitelist: Whitelist,
        settings: Optional[RunSettings] = None,
        probe: Optional[VideoModeProbe] = None,
        platform: Optional[PlatformSupport] = None,
        stdout: Optional[IO[bytes]] = None,
        stderr: Optional[IO[str]] = None,
    ) -> None:
        if not invocation:
            raise ValueError("invocation must name a program to run")
        self.timeout = timeout
        self.invocation: Tuple[str, ...] = tuple(invocation)
        self.whitelist = whitelist
        self.settings = settings or RunSettings()
        self.probe = probe or VideoModeProbe(verbose=self.settings.verbose)
        self.platform = platform or get_platform_support(verbose=self.settings.verbose)
        self._stdout = stdout
        self._stderr = stderr if stderr is not None else sys.stderr

        self.test_id = extract_test_id(self.invocation)
        self.whitelisted = self.whitelist.contains(self.test_id)

    @property
    def stdout(self) -> IO[bytes]:
        if self._stdout is None:
            sys.stdout.flush()
            return sys.stdout.buffer
        return self._stdout

    @property
    def stderr(self) -> IO[str]:
        return self._stderr

    def run(self) -> int:
        settings = self.settings
        check_video = not self.whitelisted

        if settings.verbose:
            debug(f"test {self.test_id or '<unknown>'}: "
                  f"{'whitelisted' if self.whitelisted else 'not whitelisted'}, "
                  f"{'parallel' if settings.parallel else 'serial'} run", self._stderr)

        runner = DeadlineRunner(
            self.timeout,
            self.platform,
            kill_tree=settings.kill_tree,
            verbose=settings.verbose,
        )

        with contextlib.ExitStack() as stack:
            if settings.parallel and not self.whitelisted:
                stack.enter_context(FileLock(settings.workdir / EXECUTION_LOCK_NAME, stderr=self._stderr))

            # Sampled while holding the execution lock.
            original_mode = self.probe.query() if check_video else None
            if check_video and settings.verbose:
                debug(f"video mode before test: {format_video_mode(original_mode)}", self._stderr)

            capture = self._open_capture() if settings.parallel else None
            redirect = capture.fileno if capture is not None else None

            try:
                result = runner.run(self.invocation, stdout=redirect, stderr=redirect)
            except OSError as exc:
                if capture is not None:
                    capture.discard()
                error(f"{self.invocation[0]}: {exc.strerror or exc}", self._stderr)
                return EXIT_FAILURE

            if result.timed_out:
                # Leave the capture file behind; nothing after the kill is reported.
                if capture is not None:
                    capture.close()
                print(TIMEOUT_MESSAGE, file=self._stderr, flush=True)
                return EXIT_FAILURE

            if capture is not None:
                capture.replay(self.stdout)

        if settings.verbose:
            debug(f"test finished in {format_duration(result.duration)} "
                  f"(status {result.returncode})", self._stderr)

        return self._report(result, check_video, original_mode)

    def _open_capture(self) -> Optional[OutputCapture]:
        workdir = self.settings.workdir
        if self.test_id is not None:
            path = workdir / f"{self.test_id}{CAPTURE_SUFFIX}"
            label = self.test_id
        else:
            path = workdir / f"alarm-{os.getpid()}{CAPTURE_SUFFIX}"
            label = Path(self.invocation[0]).name

        capture = OutputCapture(path, label, FileLock(workdir / LOG_LOCK_NAME, stderr=self._stderr))
        try:
            capture.open()
        except OSError as exc:
            warn(f"cannot create {path} ({exc.strerror}); test output will not be buffered",
                 self._stderr)
            return None
        return capture

    def _emit(self, line: str) -> None:
        sink = self.stdout
        sink.write(f"{line}\n".encode())
        sink.flush()

    def _report(self, result: ExecutionResult, check_video: bool, original_mode: Optional[int]) -> int:
        if result.outcome is Outcome.ABNORMAL:
            if self.settings.verbose:
                debug(f"child killed by signal {result.signal}", self._stderr)
            self._emit(ABNORMAL_MESSAGE)
            return EXIT_ABNORMAL

        if check_video:
            mode = self.probe.query()
            if mode != original_mode:
                self._emit(f"alarm: video mode changed! was {format_video_mode(original_mode)}, "
                           f"now {format_video_mode(mode)}")
                self.probe.reset()
                return EXIT_FAILURE

        assert result.returncode is not None
        return result.returncode


class _UsageParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"timeout must be a whole number of seconds, was {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"timeout must be positive, was {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog="alarm",
        usage="%(prog)s [-v] timeout-in-seconds command ...",
        description="Run a test program with a timeout, serializing tests "
                    "that are not known to be safe to run in parallel.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Environment: ALARM_VERBOSE, ALARM_WHITELIST, ALARM_KILL_TREE, MAKEFLAGS",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Report identity, locking and video mode decisions on stderr")
    parser.add_argument("timeout", type=_positive_int,
                        help="Seconds the test may run before it is killed")
    return parser


def parse_arguments(argv: Sequence[str]) -> Tuple[argparse.Namespace, List[str]]:
    """Split ``argv`` into alarm's own arguments and the command to supervise.

    Options are only recognised before the timeout; everything after it
    belongs to the command, options included.
    """

    parser = build_parser()
    head: List[str] = list(argv)
    command: List[str] = []
    for index, arg in enumerate(argv):
        if not arg.startswith("-"):
            head = list(argv[: index + 1])
            command = list(argv[index + 1:])
            break

    args = parser.parse_args(head)
    if not command:
        parser.error("no command given")
    return args, command


def main(argv: Optional[Sequence[str]] = None) -> int:
    args, command = parse_arguments(sys.argv[1:] if argv is None else argv)
    settings = RunSettings.from_environment(verbose=args.verbose)

    try:
        whitelist = load_whitelist()
    except WhitelistError as exc:
        error(str(exc))
        return EXIT_FAILURE

    try:
        platform = get_platform_support(verbose=settings.verbose)
    except RuntimeError as exc:
        error(str(exc))
        return EXIT_FAILURE

    supervisor = Supervisor(
        args.timeout,
        command,
        whitelist=whitelist,
        settings=settings,
        platform=platform,
    )
    return supervisor.run()


if __name__ == "__main__":
    sys.exit(main())
