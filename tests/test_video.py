from __future__ import annotations

import subprocess

import pytest

from alarm.runner import video
from alarm.runner.video import VideoModeProbe, format_video_mode, parse_video_mode


XRANDR_OUTPUT = """\
Screen 0: minimum 320 x 200, current 1024 x 768, maximum 8192 x 8192
VGA-1 connected primary 1024x768+0+0 (normal left inverted right x axis y axis) 0mm x 0mm
   1920x1080     60.00 +
   1280x1024     60.02
   1024x768      60.00*
   800x600       60.32
"""


def test_parse_active_mode_index():
    assert parse_video_mode(XRANDR_OUTPUT) == 2


def test_parse_first_mode_is_zero():
    output = XRANDR_OUTPUT.replace("60.00*", "60.00").replace("60.00 +", "60.00*+")
    assert parse_video_mode(output) == 0


def test_parse_without_active_mode():
    assert parse_video_mode(XRANDR_OUTPUT.replace("*", "")) is None
    assert parse_video_mode("") is None


def test_unknown_is_distinct_from_mode_zero():
    assert format_video_mode(None) == "unknown"
    assert format_video_mode(0) == "0"


def _fake_run(stdout="", returncode=0, raises=None, calls=None):
    def run(cmd, **kwargs):
        if calls is not None:
            calls.append(cmd)
        if raises is not None:
            raise raises
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout)

    return run


def test_query_runs_xrandr(monkeypatch):
    calls = []
    monkeypatch.setattr(video.subprocess, "run", _fake_run(XRANDR_OUTPUT, calls=calls))
    assert VideoModeProbe().query() == 2
    assert calls == [["xrandr", "-q"]]


@pytest.mark.parametrize(
    "fake",
    [
        _fake_run(raises=FileNotFoundError(2, "No such file or directory")),
        _fake_run(raises=subprocess.TimeoutExpired(["xrandr", "-q"], 30)),
        _fake_run("Can't open display\n", returncode=1),
    ],
)
def test_query_failures_are_unknown(monkeypatch, fake):
    monkeypatch.setattr(video.subprocess, "run", fake)
    assert VideoModeProbe(verbose=True).query() is None


def test_query_with_missing_tool():
    probe = VideoModeProbe(query_command=["/nonexistent/xrandr-for-alarm-tests", "-q"])
    assert probe.query() is None


def test_reset_runs_xrandr_s_0(monkeypatch):
    calls = []
    monkeypatch.setattr(video.subprocess, "run", _fake_run(calls=calls))
    assert VideoModeProbe().reset() is True
    assert calls == [["xrandr", "-s", "0"]]


def test_reset_is_best_effort(monkeypatch):
    monkeypatch.setattr(video.subprocess, "run", _fake_run(raises=OSError("boom")))
    assert VideoModeProbe().reset() is False

    monkeypatch.setattr(video.subprocess, "run", _fake_run(returncode=1))
    assert VideoModeProbe().reset() is False
