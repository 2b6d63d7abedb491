from __future__ import annotations

import fcntl
import io
import os

from alarm.runner.locks import FileLock


def _is_locked_elsewhere(path):
    fd = os.open(path, os.O_RDWR)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return True
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)
        return False
    finally:
        os.close(fd)


def test_lock_creates_file_and_excludes_others(tmp_path):
    path = tmp_path / "alarm.lock"
    lock = FileLock(path)

    with lock:
        assert lock.held
        assert path.exists()
        assert (path.stat().st_mode & 0o777) == 0o600 & ~_umask()
        assert _is_locked_elsewhere(path)

    assert not lock.held
    assert not _is_locked_elsewhere(path)


def test_lock_file_is_reused(tmp_path):
    path = tmp_path / "log.lock"
    with FileLock(path):
        pass
    with FileLock(path) as lock:
        assert lock.held
    assert path.exists()


def test_release_is_idempotent(tmp_path):
    lock = FileLock(tmp_path / "alarm.lock")
    assert lock.acquire()
    assert lock.acquire()
    lock.release()
    lock.release()
    assert not lock.held


def test_unopenable_lock_degrades_to_unlocked(tmp_path):
    stderr = io.StringIO()
    lock = FileLock(tmp_path / "missing-dir" / "alarm.lock", stderr=stderr)

    with lock:
        assert not lock.held

    assert "running unlocked" in stderr.getvalue()


def _umask():
    current = os.umask(0)
    os.umask(current)
    return current
