from __future__ import annotations

import io

import pytest

from alarm.runner.configuration import RunSettings, load_whitelist
from alarm.supervisor import Supervisor

from .helpers import FakeProbe


@pytest.fixture(scope="session")
def whitelist():
    return load_whitelist({})


@pytest.fixture
def make_supervisor(tmp_path, whitelist):
    def factory(invocation, *, timeout=10, parallel=False, probe=None, kill_tree=False):
        settings = RunSettings(parallel=parallel, kill_tree=kill_tree, workdir=tmp_path)
        return Supervisor(
            timeout,
            invocation,
            whitelist=whitelist,
            settings=settings,
            probe=probe if probe is not None else FakeProbe(),
            stdout=io.BytesIO(),
            stderr=io.StringIO(),
        )

    return factory
