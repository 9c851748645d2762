"""Shared fixtures: keep test logging out of the real log file."""

from __future__ import annotations

import pytest

from clack.logging import set_log_file


@pytest.fixture(autouse=True, scope="session")
def _test_log_file(tmp_path_factory):
    set_log_file(str(tmp_path_factory.mktemp("logs") / "clack-test.log"))
