"""Pytest configuration shared by the importer tests.

The CLI reads ``FINPORTER_FIDO_*`` variables (and a local ``.env``) for its
defaults. An autouse fixture clears them so a developer's environment cannot
change decode results.
"""

from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "FINPORTER_FIDO_TIME_ZONE",
        "FINPORTER_FIDO_TIME_OF_DAY",
        "FINPORTER_FIDO_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tz_new_york() -> ZoneInfo:
    return ZoneInfo("America/New_York")


@pytest.fixture
def tz_denver() -> ZoneInfo:
    return ZoneInfo("America/Denver")



@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo handlers and levels installed by CLI runs or logging tests."""

    pkg = logging.getLogger("finporter_fido")
    handlers, level, propagate = list(pkg.handlers), pkg.level, pkg.propagate
    yield
    pkg.handlers[:] = handlers
    pkg.setLevel(level)
    pkg.propagate = propagate
