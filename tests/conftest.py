"""Shared fixtures: every test starts with default settings and an empty queue."""

import pytest

from reactant import _tracking
from reactant.config import reset_settings


@pytest.fixture(autouse=True)
def _clean_engine():
    reset_settings()
    _tracking.set_scheduler(None)
    _tracking._pending.clear()
    _tracking._batch_depth = 0
    yield
    _tracking.set_scheduler(None)
    _tracking._pending.clear()
    _tracking._batch_depth = 0
    reset_settings()
