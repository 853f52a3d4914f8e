"""Shared fixtures for the sheetscript test suite."""

from __future__ import annotations

import pytest

from sheetscript.logging import set_echo, set_log_dir


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep the module-level event sink from leaking between tests."""
    set_log_dir(None)
    set_echo(False)
    yield
    set_log_dir(None)
    set_echo(False)
