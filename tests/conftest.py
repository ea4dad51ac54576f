"""Shared pytest fixtures for atomx tests."""

import pytest

from atomx import Runtime, reset_error_handlers, set_error_handler
from atomx._tracking import cleanup_all_tracking


@pytest.fixture(autouse=True)
def runtime():
    """Run each test in its own reactive universe with the default error sink."""
    reset_error_handlers()
    rt = Runtime()
    with rt.use():
        yield rt
    rt.dispose()
    cleanup_all_tracking()
    reset_error_handlers()


@pytest.fixture
def reported():
    """Collect every error reported to the sink instead of logging it."""
    errors = []
    set_error_handler(errors.append)
    return errors
