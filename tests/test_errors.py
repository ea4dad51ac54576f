"""Tests for the error taxonomy and the error sink."""

import logging

import pytest

from atomx import (
    CircularDependencyError,
    DerivationError,
    ErrorCode,
    PathError,
    StateError,
    TimeError,
    create_atom,
    handle_error,
    register_error_handler,
    set_error_handler,
)


class TestTaxonomy:
    def test_message_carries_code(self):
        error = StateError(ErrorCode.INVALID_OPERATION, "bad op", atom_id=3)
        assert str(error) == "[INVALID_OPERATION] bad op"
        assert error.atom_id == 3
        assert error.severity == "error"
        assert not error.recoverable

    def test_path_error(self):
        error = PathError(ErrorCode.INVALID_PATH, ("a", 0), "missing")
        assert error.path == ("a", 0)
        assert "Invalid path [a.0]: missing" in str(error)
        assert error.recoverable

    def test_cause_is_chained(self):
        cause = ValueError("inner")
        error = DerivationError("outer", 1, cause)
        assert error.__cause__ is cause
        assert error.recoverable

    def test_circular_is_fatal(self):
        error = CircularDependencyError("cycle", [1, 2, 1])
        assert error.severity == "fatal"
        assert not error.recoverable
        assert error.describe_cycle() == "1 -> 2 -> 1"


class TestSink:
    def test_default_logs_without_raising(self, caplog):
        with caplog.at_level(logging.WARNING, logger="atomx.errors"):
            returned = handle_error(TimeError(ErrorCode.TIME_ERROR, "late"))
        assert isinstance(returned, TimeError)
        assert "[TIME_ERROR] late" in caplog.text
        assert caplog.records[0].levelno == logging.WARNING

    def test_default_logs_errors_at_error_level(self, caplog):
        with caplog.at_level(logging.ERROR, logger="atomx.errors"):
            handle_error(StateError(ErrorCode.UNKNOWN, "oops", cause=RuntimeError("x")))
        assert caplog.records[0].levelno == logging.ERROR
        assert caplog.records[0].exc_info is not None

    def test_default_reraises_fatal(self):
        with pytest.raises(CircularDependencyError):
            handle_error(CircularDependencyError("cycle", [1, 1]))

    def test_custom_default_handler(self):
        seen = []
        set_error_handler(seen.append)
        handle_error(CircularDependencyError("cycle", [1, 1]))
        assert len(seen) == 1

    def test_registered_handler_by_type(self, reported):
        paths = []
        unregister = register_error_handler(PathError, paths.append)
        handle_error(PathError(ErrorCode.INVALID_PATH, ("x",), "nope"))
        handle_error(StateError(ErrorCode.UNKNOWN, "other"))
        assert len(paths) == 1
        assert len(reported) == 1

        unregister()
        handle_error(PathError(ErrorCode.INVALID_PATH, ("x",), "nope"))
        assert len(paths) == 1
        assert len(reported) == 2

    def test_callback_errors_routed_to_sink(self, reported):
        a = create_atom({"a": 1})
        a.subscribe(lambda: 1 / 0)
        a.set({"a": 2})
        assert reported[0].code is ErrorCode.SUBSCRIPTION_ERROR
        assert isinstance(reported[0].cause, ZeroDivisionError)
