"""Error taxonomy and the pluggable error sink.

Every failure inside a user callback (updater, compute, effect body, cleanup,
subscriber) is wrapped in one of the errors below and passed to handle_error()
instead of propagating. The default handler logs and re-raises only errors that
are fatal and not recoverable, which in practice means circular dependencies.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Literal

logger = logging.getLogger("atomx.errors")

Severity = Literal["fatal", "error", "warning"]


class ErrorCode(str, enum.Enum):
    UNKNOWN = "UNKNOWN"
    INVALID_OPERATION = "INVALID_OPERATION"

    STATE_ERROR = "STATE_ERROR"
    ATOM_NOT_FOUND = "ATOM_NOT_FOUND"

    PATH_ERROR = "PATH_ERROR"
    INVALID_PATH = "INVALID_PATH"

    DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
    CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"

    DERIVATION_ERROR = "DERIVATION_ERROR"

    TIME_ERROR = "TIME_ERROR"
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"

    SUBSCRIPTION_ERROR = "SUBSCRIPTION_ERROR"

    TRANSACTION_ERROR = "TRANSACTION_ERROR"


class ReactiveError(Exception):
    """Base class for every error the library reports.

    Subclasses fix ``severity`` and ``recoverable``; the sink uses them to
    decide whether a reported error is re-raised.
    """

    severity: Severity = "error"
    recoverable: bool = False

    def __init__(self, code: ErrorCode, message: str, cause: BaseException | None = None) -> None:
        super().__init__(f"[{code.value}] {message}")
        self.code = code
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class StateError(ReactiveError):
    def __init__(
        self,
        code: ErrorCode,
        message: str,
        atom_id: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(code, message, cause)
        self.atom_id = atom_id


class PathError(ReactiveError):
    severity = "warning"
    recoverable = True

    def __init__(
        self,
        code: ErrorCode,
        path: tuple,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        self.path = tuple(path)
        dotted = ".".join(str(segment) for segment in self.path)
        super().__init__(code, f"Invalid path [{dotted}]: {message}", cause)


class DependencyError(ReactiveError):
    pass


class CircularDependencyError(ReactiveError):
    severity = "fatal"
    recoverable = False

    def __init__(self, message: str, cycle: list[int]) -> None:
        super().__init__(ErrorCode.CIRCULAR_DEPENDENCY, message)
        self.cycle = list(cycle)

    def describe_cycle(self) -> str:
        return " -> ".join(str(atom_id) for atom_id in self.cycle)


class DerivationError(ReactiveError):
    recoverable = True

    def __init__(
        self,
        message: str,
        atom_id: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(ErrorCode.DERIVATION_ERROR, message, cause)
        self.atom_id = atom_id


class TransactionError(ReactiveError):
    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(ErrorCode.TRANSACTION_ERROR, message, cause)


class TimeError(ReactiveError):
    severity = "warning"
    recoverable = True


# ─── Sink ────────────────────────────────────────────────────────────────────

ErrorHandler = Callable[[ReactiveError], None]

_handlers: dict[type, ErrorHandler] = {}


def default_error_handler(error: ReactiveError) -> None:
    """Log the error; re-raise it when it is fatal and not recoverable."""
    exc_info = (type(error.cause), error.cause, error.cause.__traceback__) if error.cause else None
    if error.severity == "warning":
        logger.warning("%s", error, exc_info=exc_info)
    else:
        logger.error("%s", error, exc_info=exc_info)

    if error.severity == "fatal" and not error.recoverable:
        raise error


_default_handler: ErrorHandler = default_error_handler


def set_error_handler(handler: ErrorHandler) -> None:
    """Replace the handler used for error types without a registered handler."""
    global _default_handler
    _default_handler = handler


def register_error_handler(error_type: type[ReactiveError], handler: ErrorHandler) -> Callable[[], None]:
    """Route one error class (exact type) to ``handler``. Returns an unregister function."""
    _handlers[error_type] = handler

    def _unregister() -> None:
        if _handlers.get(error_type) is handler:
            del _handlers[error_type]

    return _unregister


def reset_error_handlers() -> None:
    """Drop registered handlers and restore the default one."""
    global _default_handler
    _handlers.clear()
    _default_handler = default_error_handler


def handle_error(error: ReactiveError) -> ReactiveError:
    """Report ``error`` to its handler and return it, so callers can ``raise handle_error(...)``."""
    handler = _handlers.get(type(error), _default_handler)
    handler(error)
    return error
