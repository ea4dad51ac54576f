"""atomx: fine-grained, path-aware reactive state for Python."""

from importlib.metadata import version as _version

__version__ = _version("atomx")

from atomx._runtime import Runtime, get_runtime, reset_runtime, set_runtime, set_scheduler
from atomx.atom import Atom, PathAccessor, ReadableAtom, create_atom
from atomx.derived import Derived, create_derived, derived
from atomx.effect import Effect, create_effect
from atomx.action import action, transaction
from atomx.history import History, Snapshot, create_snapshot, get_history, limit_snapshots, snapshots_equal
from atomx.errors import (
    CircularDependencyError,
    DependencyError,
    DerivationError,
    ErrorCode,
    PathError,
    ReactiveError,
    StateError,
    TimeError,
    TransactionError,
    handle_error,
    register_error_handler,
    reset_error_handlers,
    set_error_handler,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "Atom",
    "ReadableAtom",
    "PathAccessor",
    "create_atom",
    "Derived",
    "create_derived",
    "derived",
    "Effect",
    "create_effect",
    "action",
    "transaction",
    "Runtime",
    "get_runtime",
    "set_runtime",
    "reset_runtime",
    "set_scheduler",
    "History",
    "Snapshot",
    "create_snapshot",
    "snapshots_equal",
    "limit_snapshots",
    "get_history",
    "ErrorCode",
    "ReactiveError",
    "StateError",
    "PathError",
    "DependencyError",
    "CircularDependencyError",
    "DerivationError",
    "TransactionError",
    "TimeError",
    "handle_error",
    "set_error_handler",
    "register_error_handler",
    "reset_error_handlers",
]
