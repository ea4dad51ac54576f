"""Path-aware notification.

Given the paths that changed in one write and an atom's two subscriber
collections (whole-atom and per-path), work out exactly which handlers must
run and run each of them once. Inside a batch, every atom changed before the
flush is delivered in one pass, so a handler subscribed to several of them
still runs once. A subscriber on ``user`` fires when
``user.name`` changes, and one on ``user.profile.name`` fires when ``user`` is
replaced wholesale.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Callable, Iterable

from atomx._paths import Path, are_related_paths, compact_paths, path_to_string, string_to_path
from atomx.errors import ErrorCode, StateError, handle_error

if TYPE_CHECKING:
    from atomx._runtime import Runtime

logger = logging.getLogger("atomx.notify")

Handler = Callable[[], None]
GlobalSubscribers = dict[Handler, None]
PathSubscribers = dict[str, dict[Handler, None]]

_notification_ids = itertools.count(1)


def calculate_affected_paths(changed_paths: Iterable[Path]) -> set[str]:
    """The root, every changed path, and every prefix of each, as strings."""
    affected = {""}
    for path in changed_paths:
        for end in range(1, len(path) + 1):
            affected.add(path_to_string(path[:end]))
    return affected


def resolve_subscribers(
    changed_paths: set[Path],
    global_subscribers: GlobalSubscribers,
    path_subscribers: PathSubscribers,
) -> list[Handler]:
    """Handlers to run for ``changed_paths``, deduplicated, in registration order."""
    selected: dict[Handler, None] = dict.fromkeys(global_subscribers)
    if path_subscribers:
        affected = calculate_affected_paths(changed_paths)
        for key, handlers in path_subscribers.items():
            if key in affected:
                selected.update(dict.fromkeys(handlers))
                continue
            subscribed = string_to_path(key)
            if any(are_related_paths(subscribed, changed) for changed in changed_paths):
                selected.update(dict.fromkeys(handlers))
    return list(selected)


def _run_handlers(handlers: dict[Handler, int], notification_id: int) -> None:
    """Call each handler once; ``handlers`` maps it to the atom it reports against."""
    errors = 0
    for handler, atom_id in handlers.items():
        try:
            handler()
        except Exception as exc:
            errors += 1
            handle_error(
                StateError(
                    ErrorCode.SUBSCRIPTION_ERROR,
                    f"Error in subscriber for atom {atom_id}",
                    atom_id,
                    exc,
                )
            )
    if errors:
        logger.debug("[%d] %d subscriber(s) failed", notification_id, errors)


def dispatch(
    atom_id: int,
    changed_paths: set[Path],
    global_subscribers: GlobalSubscribers,
    path_subscribers: PathSubscribers,
) -> None:
    handlers = resolve_subscribers(changed_paths, global_subscribers, path_subscribers)
    notification_id = next(_notification_ids)
    logger.debug(
        "[%d] atom %s changed %s -> %d handlers",
        notification_id,
        atom_id,
        sorted(path_to_string(path) for path in changed_paths),
        len(handlers),
    )
    _run_handlers(dict.fromkeys(handlers, atom_id), notification_id)


class PendingNotification:
    """Changes to one atom accumulated inside the current batch."""

    __slots__ = ("atom_id", "changed_paths", "global_subscribers", "path_subscribers")

    def __init__(
        self,
        atom_id: int,
        global_subscribers: GlobalSubscribers,
        path_subscribers: PathSubscribers,
    ) -> None:
        self.atom_id = atom_id
        self.changed_paths: set[Path] = set()
        self.global_subscribers = global_subscribers
        self.path_subscribers = path_subscribers


class NotificationQueue:
    """Per-runtime pending notifications. Scheduled on the batch as one effect."""

    __slots__ = ("_pending",)

    def __init__(self) -> None:
        self._pending: dict[int, PendingNotification] = {}

    def add(
        self,
        atom_id: int,
        changed_paths: set[Path],
        global_subscribers: GlobalSubscribers,
        path_subscribers: PathSubscribers,
    ) -> None:
        pending = self._pending.get(atom_id)
        if pending is None:
            pending = self._pending[atom_id] = PendingNotification(
                atom_id, global_subscribers, path_subscribers
            )
        pending.changed_paths.update(changed_paths)

    def clear(self) -> None:
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)

    def __call__(self) -> None:
        pending, self._pending = self._pending, {}
        if not pending:
            return
        notification_id = next(_notification_ids)
        handlers: dict[Handler, int] = {}
        for entry in pending.values():
            for handler in resolve_subscribers(
                compact_paths(entry.changed_paths), entry.global_subscribers, entry.path_subscribers
            ):
                handlers.setdefault(handler, entry.atom_id)
        logger.debug(
            "[%d] batch delivery for atoms %s -> %d handlers",
            notification_id,
            sorted(pending),
            len(handlers),
        )
        _run_handlers(handlers, notification_id)


def notify_state_change(
    runtime: Runtime,
    atom_id: int,
    changed_paths: set[Path],
    global_subscribers: GlobalSubscribers,
    path_subscribers: PathSubscribers,
) -> None:
    """Deliver now, or fold into the runtime's pending notifications when batching."""
    if not changed_paths:
        return
    if not global_subscribers and not path_subscribers:
        return

    if not runtime.is_batching():
        dispatch(atom_id, changed_paths, global_subscribers, path_subscribers)
        return

    runtime.notifications.add(atom_id, changed_paths, global_subscribers, path_subscribers)
    runtime.batch.schedule(runtime.notifications)
    logger.debug("atom %s notification deferred (batched)", atom_id)
