"""Batch scheduler — transactional deferral of notifications.

Inside a batch, notifications are queued as pending effects instead of running.
When the outermost batch exits, the queue is flushed synchronously, before any
exception from the batch body is re-raised. Effects scheduled while no batch
is open are flushed once, through the runtime's deferral hook.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from atomx.errors import ErrorCode, StateError, TransactionError, handle_error

T = TypeVar("T")

logger = logging.getLogger("atomx.batch")

Scheduler = Callable[[Callable[[], None]], None]


def default_scheduler(callback: Callable[[], None]) -> None:
    """Defer to the running asyncio loop if there is one, else run now."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
    else:
        loop.call_soon(callback)


class BatchScheduler:
    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self._depth = 0
        # dict as an insertion-ordered set
        self._pending: dict[Callable[[], None], None] = {}
        self._flush_scheduled = False
        self.scheduler: Scheduler = scheduler or default_scheduler

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_batching(self) -> bool:
        return self._depth > 0

    def schedule(self, effect: Callable[[], None] | None) -> None:
        """Queue ``effect`` for the next flush. Non-callables are ignored."""
        if not callable(effect):
            return
        self._pending[effect] = None
        if not self.is_batching():
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        if self._flush_scheduled:
            return
        self._flush_scheduled = True
        self.scheduler(self._deferred_flush)

    def _deferred_flush(self) -> None:
        # Cleared first: effects run by this flush may queue the next pass.
        self._flush_scheduled = False
        # A batch opened before the deferred flush ran will flush on exit.
        if not self.is_batching():
            self.flush()

    def flush(self) -> None:
        """Run every pending effect once. Failures are reported, not raised."""
        if not self._pending:
            return
        effects = list(self._pending)
        self._pending.clear()
        logger.debug("running %d batched effects", len(effects))

        for effect in effects:
            try:
                effect()
            except Exception as exc:
                handle_error(StateError(ErrorCode.UNKNOWN, "Error in batched effect", cause=exc))

        # Effects may schedule more effects; an open batch absorbs them.
        if self._pending and not self.is_batching():
            self._schedule_flush()

    @contextmanager
    def scope(self) -> Iterator[None]:
        """Open a (possibly nested) batch for the duration of the ``with`` block."""
        outermost = self._depth == 0
        self._depth += 1
        logger.debug("enter batch (depth %d)", self._depth)
        failure: BaseException | None = None
        try:
            yield
        except BaseException as exc:
            failure = exc
            raise
        finally:
            self._exit(outermost)
            if isinstance(failure, Exception):
                handle_error(TransactionError("Error in transaction", cause=failure))

    def _exit(self, outermost: bool) -> None:
        self._depth -= 1
        logger.debug("exit batch (depth %d)", self._depth)
        if outermost and self._pending:
            self.flush()

    def execute(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` inside a batch and return its result."""
        with self.scope():
            return fn()

    execute_batch = execute
