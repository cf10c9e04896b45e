"""Interrupt controller.

Cooperative cancellation for one loop iteration. interrupt() only raises
flags, flushes open tool calls to history and asks the engine to stop; the
session loop keeps draining the stream until the engine closes it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from agentwizard.logging import get_logger
from agentwizard.ui.types import HistoryKind

if TYPE_CHECKING:
    from agentwizard.session.context import SessionContext
    from agentwizard.ui.store import UIStateStore

log = get_logger("session.interrupt")


class InterruptController:
    """One idempotent interrupt operation per iteration.

    Args:
        context: The iteration's shared flags and registry
        store: UI store that receives the flushed entries
        engine_handle: Returns the object carrying the engine's own
            ``interrupt()`` coroutine, or None while no stream is open
    """

    def __init__(
        self,
        context: SessionContext,
        store: UIStateStore,
        engine_handle: Callable[[], Any] | None = None,
    ) -> None:
        self._context = context
        self._store = store
        self._engine_handle = engine_handle
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def fired(self) -> bool:
        return self._context.interrupt_fired

    async def interrupt(self) -> None:
        """Stop the current turn. Safe to call repeatedly."""
        if self._context.interrupt_fired:
            log.debug("Interrupt already in progress, ignoring repeat")
            return
        self._context.interrupt_fired = True

        log.info("Soft interrupt requested")
        self._context.is_interrupting = True
        self._context.waiting_for_user_input = True

        flushed = self._context.registry.flush_interrupted()
        if flushed == 0:
            self._store.add_item(HistoryKind.ERROR, "Interrupted")
        else:
            log.info("Marked %d pending tool call(s) as interrupted", flushed)

        self._store.stop_persistent_input()

        handle = self._engine_handle() if self._engine_handle else None
        engine_interrupt = getattr(handle, "interrupt", None)
        if engine_interrupt is None:
            log.info("No engine interrupt available")
            return

        log.debug("Calling engine interrupt()")
        try:
            await engine_interrupt()
        except Exception as e:
            log.warning("Engine interrupt failed: %s", e)
        else:
            log.debug("Engine interrupt() completed")

    def request(self) -> None:
        """Schedule interrupt() from synchronous callers such as key handlers."""
        task = asyncio.ensure_future(self.interrupt())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
