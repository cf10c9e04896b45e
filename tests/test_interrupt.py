"""Tests for the interrupt controller."""

from __future__ import annotations

import pytest

from agentwizard.session.context import SessionContext
from agentwizard.session.interrupt import InterruptController
from agentwizard.session.registry import ToolCallRegistry
from agentwizard.ui.store import UIStateStore
from agentwizard.ui.types import HistoryKind, PersistentInputSurface, SurfaceKind, ToolCallStatus
from tests.utils import settle


class FakeEngineStream:
    def __init__(self, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail

    async def interrupt(self) -> None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("transport closed")


@pytest.fixture
def context(store: UIStateStore) -> SessionContext:
    return SessionContext(registry=ToolCallRegistry(store))


class TestInterruptController:
    """Tests for InterruptController.interrupt()."""

    async def test_flushes_open_calls(self, context, store):
        """Test each open call gets exactly one interrupted entry."""
        context.registry.register("t1", "Read", {"file_path": "a"})
        context.registry.register("t2", "Bash", {"command": "make"})
        engine = FakeEngineStream()

        await InterruptController(context, store, lambda: engine).interrupt()

        assert [i.tool_call.status for i in store.history] == [
            ToolCallStatus.INTERRUPTED,
            ToolCallStatus.INTERRUPTED,
        ]
        assert context.is_interrupting
        assert context.waiting_for_user_input
        assert engine.calls == 1

    async def test_generic_entry_when_nothing_open(self, context, store):
        """Test a single generic entry is written when no call was open."""
        await InterruptController(context, store, lambda: FakeEngineStream()).interrupt()

        assert len(store.history) == 1
        assert store.history[0].kind is HistoryKind.ERROR
        assert store.history[0].text == "Interrupted"

    async def test_idempotent(self, context, store):
        """Test repeated interrupts do nothing after the first."""
        context.registry.register("t1", "Read", {"file_path": "a"})
        engine = FakeEngineStream()
        controller = InterruptController(context, store, lambda: engine)

        await controller.interrupt()
        await controller.interrupt()
        controller.request()
        await settle()

        assert len(store.history) == 1
        assert engine.calls == 1
        assert controller.fired

    async def test_missing_engine_interrupt(self, context, store):
        """Test an engine without interrupt() still sets the flags."""
        await InterruptController(context, store, lambda: object()).interrupt()
        assert context.is_interrupting
        assert context.interrupt_fired

    async def test_no_engine_handle(self, context, store):
        """Test interrupting before any stream is open."""
        await InterruptController(context, store, lambda: None).interrupt()
        assert context.is_interrupting

    async def test_engine_interrupt_failure_is_logged(self, context, store):
        """Test an engine interrupt() that raises does not propagate."""
        engine = FakeEngineStream(fail=True)
        await InterruptController(context, store, lambda: engine).interrupt()
        assert engine.calls == 1
        assert context.is_interrupting

    async def test_stops_persistent_input(self, context, store):
        """Test the persistent input is removed and not restored."""
        store.start_persistent_input(PersistentInputSurface(on_submit=lambda m: None, on_interrupt=lambda: None))
        assert store.pending.kind is SurfaceKind.PERSISTENT_INPUT

        await InterruptController(context, store).interrupt()

        assert store.pending is None
        assert store.agent_state.persistent_input is None

    async def test_request_schedules(self, context, store):
        """Test request() runs interrupt() on the event loop."""
        controller = InterruptController(context, store)
        controller.request()
        assert not context.is_interrupting

        await settle()

        assert context.is_interrupting
        assert controller.fired
