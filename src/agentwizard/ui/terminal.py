"""Raw terminal keyboard input feeding a KeyRouter.

prompt_toolkit parses the escape sequences; this module only maps its
KeyPress values to router keys. A lone Esc cannot be told apart from the
start of an escape sequence until input goes quiet, so pending keys are
flushed after a short timeout.
"""

from __future__ import annotations

import asyncio
from contextlib import ExitStack
from typing import Any

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys

from agentwizard.logging import TRACE, get_logger
from agentwizard.ui.keys import Key, KeyRouter

log = get_logger("ui.terminal")

ESCAPE_FLUSH_DELAY = 0.05

_KEY_MAP: dict[Keys, Key] = {
    Keys.Escape: Key.ESCAPE,
    Keys.ControlC: Key.CTRL_C,
    Keys.ControlM: Key.ENTER,
    Keys.ControlJ: Key.ENTER,
    Keys.Up: Key.UP,
    Keys.Down: Key.DOWN,
    Keys.ControlH: Key.BACKSPACE,
}


def dispatch(router: KeyRouter, press: KeyPress) -> None:
    """Send one prompt_toolkit key press to the router."""
    key = press.key
    if isinstance(key, Keys):
        if key is Keys.BracketedPaste:
            router.feed_text(press.data)
        elif key in _KEY_MAP:
            router.feed(_KEY_MAP[key])
        else:
            log.log(TRACE, "Unhandled key %s", key.value)
        return
    if key == "\x7f":
        router.feed(Key.BACKSPACE)
    elif key.isprintable():
        router.feed_text(key)


class TerminalInput:
    """Attaches to stdin in raw mode for the duration of a session.

    Usage:
        with TerminalInput(router):
            await loop.run_session(prompt)
    """

    def __init__(self, router: KeyRouter, on_key: Any = None, input: Input | None = None) -> None:
        self._router = router
        self._on_key = on_key
        self._input = input
        self._stack: ExitStack | None = None
        self._flush_handle: asyncio.TimerHandle | None = None

    def start(self) -> None:
        if self._stack is not None:
            return
        if self._input is None:
            self._input = create_input()
        stack = ExitStack()
        stack.enter_context(self._input.raw_mode())
        stack.enter_context(self._input.attach(self._ready))
        self._stack = stack
        log.debug("Terminal input attached")

    def stop(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None
        if self._stack is not None:
            stack, self._stack = self._stack, None
            stack.close()
            log.debug("Terminal input detached")

    def _ready(self) -> None:
        if self._input is None or self._stack is None:
            return
        self._handle(self._input.read_keys())
        if self._flush_handle is not None:
            self._flush_handle.cancel()
        self._flush_handle = asyncio.get_running_loop().call_later(ESCAPE_FLUSH_DELAY, self._flush)

    def _flush(self) -> None:
        self._flush_handle = None
        if self._input is not None and self._stack is not None:
            self._handle(self._input.flush_keys())

    def _handle(self, presses: list[KeyPress]) -> None:
        for press in presses:
            dispatch(self._router, press)
        if presses and self._on_key is not None:
            self._on_key()

    def __enter__(self) -> TerminalInput:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()
