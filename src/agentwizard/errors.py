"""Exception types shared across the session and UI layers."""

from __future__ import annotations

from dataclasses import dataclass

# Substrings the engine uses when a turn is cut short by an interrupt
INTERRUPT_MARKERS = ("aborted", "interrupted", "403")


class WizardError(Exception):
    """Base class for agentwizard errors."""


class EngineError(WizardError):
    """The agent engine failed in a way that ends the current session."""


class EngineUnavailable(WizardError):
    """The requested engine backend is not installed."""


@dataclass
class SurfaceAbandoned(WizardError):
    """Raised into the awaiter of a pending surface that was replaced unresolved."""

    kind: str
    reason: str

    def __str__(self) -> str:
        return f"{self.kind} surface abandoned: {self.reason}"


def is_interrupt_noise(error: BaseException | str) -> bool:
    """Whether an engine error is the expected fallout of an interrupt."""
    text = error if isinstance(error, str) else str(error)
    return any(marker in text for marker in INTERRUPT_MARKERS)
