"""agentwizard: interactive, resumable supervision of a coding agent session."""

from agentwizard.config import Config, load_config
from agentwizard.errors import EngineError, EngineUnavailable, SurfaceAbandoned, WizardError
from agentwizard.session import ApprovalGateway, LoopState, SessionLoop, SessionResult
from agentwizard.ui import UIStateStore

__version__ = "0.1.0"

__all__ = [
    "ApprovalGateway",
    "Config",
    "EngineError",
    "EngineUnavailable",
    "LoopState",
    "SessionLoop",
    "SessionResult",
    "SurfaceAbandoned",
    "UIStateStore",
    "WizardError",
    "load_config",
]
