"""Avatar - a conversational avatar that listens, thinks and answers.

A turn-taking state machine driven by classifier and host events, backed
by a scripted dialog service and a question-answering service.
"""

__version__ = "0.1.0"

from avatar.core.config import AvatarConfig, load_config
from avatar.core.events import EventBus, EventType

__all__ = [
    "__version__",
    "AvatarConfig",
    "load_config",
    "EventBus",
    "EventType",
]


# Lazy import for UI module to avoid circular imports
def __getattr__(name: str):
    if name == "ConsoleDisplay":
        from avatar.ui import ConsoleDisplay
        return ConsoleDisplay
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
