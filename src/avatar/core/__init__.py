"""Avatar core module.

Contains configuration management, the event system, and the
conversation state machine.
"""

from avatar.core.config import (
    BehaviorConfig,
    PhrasesConfig,
    AppearanceConfig,
    DialogServiceConfig,
    QAServiceConfig,
    LoggingConfig,
    AvatarConfig,
    load_config,
)
from avatar.core.errors import (
    ServiceError,
    RequestRejected,
    ResolutionFailure,
    EmptyResult,
)
from avatar.core.models import (
    ClassifyResult,
    QuestionCandidate,
    AnswerCandidate,
    AskResponse,
    DialogInfo,
    ConverseResponse,
    DialogSession,
)
from avatar.core.events import EventBus, EventType, Event, StateChangeEvent
from avatar.core.appearance import AppearanceError, AppearanceTable, Color, Style
from avatar.core.mood import Mood, MoodTracker
from avatar.core.phrases import PhraseCategory, PhrasePicker
from avatar.core.scheduler import RestartTimer
from avatar.core.debug import DebugRegistry
from avatar.core.avatar import (
    ConversationState,
    PendingQuestion,
    AvatarStats,
    AvatarAgent,
)

__all__ = [
    "BehaviorConfig",
    "PhrasesConfig",
    "AppearanceConfig",
    "DialogServiceConfig",
    "QAServiceConfig",
    "LoggingConfig",
    "AvatarConfig",
    "load_config",
    "ServiceError",
    "RequestRejected",
    "ResolutionFailure",
    "EmptyResult",
    "ClassifyResult",
    "QuestionCandidate",
    "AnswerCandidate",
    "AskResponse",
    "DialogInfo",
    "ConverseResponse",
    "DialogSession",
    "EventBus",
    "EventType",
    "Event",
    "StateChangeEvent",
    "AppearanceError",
    "AppearanceTable",
    "Color",
    "Style",
    "Mood",
    "MoodTracker",
    "PhraseCategory",
    "PhrasePicker",
    "RestartTimer",
    "DebugRegistry",
    "ConversationState",
    "PendingQuestion",
    "AvatarStats",
    "AvatarAgent",
]
