"""Event system for avatar component communication.

Provides an async pub/sub event bus for loose coupling between the avatar,
its host and its renderers. Events are typed using dataclasses for type
safety and IDE support.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Coroutine, Optional

from avatar.core.models import (
    AnswerCandidate,
    ClassifyResult,
    QuestionCandidate,
)
from avatar.utils.logging import get_logger

logger = get_logger(__name__)


class EventType(Enum):
    """Types of events in the avatar system."""

    # Commands from the host
    COMMAND_WAKEUP = auto()
    COMMAND_SLEEP = auto()
    COMMAND_DEBUG_ON = auto()
    COMMAND_DEBUG_OFF = auto()
    CHANGE_MOOD = auto()

    # Classifier events
    CLASSIFY_RESULT = auto()
    CLASSIFY_QUESTION = auto()
    CLASSIFY_DIALOG = auto()
    CLASSIFY_FAILURE = auto()
    QUESTION_CANCEL = auto()

    # Audio inputs
    SPEAKING_STATE = auto()
    AUDIO_LEVEL = auto()

    # Avatar notifications
    STATE_CHANGED = auto()
    MOOD_CHANGED = auto()
    TEXT_OUTPUT = auto()
    AVATAR_SPEAKING = auto()
    USER_SPEAKING = auto()

    # Question cycle notifications
    QUESTION_PIPELINE = auto()
    QUESTION_AVAILABLE = auto()
    PARSE_AVAILABLE = auto()
    ANSWERS_AVAILABLE = auto()
    SHOW_ANSWERS = auto()

    DEBUG_MESSAGE = auto()


@dataclass
class Event:
    """Base event class with common metadata."""

    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class StateChangeEvent(Event):
    """Event for conversation state changes."""

    type: EventType = EventType.STATE_CHANGED
    previous_state: str = ""
    new_state: str = ""


@dataclass
class MoodChangeEvent(Event):
    """Event for mood changes."""

    type: EventType = EventType.MOOD_CHANGED
    previous_mood: str = ""
    new_mood: str = ""


@dataclass
class MoodRequestEvent(Event):
    """Request to put the avatar into a mood."""

    type: EventType = EventType.CHANGE_MOOD
    mood: Any = None


@dataclass
class TextEvent(Event):
    """Text the avatar says (phrases, answers, dialog lines)."""

    type: EventType = EventType.TEXT_OUTPUT
    text: str = ""


@dataclass
class ClassifyEvent(Event):
    """Event carrying a classification of the user's utterance."""

    type: EventType = EventType.CLASSIFY_QUESTION
    result: Optional[ClassifyResult] = None


@dataclass
class SpeakingEvent(Event):
    """Whether the speech output is currently playing."""

    type: EventType = EventType.SPEAKING_STATE
    is_speaking: Any = False


@dataclass
class LevelEvent(Event):
    """Audio level, from the microphone or from speech output."""

    type: EventType = EventType.AUDIO_LEVEL
    level: float = 0.0


@dataclass
class QuestionEvent(Event):
    """Candidate questions for the current question cycle."""

    type: EventType = EventType.QUESTION_AVAILABLE
    pipeline: str = ""
    questions: list[QuestionCandidate] = field(default_factory=list)


@dataclass
class ParseEvent(Event):
    """Parse data for the current question cycle."""

    type: EventType = EventType.PARSE_AVAILABLE
    parse_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class AnswersEvent(Event):
    """Candidate answers for the current question cycle."""

    type: EventType = EventType.ANSWERS_AVAILABLE
    answers: list[AnswerCandidate] = field(default_factory=list)


@dataclass
class DebugMessageEvent(Event):
    """Free-form message for debug displays."""

    type: EventType = EventType.DEBUG_MESSAGE
    message: str = ""


# Type alias for event handlers
EventHandler = Callable[[Event], Coroutine[Any, Any, None]]


class EventBus:
    """Async event bus for component communication.

    Allows components to subscribe to events by type and publish events
    to all subscribers. Supports multiple handlers per event type.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._handlers: dict[EventType, list[EventHandler]] = {}

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: The type of event to subscribe to.
            handler: Async function to call when event is published.
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe a handler from an event type.

        Args:
            event_type: The type of event to unsubscribe from.
            handler: The handler to remove.
        """
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers.

        Handlers run concurrently. A failing handler does not stop the
        others; its exception is logged.

        Args:
            event: The event to publish.
        """
        handlers = list(self._handlers.get(event.type, []))
        if not handlers:
            return

        tasks = [asyncio.create_task(handler(event)) for handler in handlers]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    "event_handler_failed",
                    event_type=event.type.name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=repr(result),
                )

    def has_handlers(self, event_type: EventType) -> bool:
        """Check if an event type has any handlers.

        Args:
            event_type: The event type to check.

        Returns:
            True if there are handlers registered for this event type.
        """
        return bool(self._handlers.get(event_type))
