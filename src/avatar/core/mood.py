"""Avatar mood.

Mood is a cosmetic modifier independent of the conversation state. It
changes animation color and speed only.
"""

from enum import Enum, auto
from typing import Optional

from avatar.core.events import EventBus, MoodChangeEvent
from avatar.utils.logging import get_logger

logger = get_logger(__name__)


class Mood(Enum):
    """Avatar moods."""

    SLEEPING = auto()    # Connecting or asleep
    IDLE = auto()        # Awake, no particular mood
    INTERESTED = auto()
    URGENT = auto()
    UPSET = auto()
    SHY = auto()


class MoodTracker:
    """Holds the current mood and announces changes on the event bus."""

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        initial: Mood = Mood.SLEEPING,
    ) -> None:
        """Initialize the tracker.

        Args:
            event_bus: Bus that receives MOOD_CHANGED events.
            initial: Mood to start in. No event is published for it.
        """
        self.event_bus = event_bus or EventBus()
        self._mood = initial
        self.logger = logger.bind(component="MoodTracker")

    @property
    def mood(self) -> Mood:
        """Get the current mood."""
        return self._mood

    async def set(self, mood: Mood) -> bool:
        """Change the mood.

        Args:
            mood: The new mood.

        Returns:
            True if the mood changed, False if it already was ``mood``.
        """
        if not isinstance(mood, Mood):
            raise TypeError(f"Mood expected, got {type(mood).__name__}")
        if mood == self._mood:
            return False

        previous = self._mood
        self._mood = mood
        self.logger.debug("mood_changed", from_mood=previous.name, to_mood=mood.name)
        await self.event_bus.publish(
            MoodChangeEvent(previous_mood=previous.name, new_mood=mood.name)
        )
        return True

    async def next(self) -> Mood:
        """Advance to the next mood in declaration order, wrapping around."""
        moods = list(Mood)
        await self.set(moods[(moods.index(self._mood) + 1) % len(moods)])
        return self._mood
