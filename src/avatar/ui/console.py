"""Rich console host for the avatar.

Renders what a 3D host would show, as terminal lines:
- Text the avatar says
- State and mood changes, in their appearance colors
- The question panel for an answered question
- Debug info

Also turns typed lines into the events a classifier and a speech host
would publish.
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from avatar.core.appearance import AppearanceTable
from avatar.core.avatar import ConversationState
from avatar.core.debug import DebugRegistry
from avatar.core.events import (
    ClassifyEvent,
    DebugMessageEvent,
    Event,
    EventBus,
    EventType,
    MoodChangeEvent,
    MoodRequestEvent,
    SpeakingEvent,
    StateChangeEvent,
    TextEvent,
)
from avatar.core.models import AskResponse, ClassifyResult
from avatar.core.mood import Mood
from avatar.utils.logging import get_logger

logger = get_logger(__name__)


class CommandError(ValueError):
    """A typed console line could not be understood."""


def parse_command(line: str) -> list[Event]:
    """Turn one typed line into the events to publish.

    ``/wake [text]``, ``/sleep``, ``/cancel``, ``/fail``, ``/mood NAME``,
    ``/speak on|off`` and ``/debug on|off`` map to host commands.
    ``dialog: text`` is a dialog utterance, ``<class>: text`` a question
    classified as ``<class>`` (e.g. ``qa-woodside: ...``), and anything
    else a question for the current pipeline.

    Raises:
        CommandError: For unknown commands or bad arguments.
    """
    text = line.strip()
    if not text:
        return []

    if text.startswith("/"):
        command, _, arg = text[1:].partition(" ")
        command = command.lower()
        arg = arg.strip()

        if command == "wake":
            result = ClassifyResult("wakeup", 1.0, arg) if arg else None
            return [ClassifyEvent(type=EventType.COMMAND_WAKEUP, result=result)]
        if command == "sleep":
            return [Event(type=EventType.COMMAND_SLEEP)]
        if command == "cancel":
            return [Event(type=EventType.QUESTION_CANCEL)]
        if command == "fail":
            return [Event(type=EventType.CLASSIFY_FAILURE)]
        if command == "mood":
            try:
                return [MoodRequestEvent(mood=Mood[arg.upper()])]
            except KeyError:
                names = ", ".join(m.name.lower() for m in Mood)
                raise CommandError(f"Unknown mood {arg!r}, expected one of: {names}")
        if command in ("speak", "debug"):
            if arg not in ("on", "off"):
                raise CommandError(f"/{command} expects 'on' or 'off'")
            if command == "speak":
                return [SpeakingEvent(is_speaking=arg == "on")]
            event_type = EventType.COMMAND_DEBUG_ON if arg == "on" else EventType.COMMAND_DEBUG_OFF
            return [Event(type=event_type)]
        raise CommandError(f"Unknown command /{command}")

    top_class, sep, rest = text.partition(":")
    if sep and rest.strip() and " " not in top_class.strip():
        top_class = top_class.strip()
        utterance = rest.strip()
    else:
        top_class = "question"
        utterance = text

    result = ClassifyResult(top_class=top_class, top_confidence=1.0, text=utterance)
    event_type = (
        EventType.CLASSIFY_DIALOG if top_class.lower() == "dialog"
        else EventType.CLASSIFY_QUESTION
    )
    return [
        ClassifyEvent(type=EventType.CLASSIFY_RESULT, result=result),
        ClassifyEvent(type=event_type, result=result),
    ]


class EventDispatcher:
    """Publishes typed lines without waiting for their handlers.

    A question keeps its handler busy until the answer arrives, so each
    line is published from its own task and the prompt stays responsive
    to ``/cancel`` and ``/sleep``.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self.event_bus = event_bus
        self._tasks: set[asyncio.Task] = set()
        self.logger = logger.bind(component="EventDispatcher")

    @property
    def pending(self) -> int:
        """Number of lines whose handlers are still running."""
        return len(self._tasks)

    def dispatch(self, events: Iterable[Event]) -> asyncio.Task:
        """Publish ``events`` in order from a background task."""
        task = asyncio.create_task(self._publish(list(events)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _publish(self, events: list[Event]) -> None:
        for event in events:
            await self.event_bus.publish(event)

    async def close(self) -> None:
        """Cancel the lines still being handled and wait for them."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                self.logger.error("dispatch_failed", error=str(result))
        if tasks:
            self.logger.debug("dispatch_cancelled", count=len(tasks))


@dataclass
class QuestionPanel:
    """Question display shown in the console."""

    pipeline: str
    question: str
    closed: bool = False

    def close(self) -> None:
        self.closed = True
        logger.debug("question_panel_closed", pipeline=self.pipeline)


class ConsoleDisplay:
    """Prints avatar activity to a rich console.

    Usage:
        display = ConsoleDisplay(event_bus, agent.state_styles, agent.mood_styles)
        display.start()
        ...
        display.stop()
    """

    def __init__(
        self,
        event_bus: EventBus,
        state_styles: AppearanceTable[ConversationState],
        mood_styles: AppearanceTable[Mood],
        console: Optional[Console] = None,
        simulate_speech: bool = True,
    ) -> None:
        """Initialize the console display.

        Args:
            event_bus: Event bus to subscribe to for updates.
            state_styles: Colors for conversation states.
            mood_styles: Colors for moods.
            console: Optional Rich console instance.
            simulate_speech: Publish speaking on/off around every text
                output, as a speech host would.
        """
        self.event_bus = event_bus
        self.state_styles = state_styles
        self.mood_styles = mood_styles
        self.console = console or Console()
        self.simulate_speech = simulate_speech
        self.panels: list[QuestionPanel] = []
        self._subscriptions = [
            (EventType.TEXT_OUTPUT, self._on_text),
            (EventType.STATE_CHANGED, self._on_state_changed),
            (EventType.MOOD_CHANGED, self._on_mood_changed),
            (EventType.SHOW_ANSWERS, self._on_show_answers),
            (EventType.DEBUG_MESSAGE, self._on_debug_message),
        ]
        self._running = False
        self.logger = logger.bind(component="ConsoleDisplay")

    def start(self) -> None:
        """Subscribe to the event bus."""
        if self._running:
            return
        for event_type, handler in self._subscriptions:
            self.event_bus.subscribe(event_type, handler)
        self._running = True

    def stop(self) -> None:
        """Unsubscribe from the event bus."""
        if not self._running:
            return
        for event_type, handler in self._subscriptions:
            self.event_bus.unsubscribe(event_type, handler)
        self._running = False

    def open_question(self, pipeline: str, response: AskResponse) -> QuestionPanel:
        """Show the question panel; used as the avatar's display factory."""
        question = response.questions[0].text if response.has_question else ""
        panel = QuestionPanel(pipeline=pipeline, question=question)
        self.panels.append(panel)

        table = Table(show_header=True, box=None, padding=(0, 2))
        table.add_column("Answer")
        table.add_column("Confidence", justify="right")
        for answer in response.answers[:5]:
            table.add_row(answer.text, f"{answer.confidence:.2f}")

        title = f"[bold]{question or 'Question'}[/bold] [dim]({pipeline})[/dim]"
        self.console.print(Panel(table, title=title, border_style="cyan"))
        return panel

    def print_debug(self, registry: DebugRegistry) -> None:
        """Print the debug registry as a table."""
        table = Table(show_header=False, box=None)
        table.add_column("Name", style="cyan")
        table.add_column("Value")
        for name, value in registry.snapshot().items():
            table.add_row(name, value)
        self.console.print(table)

    def _state_style(self, name: str) -> str:
        try:
            return self.state_styles.color_for(ConversationState[name]).to_hex()
        except KeyError:
            return "white"

    def _mood_style(self, name: str) -> str:
        try:
            return self.mood_styles.color_for(Mood[name]).to_hex()
        except KeyError:
            return "white"

    async def _on_text(self, event: TextEvent) -> None:
        self.console.print(Text.assemble(("avatar: ", "bold"), event.text))
        if self.simulate_speech:
            await self.event_bus.publish(SpeakingEvent(is_speaking=True))
            await self.event_bus.publish(SpeakingEvent(is_speaking=False))

    async def _on_state_changed(self, event: StateChangeEvent) -> None:
        self.console.print(
            Text.assemble(
                ("  state ", "dim"),
                (event.new_state, f"bold {self._state_style(event.new_state)}"),
            )
        )

    async def _on_mood_changed(self, event: MoodChangeEvent) -> None:
        self.console.print(
            Text.assemble(
                ("  mood ", "dim"),
                (event.new_mood, self._mood_style(event.new_mood)),
            )
        )

    async def _on_show_answers(self, event: Event) -> None:
        open_panels = [p for p in self.panels if not p.closed]
        self.console.print(f"  [dim]showing answers ({len(open_panels)} panel open)[/dim]")

    async def _on_debug_message(self, event: DebugMessageEvent) -> None:
        self.logger.debug("debug_message", message=event.message)
