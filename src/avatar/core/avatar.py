"""Avatar conversation state machine.

Sequences conversational turns between:
- CONNECTING: Not started yet
- SLEEPING_LISTENING: Asleep, listening only for the wake word
- LISTENING: Awake, waiting for a question or a dialog utterance
- THINKING: Waiting on the question-answering or dialog service
- ANSWERING: Speech output is playing
- DID_NOT_UNDERSTAND: The last utterance could not be classified
- ERROR: A service failed; a restart is scheduled

The machine is driven by classifier and host events, calls the dialog and
question-answering services, and emits text, mood and appearance changes.
"""

import random
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Optional, Protocol

from avatar.core.appearance import AppearanceTable, Color
from avatar.core.config import AvatarConfig
from avatar.core.debug import DebugRegistry
from avatar.core.errors import EmptyResult, ResolutionFailure, ServiceError
from avatar.core.events import (
    AnswersEvent,
    DebugMessageEvent,
    Event,
    EventBus,
    EventType,
    LevelEvent,
    ParseEvent,
    QuestionEvent,
    StateChangeEvent,
    TextEvent,
)
from avatar.core.models import (
    AnswerCandidate,
    AskResponse,
    ClassifyResult,
    DialogSession,
    QuestionCandidate,
)
from avatar.core.mood import Mood, MoodTracker
from avatar.core.phrases import PhraseCategory, PhrasePicker
from avatar.core.scheduler import RestartTimer
from avatar.utils.logging import get_logger
from avatar.utils.text import truncate_answer

logger = get_logger(__name__)


class ConversationState(Enum):
    """Avatar conversation states."""

    CONNECTING = auto()          # Before start
    SLEEPING_LISTENING = auto()  # Waiting for the wake word
    LISTENING = auto()           # Awake, waiting for input
    THINKING = auto()            # Service call in progress
    ANSWERING = auto()           # Speech output playing
    DID_NOT_UNDERSTAND = auto()  # Classification failed
    ERROR = auto()               # Service failure, restart pending


# Entering any of these puts the avatar to sleep
SLEEPY_STATES = (
    ConversationState.CONNECTING,
    ConversationState.ERROR,
    ConversationState.SLEEPING_LISTENING,
)

LISTENING_STATES = (
    ConversationState.LISTENING,
    ConversationState.SLEEPING_LISTENING,
)


class QuestionDisplay(Protocol):
    """A visible question panel owned by the avatar."""

    def close(self) -> None:
        ...


# Builds a display for (pipeline, response)
QuestionDisplayFactory = Callable[[str, AskResponse], QuestionDisplay]


@dataclass
class PendingQuestion:
    """Results of the current question cycle."""

    classify_result: Optional[ClassifyResult] = None
    parse_data: dict[str, Any] = field(default_factory=dict)
    questions: list[QuestionCandidate] = field(default_factory=list)
    answers: list[AnswerCandidate] = field(default_factory=list)
    last_answer: str = ""


@dataclass
class AvatarStats:
    """Runtime statistics for the avatar."""

    state_transitions: int = 0
    questions_asked: int = 0
    dialog_turns: int = 0
    discarded_responses: int = 0
    errors: int = 0
    restarts: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def uptime(self) -> float:
        """Get avatar uptime in seconds."""
        return time.time() - self.start_time


class AvatarAgent:
    """Turn-taking state machine behind the avatar.

    Owns the conversation state, the mood, the dialog session identifiers
    and the pending question. Collaborators are injected:

    - event_bus: receives notifications and, once attached, delivers the
      host's commands and classifier results
    - dialog_client: ``find_dialog_id`` and ``converse`` coroutines
    - qa_client: ``ask`` coroutine
    - debug_registry: debug info callbacks are registered here on attach
    - display_factory: opens the question panel for an answered question

    Service failures never leave the machine; they put it into ERROR,
    which schedules a restart of the whole startup sequence.
    """

    def __init__(
        self,
        config: AvatarConfig,
        event_bus: Optional[EventBus] = None,
        dialog_client: Any = None,
        qa_client: Any = None,
        debug_registry: Optional[DebugRegistry] = None,
        display_factory: Optional[QuestionDisplayFactory] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize the avatar.

        Args:
            config: Avatar configuration.
            event_bus: Optional event bus for publishing events.
            dialog_client: Optional dialog service client.
            qa_client: Optional question-answering service client.
            debug_registry: Optional registry for debug info.
            display_factory: Optional question display factory.
            rng: Optional random source for phrase picking.

        Raises:
            AppearanceError: If the appearance tables are incomplete.
            ValueError: If a phrase category is empty.
        """
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.dialog_client = dialog_client
        self.qa_client = qa_client
        self.debug_registry = debug_registry or DebugRegistry()
        self.display_factory = display_factory

        self.phrases = PhrasePicker.from_config(config.phrases, rng=rng)
        self.state_styles = AppearanceTable.from_config(
            ConversationState, config.appearance.states
        )
        self.mood_styles = AppearanceTable.from_config(Mood, config.appearance.moods)

        self._state = ConversationState.CONNECTING
        self._previous_listening = ConversationState.SLEEPING_LISTENING
        self._mood = MoodTracker(self.event_bus, initial=Mood.SLEEPING)
        self.session = DialogSession()
        self.pending = PendingQuestion()
        self.pipeline = config.behavior.pipeline
        self.stats = AvatarStats()

        self._restart_timer = RestartTimer()
        self._focus_display: Optional[QuestionDisplay] = None

        # Bumped on sleep, start and detach; responses issued under an older
        # value belong to a conversation that no longer exists.
        self._conversation_epoch = 0
        self._ask_seq = 0

        self._attached = False
        self._subscriptions = [
            (EventType.COMMAND_WAKEUP, self._handle_wakeup),
            (EventType.COMMAND_SLEEP, self._handle_sleep),
            (EventType.COMMAND_DEBUG_ON, self._handle_debug_on),
            (EventType.COMMAND_DEBUG_OFF, self._handle_debug_off),
            (EventType.CHANGE_MOOD, self._handle_change_mood),
            (EventType.CLASSIFY_RESULT, self._handle_classify_result),
            (EventType.CLASSIFY_QUESTION, self._handle_question),
            (EventType.CLASSIFY_DIALOG, self._handle_dialog),
            (EventType.CLASSIFY_FAILURE, self._handle_classify_failure),
            (EventType.QUESTION_CANCEL, self._handle_cancel_question),
            (EventType.SPEAKING_STATE, self._handle_speaking),
            (EventType.AUDIO_LEVEL, self._handle_level),
        ]
        self._debug_info = [
            ("STATE", self._state_debug_info),
            ("MOOD", self._mood_debug_info),
            ("CLASS", self._classify_debug_info),
            ("Q", self._question_debug_info),
            ("A", self._answer_debug_info),
        ]

        self.logger = logger.bind(component="AvatarAgent")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConversationState:
        """Get current conversation state."""
        return self._state

    @property
    def mood(self) -> Mood:
        """Get current mood."""
        return self._mood.mood

    @property
    def previous_listening_state(self) -> ConversationState:
        """Listening variant to return to when speech output ends."""
        return self._previous_listening

    @property
    def is_attached(self) -> bool:
        return self._attached

    @property
    def restart_pending(self) -> bool:
        """True while an automatic restart is scheduled."""
        return self._restart_timer.pending

    @property
    def question_display(self) -> Optional[QuestionDisplay]:
        return self._focus_display

    @property
    def behaviour_color(self) -> Color:
        return self.state_styles.color_for(self._state)

    @property
    def behaviour_speed(self) -> float:
        return self.state_styles.speed_for(self._state)

    @property
    def behaviour_time_modifier(self) -> float:
        return self.state_styles.style_for(self._state).time_modifier

    @property
    def mood_color(self) -> Color:
        return self.mood_styles.color_for(self.mood)

    @property
    def mood_speed(self) -> float:
        return self.mood_styles.speed_for(self.mood)

    @property
    def mood_time_modifier(self) -> float:
        return self.mood_styles.style_for(self.mood).time_modifier

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def attach(self) -> None:
        """Hook the avatar up to its host and start it.

        Subscribes to the host's events, registers debug info and runs
        the startup sequence.
        """
        if self._attached:
            self.logger.warning("avatar_already_attached")
            return

        for event_type, handler in self._subscriptions:
            self.event_bus.subscribe(event_type, handler)
        for name, callback in self._debug_info:
            self.debug_registry.register(name, callback)
        self._attached = True

        self.logger.info("avatar_attached")
        await self.start()

    async def detach(self) -> None:
        """Release everything acquired in attach().

        Cancels a pending restart and closes the question display.
        Responses still in flight are discarded when they arrive.
        """
        if not self._attached:
            return

        for event_type, handler in self._subscriptions:
            self.event_bus.unsubscribe(event_type, handler)
        for name, callback in self._debug_info:
            self.debug_registry.unregister(name, callback)
        self._attached = False

        self._restart_timer.cancel()
        self._close_display()
        self._conversation_epoch += 1

        self.logger.info(
            "avatar_detached",
            uptime=self.stats.uptime,
            transitions=self.stats.state_transitions,
            errors=self.stats.errors,
        )

    async def start(self) -> None:
        """Run the startup sequence: fall asleep, then find the dialog."""
        self.logger.info("avatar_starting", state=self._state.name)
        if self._state == ConversationState.ERROR:
            self.stats.restarts += 1

        self._conversation_epoch += 1
        self._new_conversation()
        await self._set_state(ConversationState.SLEEPING_LISTENING)

        if self.config.behavior.dialog_name:
            await self._resolve_dialog(self._conversation_epoch)

    async def _resolve_dialog(self, epoch: int) -> None:
        name = self.config.behavior.dialog_name
        if self.dialog_client is None:
            self.logger.warning("no_dialog_client", dialog_name=name)
            return

        dialog_id = None
        try:
            dialog_id = await self.dialog_client.find_dialog_id(name)
        except ServiceError as e:
            self.logger.error("dialog_listing_failed", error=str(e))

        if epoch != self._conversation_epoch:
            return

        if dialog_id:
            self.session.dialog_id = dialog_id

        if not self.session.has_dialog:
            error = ResolutionFailure(f"Failed to find dialog ID for {name}")
            self.logger.error("dialog_not_found", dialog_name=name, error=str(error))
            await self._set_state(ConversationState.ERROR)
        else:
            self.logger.info("dialog_resolved", dialog_name=name, dialog_id=self.session.dialog_id)

    def _new_conversation(self) -> None:
        """Forget the dialog turn ids and the last question cycle."""
        self.session.reset()
        self.pending = PendingQuestion()

    # ------------------------------------------------------------------
    # State and mood
    # ------------------------------------------------------------------

    async def _set_state(self, new_state: ConversationState) -> None:
        """Assign the conversation state and run its side effects.

        Args:
            new_state: The state to transition to.
        """
        if self._state in LISTENING_STATES:
            self._previous_listening = self._state

        if self._state != new_state:
            old_state = self._state
            self._state = new_state
            self.stats.state_transitions += 1

            self.logger.info(
                "state_transition",
                from_state=old_state.name,
                to_state=new_state.name,
            )

            await self.event_bus.publish(
                StateChangeEvent(
                    previous_state=old_state.name,
                    new_state=new_state.name,
                )
            )

            if new_state == ConversationState.ERROR:
                self.stats.errors += 1
                self._close_display()
                self._restart_timer.schedule(
                    self.config.behavior.restart_interval, self.start
                )
                await self._say(self.phrases.pick(PhraseCategory.ERROR))

        if self._state in SLEEPY_STATES:
            await self._mood.set(Mood.SLEEPING)

    async def set_mood(self, mood: Mood) -> None:
        """Change the mood by hand."""
        await self._mood.set(mood)

    async def next_mood(self) -> Mood:
        """Cycle to the next mood."""
        return await self._mood.next()

    async def set_debug(self, active: bool) -> None:
        """Switch the debug display on or off and go back to listening."""
        self.debug_registry.active = active
        await self._set_state(ConversationState.LISTENING)

    # ------------------------------------------------------------------
    # Commands and classifier events
    # ------------------------------------------------------------------

    async def on_wake(self, result: Optional[ClassifyResult] = None) -> None:
        """Wake up; greet, or open the dialog with what woke us."""
        if self._state != ConversationState.SLEEPING_LISTENING:
            return

        await self._mood.set(Mood.IDLE)
        await self._set_state(ConversationState.LISTENING)

        if result is not None and self.session.has_dialog:
            await self._converse(result.text, conversation_id=0)
        else:
            await self._say(self.phrases.pick(PhraseCategory.GREETING))

    async def on_sleep(self) -> None:
        """Go to sleep and forget the current conversation."""
        if self._state == ConversationState.SLEEPING_LISTENING:
            return

        await self._mood.set(Mood.SLEEPING)
        await self._set_state(ConversationState.SLEEPING_LISTENING)
        self._conversation_epoch += 1
        self._new_conversation()

        await self._say(self.phrases.pick(PhraseCategory.FAREWELL))
        self._close_display()

    def on_classify_result(self, result: Optional[ClassifyResult]) -> None:
        """Remember the latest classification."""
        self.pending.classify_result = result

    async def on_classify_failure(self) -> None:
        """Apologise for an utterance that could not be classified."""
        if self._state == ConversationState.SLEEPING_LISTENING:
            return

        await self._set_state(ConversationState.DID_NOT_UNDERSTAND)
        await self._say(self.phrases.pick(PhraseCategory.FAILURE))

        if self._state == ConversationState.DID_NOT_UNDERSTAND:
            await self._set_state(ConversationState.LISTENING)

    async def on_question(self, result: ClassifyResult) -> None:
        """Ask the question-answering service about a classified question.

        A top class of the form ``<prefix>-<pipeline>`` selects the
        pipeline; otherwise the current pipeline is kept.

        Raises:
            TypeError: If ``result`` is not a ClassifyResult.
        """
        if not isinstance(result, ClassifyResult):
            raise TypeError("ClassifyResult expected.")
        if self._state != ConversationState.LISTENING:
            return

        if "-" in result.top_class:
            self.pipeline = result.top_class.split("-", 1)[1]

        await self._set_state(ConversationState.THINKING)

        self._ask_seq += 1
        seq = self._ask_seq
        epoch = self._conversation_epoch

        if self.qa_client is None:
            self.logger.error("no_qa_client")
            await self._set_state(ConversationState.ERROR)
            return

        self.stats.questions_asked += 1
        try:
            response = await self.qa_client.ask(self.pipeline, result.text)
        except ServiceError as e:
            if not self._is_current_ask(seq, epoch):
                self._discard("question_failure", error=str(e))
                return
            self.logger.error("question_failed", pipeline=self.pipeline, error=str(e))
            await self._set_state(ConversationState.ERROR)
            return

        await self._on_ask_response(seq, epoch, response)

    async def on_cancel_question(self) -> None:
        """Stop waiting for an answer."""
        if self._state == ConversationState.THINKING:
            self.logger.info("question_cancelled", pipeline=self.pipeline)
            await self._set_state(ConversationState.LISTENING)

    async def on_dialog(self, result: ClassifyResult) -> None:
        """Pass an utterance classified as dialog to the dialog service.

        Raises:
            TypeError: If ``result`` is not a ClassifyResult.
        """
        if not isinstance(result, ClassifyResult):
            raise TypeError("ClassifyResult expected.")
        if self._state != ConversationState.LISTENING:
            return

        self.pending.classify_result = result
        if not self.session.has_dialog:
            self.logger.debug("dialog_unavailable", text=result.text)
            return

        await self._set_state(ConversationState.THINKING)
        await self._converse(result.text, conversation_id=self.session.conversation_id)

    async def on_speaking(self, is_speaking: bool) -> None:
        """Follow the speech output: ANSWERING while it plays.

        Raises:
            TypeError: If ``is_speaking`` is not a bool.
        """
        if not isinstance(is_speaking, bool):
            raise TypeError("Unexpected data type.")
        if self._state == ConversationState.ERROR:
            return

        if is_speaking:
            await self._set_state(ConversationState.ANSWERING)
        else:
            await self._set_state(self._previous_listening)

    async def on_level(self, level: float) -> None:
        """Forward an audio level as avatar or user speaking level."""
        if self._state == ConversationState.ANSWERING:
            event_type = EventType.AVATAR_SPEAKING
        else:
            event_type = EventType.USER_SPEAKING
        await self.event_bus.publish(LevelEvent(type=event_type, level=level))

    # ------------------------------------------------------------------
    # Service results
    # ------------------------------------------------------------------

    def _is_current_ask(self, seq: int, epoch: int) -> bool:
        return (
            seq == self._ask_seq
            and epoch == self._conversation_epoch
            and self._state == ConversationState.THINKING
        )

    def _discard(self, what: str, **kwargs: Any) -> None:
        self.stats.discarded_responses += 1
        self.logger.info("late_response_discarded", response=what, state=self._state.name, **kwargs)

    async def _on_ask_response(
        self, seq: int, epoch: int, response: Optional[AskResponse]
    ) -> None:
        if not self._is_current_ask(seq, epoch):
            self._discard("answer", pipeline=self.pipeline)
            return

        if response is None or not response.has_answer:
            error = EmptyResult(f"No answer from pipeline {self.pipeline}")
            self.logger.error("no_answer", pipeline=self.pipeline, error=str(error))
            await self._set_state(ConversationState.ERROR)
            return

        self.pending.parse_data = response.parse_data
        self.pending.questions = response.questions
        self.pending.answers = response.answers

        self._open_display(response)

        await self.event_bus.publish(
            Event(type=EventType.QUESTION_PIPELINE, data={"pipeline": self.pipeline})
        )
        await self.event_bus.publish(
            QuestionEvent(pipeline=self.pipeline, questions=response.questions)
        )
        await self.event_bus.publish(ParseEvent(parse_data=response.parse_data))
        await self.event_bus.publish(AnswersEvent(answers=response.answers))

        for candidate in response.answers:
            self.logger.debug("answer_candidate", text=candidate.text, confidence=candidate.confidence)

        answer = truncate_answer(response.top_answer.text, self.config.behavior.max_answer_length)
        self.pending.last_answer = answer
        await self.event_bus.publish(DebugMessageEvent(message=answer))

        template = self.config.behavior.provider_templates.get(self.pipeline)
        if template:
            await self._say(str(template).format(self.pipeline))
            await self.event_bus.publish(Event(type=EventType.SHOW_ANSWERS))
        else:
            await self._say(answer)

        # Speech output or a sleep command may already have moved us on
        if self._state == ConversationState.THINKING:
            await self._set_state(ConversationState.LISTENING)

    async def _converse(self, text: str, conversation_id: int) -> None:
        epoch = self._conversation_epoch
        try:
            response = await self.dialog_client.converse(
                self.session.dialog_id,
                text,
                conversation_id,
                self.session.client_id,
            )
        except ServiceError as e:
            if epoch != self._conversation_epoch:
                self._discard("dialog_failure", error=str(e))
                return
            self.logger.error("dialog_failed", dialog_id=self.session.dialog_id, error=str(e))
            await self._set_state(ConversationState.ERROR)
            return

        if epoch != self._conversation_epoch:
            self._discard("dialog", dialog_id=self.session.dialog_id)
            return

        self.stats.dialog_turns += 1
        self.session.update(response)
        for line in response.response:
            if line:
                await self._say(line)

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    async def _say(self, text: str) -> None:
        self.logger.info("text_output", text=text)
        await self.event_bus.publish(TextEvent(text=text))

    def _open_display(self, response: AskResponse) -> None:
        self._close_display()
        if self.display_factory is not None:
            self._focus_display = self.display_factory(self.pipeline, response)

    def _close_display(self) -> None:
        if self._focus_display is not None:
            display, self._focus_display = self._focus_display, None
            display.close()

    # ------------------------------------------------------------------
    # Debug info
    # ------------------------------------------------------------------

    def _state_debug_info(self) -> str:
        return self._state.name

    def _mood_debug_info(self) -> str:
        return self.mood.name

    def _classify_debug_info(self) -> str:
        result = self.pending.classify_result
        if result is None:
            return ""
        return f"{result.top_class} ({result.top_confidence:.2f})"

    def _question_debug_info(self) -> str:
        if not self.pending.questions:
            return ""
        top = self.pending.questions[0]
        return f"{top.text} ({top.confidence:.2f})"

    def _answer_debug_info(self) -> str:
        return self.pending.last_answer

    # ------------------------------------------------------------------
    # Event bus handlers
    # ------------------------------------------------------------------

    async def _handle_wakeup(self, event: Event) -> None:
        await self.on_wake(getattr(event, "result", None))

    async def _handle_sleep(self, event: Event) -> None:
        await self.on_sleep()

    async def _handle_debug_on(self, event: Event) -> None:
        await self.set_debug(True)

    async def _handle_debug_off(self, event: Event) -> None:
        await self.set_debug(False)

    async def _handle_change_mood(self, event: Event) -> None:
        await self.set_mood(getattr(event, "mood", None))

    async def _handle_classify_result(self, event: Event) -> None:
        self.on_classify_result(getattr(event, "result", None))

    async def _handle_question(self, event: Event) -> None:
        await self.on_question(getattr(event, "result", None))

    async def _handle_dialog(self, event: Event) -> None:
        await self.on_dialog(getattr(event, "result", None))

    async def _handle_classify_failure(self, event: Event) -> None:
        await self.on_classify_failure()

    async def _handle_cancel_question(self, event: Event) -> None:
        await self.on_cancel_question()

    async def _handle_speaking(self, event: Event) -> None:
        await self.on_speaking(getattr(event, "is_speaking", None))

    async def _handle_level(self, event: Event) -> None:
        await self.on_level(getattr(event, "level", 0.0))
