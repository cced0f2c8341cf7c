"""Data shapes exchanged between the avatar and its collaborators."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ClassifyResult:
    """Result of classifying one utterance."""

    top_class: str
    top_confidence: float = 0.0
    text: str = ""


@dataclass
class QuestionCandidate:
    """A candidate reading of the user's question."""

    text: str
    confidence: float = 0.0


@dataclass
class AnswerCandidate:
    """A candidate answer, as returned by the question-answering service."""

    text: str
    confidence: float = 0.0


@dataclass
class AskResponse:
    """Response of the question-answering service.

    Candidates are ordered best first by the provider.
    """

    parse_data: dict[str, Any] = field(default_factory=dict)
    questions: list[QuestionCandidate] = field(default_factory=list)
    answers: list[AnswerCandidate] = field(default_factory=list)

    @property
    def has_question(self) -> bool:
        return bool(self.questions)

    @property
    def has_answer(self) -> bool:
        return bool(self.answers)

    @property
    def top_answer(self) -> Optional[AnswerCandidate]:
        return self.answers[0] if self.answers else None


@dataclass
class DialogInfo:
    """One entry of the dialog service listing."""

    name: str
    dialog_id: str


@dataclass
class ConverseResponse:
    """One turn of a scripted dialog."""

    conversation_id: int = 0
    client_id: int = 0
    response: list[str] = field(default_factory=list)


@dataclass
class DialogSession:
    """Identifiers tying the avatar to one scripted conversation."""

    dialog_id: Optional[str] = None
    conversation_id: int = 0
    client_id: int = 0

    @property
    def has_dialog(self) -> bool:
        return bool(self.dialog_id)

    def update(self, response: ConverseResponse) -> None:
        """Take over the identifiers returned with a dialog turn."""
        self.conversation_id = response.conversation_id
        self.client_id = response.client_id

    def reset(self) -> None:
        """Forget the conversation; the next turn starts a new one."""
        self.conversation_id = 0
        self.client_id = 0
