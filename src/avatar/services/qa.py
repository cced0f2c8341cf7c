"""Question-answering service client.

Questions are routed through a named pipeline. The service answers with
its parse of the question, candidate readings of the question and
candidate answers, best first.
"""

import time
from typing import Any, Optional

import httpx

from avatar.core.config import QAServiceConfig
from avatar.core.models import AnswerCandidate, AskResponse, QuestionCandidate
from avatar.services.base import (
    RequestRejected,
    ServiceError,
    check_response,
    get_auth,
    parse_json,
)
from avatar.utils.logging import get_logger

logger = get_logger(__name__)


def parse_ask_response(data: dict[str, Any]) -> AskResponse:
    """Build an AskResponse from the service's JSON body.

    Raises:
        ServiceError: If a candidate entry is malformed.
    """
    try:
        questions = [
            QuestionCandidate(
                text=str(q.get("questionText", "")),
                confidence=float(q.get("topConfidence", 0.0)),
            )
            for q in data.get("questions") or []
        ]
        answers = [
            AnswerCandidate(
                text=str(a.get("answerText", "")),
                confidence=float(a.get("confidence", 0.0)),
            )
            for a in data.get("answers") or []
        ]
    except (AttributeError, TypeError, ValueError) as e:
        raise ServiceError(f"Malformed ask response: {e}")

    return AskResponse(
        parse_data=data.get("parseData") or {},
        questions=questions,
        answers=answers,
    )


class QAClient:
    """Async client for the question-answering service."""

    def __init__(
        self,
        config: QAServiceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the QA client.

        Args:
            config: QA service configuration.
            transport: Optional httpx transport, used by tests.
        """
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout
        self._transport = transport
        self._auth = get_auth("qa")

        self.logger = logger.bind(component="QAClient")

    async def ask(self, pipeline: str, question: str) -> AskResponse:
        """Ask a question through a pipeline.

        Args:
            pipeline: Name of the pipeline that answers this kind of question.
            question: The question text.

        Returns:
            The parsed service response. It may contain no answers.

        Raises:
            RequestRejected: If the service is unreachable or refuses.
            ServiceError: If the response cannot be understood.
        """
        start_time = time.time()
        self.logger.info(
            "question_sent",
            pipeline=pipeline,
            question=question[:50] + "..." if len(question) > 50 else question,
        )

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                auth=self._auth,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    f"/v1/pipelines/{pipeline}/ask",
                    params={"question": question},
                )
        except httpx.HTTPError as e:
            raise RequestRejected(f"QA service unreachable: {e}", retryable=True)

        check_response(response, "QA service")
        result = parse_ask_response(parse_json(response, "QA service"))

        self.logger.info(
            "answers_received",
            pipeline=pipeline,
            questions=len(result.questions),
            answers=len(result.answers),
            latency=round(time.time() - start_time, 3),
        )
        return result

