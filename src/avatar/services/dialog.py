"""Scripted dialog service client.

Lists the dialogs available on the service and exchanges conversation
turns with one of them. A turn is correlated with the previous ones by a
conversation id and a client id that the service hands back.
"""

import time
from typing import Optional

import httpx

from avatar.core.config import DialogServiceConfig
from avatar.core.models import ConverseResponse, DialogInfo
from avatar.services.base import (
    RequestRejected,
    ServiceError,
    check_response,
    get_auth,
    parse_json,
)
from avatar.utils.logging import get_logger

logger = get_logger(__name__)


class DialogClient:
    """Async client for the dialog service.

    Handles:
    - Listing dialogs and resolving a dialog id by name
    - Sending one utterance and receiving the scripted response lines
    """

    def __init__(
        self,
        config: DialogServiceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the dialog client.

        Args:
            config: Dialog service configuration.
            transport: Optional httpx transport, used by tests.
        """
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout
        self._transport = transport
        self._auth = get_auth("dialog")

        self.logger = logger.bind(component="DialogClient")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            auth=self._auth,
            transport=self._transport,
        )

    async def list_dialogs(self) -> list[DialogInfo]:
        """Get the dialogs available on the service.

        Raises:
            RequestRejected: If the service is unreachable or refuses.
            ServiceError: If the response cannot be understood.
        """
        try:
            async with self._client() as client:
                response = await client.get("/v1/dialogs")
        except httpx.HTTPError as e:
            raise RequestRejected(f"Dialog service unreachable: {e}", retryable=True)

        check_response(response, "Dialog service")
        data = parse_json(response, "Dialog service")

        try:
            dialogs = [
                DialogInfo(name=d.get("name", ""), dialog_id=d.get("dialog_id", ""))
                for d in data.get("dialogs") or []
            ]
        except (AttributeError, TypeError) as e:
            raise ServiceError(f"Malformed dialog listing: {e}")
        self.logger.debug("dialogs_listed", count=len(dialogs))
        return dialogs

    async def find_dialog_id(self, name: str) -> Optional[str]:
        """Resolve a dialog id by dialog name.

        Returns:
            The id of the last dialog named ``name``, or None.
        """
        dialog_id = None
        for dialog in await self.list_dialogs():
            if dialog.name == name:
                dialog_id = dialog.dialog_id
        return dialog_id

    async def converse(
        self,
        dialog_id: str,
        text: str,
        conversation_id: int = 0,
        client_id: int = 0,
    ) -> ConverseResponse:
        """Send one utterance to a dialog.

        Args:
            dialog_id: Dialog to talk to.
            text: What the user said.
            conversation_id: 0 to start a new conversation.
            client_id: 0 for a new client.

        Returns:
            The service's identifiers and response lines.

        Raises:
            RequestRejected: If the service is unreachable or refuses.
            ServiceError: If the response cannot be understood.
        """
        start_time = time.time()
        form = {
            "input": text,
            "conversation_id": str(conversation_id),
            "client_id": str(client_id),
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    f"/v1/dialogs/{dialog_id}/conversation", data=form
                )
        except httpx.HTTPError as e:
            raise RequestRejected(f"Dialog service unreachable: {e}", retryable=True)

        check_response(response, "Dialog service")
        data = parse_json(response, "Dialog service")

        try:
            result = ConverseResponse(
                conversation_id=int(data.get("conversation_id", 0)),
                client_id=int(data.get("client_id", 0)),
                response=[str(line) for line in data.get("response") or []],
            )
        except (TypeError, ValueError) as e:
            raise ServiceError(f"Malformed dialog response: {e}")

        self.logger.info(
            "dialog_turn",
            dialog_id=dialog_id,
            conversation_id=result.conversation_id,
            lines=len(result.response),
            latency=round(time.time() - start_time, 3),
        )
        return result

