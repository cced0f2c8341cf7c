"""Avatar service adapters.

HTTP clients for the scripted dialog service and the question-answering
service.
"""

from avatar.services.base import ServiceError, RequestRejected
from avatar.services.dialog import DialogClient
from avatar.services.qa import QAClient, parse_ask_response

__all__ = [
    "ServiceError",
    "RequestRejected",
    "DialogClient",
    "QAClient",
    "parse_ask_response",
]
