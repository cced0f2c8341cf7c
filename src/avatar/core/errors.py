"""Exceptions raised around the avatar's external services."""

from typing import Optional


class ServiceError(Exception):
    """Exception for failures talking to an external service."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class RequestRejected(ServiceError):
    """The service could not be reached or refused the request."""


class ResolutionFailure(ServiceError):
    """The configured dialog name is not known to the dialog service."""


class EmptyResult(ServiceError):
    """The question-answering service returned no usable answer."""
