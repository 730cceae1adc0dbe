"""
backend/betoff/errors.py

Purpose:
    Error taxonomy shared by the backend services, the HTTP layer and the
    client package. Server-side errors are mapped to JSON responses in
    betoff.main; client-side errors are raised to the caller.
"""

from fastapi import status


class BetoffError(Exception):
    """Base class. `status_code` is used when the error crosses HTTP."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(BetoffError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "auth") -> None:
        super().__init__(message)


class NotFound(BetoffError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


class InvalidArgument(BetoffError):
    status_code = status.HTTP_400_BAD_REQUEST


class TransportUnavailable(BetoffError):
    """Network or push-channel failure seen by a client."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ParseFailure(BetoffError):
    """Malformed bulk-import document. Nothing from it is applied."""

    status_code = status.HTTP_400_BAD_REQUEST
