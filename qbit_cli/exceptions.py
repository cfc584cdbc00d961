"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class QbitCliError(Exception):
    """Base exception for all application-specific errors."""


class InvalidRequestError(QbitCliError):
    """Raised when caller input is rejected before any network call is made."""


class UnsupportedPayloadError(InvalidRequestError):
    """Raised when a torrent file buffer is of a type that cannot be uploaded."""


class AuthenticationError(QbitCliError):
    """Raised when login is rejected or no session identifier can be obtained."""


class RequestFailedError(QbitCliError):
    """
    Raised for any transport-level fault: connection errors, timeouts and
    non-2xx HTTP statuses. The original error text is kept in the message.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class UnexpectedResponseError(QbitCliError):
    """Raised when the Web API answers with an empty or unexpected body."""


class ConfigurationError(QbitCliError):
    """Raised for issues related to configuration loading or validation."""
