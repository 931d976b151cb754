"""
Error taxonomy for remote operations.

Exceptions here never cross the public surface: the gateway converts
them into failed results carrying an ErrorKind.
"""

from enum import Enum, auto


class ErrorKind(Enum):
    """Why a remote operation did not produce a result."""
    NOT_CONFIGURED = auto()     # No usable credential
    RATE_LIMITED = auto()       # Governor denied the call
    TRANSPORT_FAILURE = auto()  # Network, timeout or HTTP error
    MALFORMED_REPLY = auto()    # Reply did not match the expected schema
    INVALID_ARGUMENT = auto()   # Caller passed something unusable


class ClipInsightError(Exception):
    """Base error carrying its ErrorKind."""
    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(ClipInsightError):
    """Raised by a remote client when the request could not complete."""
    kind = ErrorKind.TRANSPORT_FAILURE


class MalformedReplyError(ClipInsightError):
    """Raised when a reply cannot be parsed into the expected shape."""
    kind = ErrorKind.MALFORMED_REPLY


class InvalidArgumentError(ClipInsightError):
    """Raised when a caller-supplied argument is unusable."""
    kind = ErrorKind.INVALID_ARGUMENT
