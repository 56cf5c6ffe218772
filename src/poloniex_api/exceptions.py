"""Exception types raised by the Poloniex client."""

import re
from enum import Enum
from typing import List, Optional


class PoloniexError(Exception):
    """Base class for every error raised by this package."""
    pass


class ConfigurationError(PoloniexError):
    """Unknown command, missing credentials or an invalid argument value.

    Never retried.
    """
    pass


class RequestError(PoloniexError):
    """Transient failure: timeout, connection problem or a retryable exchange message."""
    pass


class ProtocolError(PoloniexError):
    """Non-transient error reported by the exchange, or an undecodable response."""

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.body = body


class RetryExhausted(PoloniexError):
    """Raised once every attempt of the retry schedule failed."""

    def __init__(self, message: str, errors: List[RequestError]):
        super().__init__(message)
        self.errors = errors

    @property
    def last_error(self) -> Optional[RequestError]:
        return self.errors[-1] if self.errors else None


class ErrorKind(Enum):
    """How an exchange `error` message is handled."""
    NONCE_BEHIND = "nonce_behind"
    RETRY = "retry"
    FATAL = "fatal"


_NONCE_BEHIND = "Nonce must be greater"
_TRY_AGAIN = "please try again"
_NONCE_FLOOR = re.compile(r"Nonce must be greater than (\d+)")


def classify_error(message: str) -> ErrorKind:
    """Classify the text of an exchange `error` field.

    The matched strings are the exchange's own wording; this is the only
    place they appear.
    """
    if _NONCE_BEHIND in message:
        return ErrorKind.NONCE_BEHIND
    if _TRY_AGAIN in message.lower():
        return ErrorKind.RETRY
    return ErrorKind.FATAL


def parse_nonce_floor(message: str) -> Optional[int]:
    """Extract the nonce the exchange demanded, if the message carries one."""
    match = _NONCE_FLOOR.search(message)
    if match is None:
        return None
    return int(match.group(1))
