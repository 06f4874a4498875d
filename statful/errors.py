"""
Exceptions raised by the Statful client.

Buffering never raises; only the transports and the explicit flush do.
"""
from typing import Iterable, List, Optional

FLUSH_ERRORS = 'flush errors'
FLUSH_ERRORS_SEP = '; '


class SenderError(Exception):
    """Raised by a sender when a batch could not be delivered."""


class UnsupportedOperationError(SenderError):
    """Raised when a sender has no way to deliver a given kind of batch."""

    def __init__(self, message: str = 'UNSUPPORTED_OPERATION'):
        super().__init__(message)


class FlushError(Exception):
    """
    Collects every send failure from a single flush.

    Attributes:
        errors: The underlying exceptions, in the order they happened
    """

    def __init__(self, errors: Optional[Iterable[Exception]] = None):
        self.errors: List[Exception] = list(errors or [])
        super().__init__(*self.errors)

    def append(self, error: Exception) -> 'FlushError':
        self.errors.append(error)
        self.args = tuple(self.errors)
        return self

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def __str__(self) -> str:
        return f"{FLUSH_ERRORS}: {FLUSH_ERRORS_SEP.join(str(e) for e in self.errors)}"
