from __future__ import annotations

import logging
from enum import Enum

__all__ = (
    "ErrorKind",
    "NotFoundError",
    "SpeedrunError",
    "TransportError",
    "UnauthorizedError",
    "parse_retry_after",
)

log = logging.getLogger(__name__)


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    UNAUTHORIZED = "unauthorized"


class SpeedrunError(Exception):
    """Base error for everything the client can fail with."""

    kind: ErrorKind = ErrorKind.TRANSPORT


class NotFoundError(SpeedrunError):
    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(SpeedrunError):
    kind = ErrorKind.UNAUTHORIZED


class TransportError(SpeedrunError):
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, status: int | None = None, retry_after: int | None = None) -> None:
        """Init transport error.

        Args:
            message: Human readable description.
            status: HTTP status, if a response was received.
            retry_after: Seconds from a ``Retry-After`` header, if the server sent one.
        """
        super().__init__(f"{status}: {message}" if status is not None else message)
        self.status = status
        self.retry_after = retry_after


def parse_retry_after(value: str | None) -> int | None:
    """Parse a ``Retry-After`` header into seconds.

    Only the delta-seconds form is understood.
    """
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        log.warning("Invalid Retry-After header: %r", value)
        return None
