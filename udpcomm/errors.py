"""Exception taxonomy for udpcomm.

Per-message failures (:class:`DecodeError`, :class:`SendError`,
:class:`ReceiveError`) are recovered from inside the receive loops and only
reach callers of the one-shot operations.  Setup failures
(:class:`BindError`, :class:`JoinError`) stop the component that raised them.
:class:`RequestTimeoutError` is an expected outcome of a bounded wait.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "UDPCommError",
    "DecodeError",
    "BindError",
    "JoinError",
    "SendError",
    "ReceiveError",
    "RequestTimeoutError",
]


class UDPCommError(Exception):
    """Base class for every error raised by udpcomm."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class DecodeError(UDPCommError):
    """Payload bytes do not match the record shape."""


class BindError(UDPCommError):
    """The server could not reserve its UDP port."""

    def __init__(self, message: str, port: Optional[int] = None) -> None:
        self.port = port
        super().__init__(message)


class JoinError(UDPCommError):
    """Joining a multicast group failed or the address is not multicast."""

    def __init__(self, message: str, group: Optional[str] = None, port: Optional[int] = None) -> None:
        self.group = group
        self.port = port
        super().__init__(message)


class SendError(UDPCommError):
    """A datagram could not be sent."""


class ReceiveError(UDPCommError):
    """Receiving a datagram failed for a reason other than a timeout."""


class RequestTimeoutError(UDPCommError, TimeoutError):
    """No response arrived within the caller's timeout."""

    def __init__(self, message: str, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        super().__init__(message)
