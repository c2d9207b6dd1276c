"""udpcomm - UDP request/response and multicast group chat.

Importing this package exposes the whole core so it can be embedded in
another application:

* :func:`send_request` / :class:`PersonServer` for the request path;
* :func:`join_group` / :class:`MulticastManager` for the group chat.
"""

# ------------------------ re-exports ------------------------
from .client import PersonClient, send_request              # noqa: F401
from .clock import Clock, FixedClock, SystemClock, format_timestamp  # noqa: F401
from .errors import (                                         # noqa: F401
    BindError, DecodeError, JoinError, ReceiveError, RequestTimeoutError,
    SendError, UDPCommError,
)
from .multicast import MulticastManager, join_group         # noqa: F401
from .protocol import Person, decode_person, encode_person  # noqa: F401
from .server import PersonServer, build_response            # noqa: F401

# ------------------------ public API ------------------------
__all__: list[str] = [
    "PersonClient",
    "send_request",
    "PersonServer",
    "build_response",
    "MulticastManager",
    "join_group",
    "Person",
    "encode_person",
    "decode_person",
    "Clock",
    "SystemClock",
    "FixedClock",
    "format_timestamp",
    "UDPCommError",
    "DecodeError",
    "BindError",
    "JoinError",
    "SendError",
    "ReceiveError",
    "RequestTimeoutError",
]

__version__ = "1.0.0"
