#!/usr/bin/env python3
"""Shared constants, the person record and the wire helpers used by **both**
ends of each exchange.

Everything that travels over the network is encoded/decoded here so that the
client, the server and the chat peers never disagree on wire-format details.

Two payload families exist:

* request path: a JSON object describing one :class:`Person`;
* chat path: plain UTF-8 text, ``"<label> says: <message>"`` for user
  messages and ``"<label> <notice>"`` for join/leave notices.
"""

from __future__ import annotations       # Postponed annotation evaluation (PEP 563)
import json                              # JSON is our lightweight wire format
from dataclasses import dataclass
from typing import Optional

from .errors import DecodeError
from .packet_spec import EXPECTED_FIELDS_BY_TYPE, FIELD_TYPES_BY_TYPE, PERSON

# --- Network configuration -------------------------------------------------
BUF_SIZE: int = 8192            # Request/response datagram buffer (bytes)
CHAT_BUF_SIZE: int = 1024       # Multicast chat datagram buffer (bytes)
DEFAULT_PORT: int = 50000       # Well-known port on which the server listens
DEFAULT_SERVER: str = "127.0.0.1"
DEFAULT_TIMEOUT: float = 5.0    # Seconds the client waits for a reply

DEFAULT_GROUP: str = "224.0.0.1"
DEFAULT_GROUP_PORT: int = 9000

CODEC_VERSION: int = 1          # Bumped whenever the record layout changes

# --- Chat text convention --------------------------------------------------
SAYS = " says: "
JOINED_NOTICE = "entered the chat."
LEFT_NOTICE = "left the chat."

RESPONSE_TEMPLATE = (
    "Hello {name}, your data was received successfully.\n"
    "You are {age} years old.\n"
    "Timestamp: {timestamp}"
)

# --- Record ----------------------------------------------------------------

@dataclass(slots=True)
class Person:
    """The ``{name, age}`` value sent from client to server.

    No validation happens here; an empty name or a negative age travel
    unchanged.  Range checks belong to whoever collects the input.
    """

    name: str
    age: int

# --- Record codec ----------------------------------------------------------

def encode_person(person: Person) -> bytes:
    """Serialize a :class:`Person` ⟶ JSON ⟶ UTF-8 bytes for socket.sendto()."""
    payload = {"type": PERSON, "v": CODEC_VERSION, "name": person.name, "age": person.age}
    return json.dumps(payload).encode("utf-8")


def decode_person(data: bytes) -> Person:
    """Inverse of :func:`encode_person` - bytes ⟶ :class:`Person`.

    Raises:
        DecodeError: the bytes are not a person payload produced by a
            compatible :func:`encode_person`.
    """
    try:
        pkt = json.loads(data.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise DecodeError(f"payload is not UTF-8: {exc}") from exc
    except (ValueError, RecursionError) as exc:      # JSONDecodeError, int digit limit
        raise DecodeError(f"payload is not JSON: {exc}") from exc

    if not isinstance(pkt, dict):
        raise DecodeError(f"expected a JSON object, got {type(pkt).__name__}")

    ptype = pkt.get("type")
    expected = EXPECTED_FIELDS_BY_TYPE.get(ptype) if isinstance(ptype, str) else None
    if expected is None or ptype != PERSON:
        raise DecodeError(f"unexpected payload type {ptype!r}")

    missing = expected - pkt.keys()
    if missing:
        raise DecodeError(f"missing fields: {', '.join(sorted(missing))}")

    for field, ftype in FIELD_TYPES_BY_TYPE[ptype].items():
        value = pkt[field]
        # bool is a subclass of int; a JSON true/false is not an age
        if isinstance(value, bool) or not isinstance(value, ftype):
            raise DecodeError(f"field {field!r} has wrong type {type(value).__name__}")

    if pkt["v"] != CODEC_VERSION:
        raise DecodeError(f"unsupported codec version {pkt['v']} (expected {CODEC_VERSION})")

    return Person(name=pkt["name"], age=pkt["age"])

# --- Chat text helpers -----------------------------------------------------

def format_chat(label: str, text: str) -> str:
    return f"{label}{SAYS}{text}"


def format_notice(label: str, notice: str) -> str:
    return f"{label} {notice}"


def parse_sender(message: str) -> Optional[str]:
    """Return the label in front of ``" says: "``, or None for system notices."""
    idx = message.find(SAYS)
    if idx < 0:
        return None
    return message[:idx]


def is_own_message(message: str, label: str) -> bool:
    """True when *message* was authored by *label* (chat line or notice).

    Matching is by text prefix, so a foreign notice whose author's label
    starts with ``label + " "`` is also treated as ours.
    """
    return message.startswith(label + SAYS.rstrip()) or message.startswith(label + " ")
