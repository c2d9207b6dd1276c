# udpcomm/packet_spec.py
"""
Required fields and field types for every structured payload udpcomm puts
on the wire.  Only the request path carries structured data; chat traffic
is plain text (see :mod:`udpcomm.protocol`).

The decoder checks incoming payloads against this table before building a
record, so a truncated or foreign datagram is rejected instead of producing
a half-filled object.
"""

# --- Payload type identifiers ---------------------------------------------

PERSON = "person"

# --- Required field sets ---------------------------------------------------

# Sent by the client: one person record per request datagram
PERSON_FIELDS = {"type", "v", "name", "age"}

# --- Expected Python type per field ---------------------------------------

PERSON_FIELD_TYPES = {
    "type": str,
    "v": int,
    "name": str,
    "age": int,
}

# --- Master mapping: payload type string ➔ required field set -------------

EXPECTED_FIELDS_BY_TYPE = {
    PERSON: PERSON_FIELDS,
}

FIELD_TYPES_BY_TYPE = {
    PERSON: PERSON_FIELD_TYPES,
}
