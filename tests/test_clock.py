import re
from datetime import datetime

import pytest

from udpcomm.clock import Clock, FixedClock, SystemClock, format_timestamp, stamp

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def test_format_timestamp():
    assert format_timestamp(datetime(2000, 1, 1, 0, 0, 0)) == "2000-01-01 00:00:00"


def test_system_clock_pattern():
    assert TIMESTAMP_RE.match(SystemClock().timestamp())


def test_fixed_clock(fixed_clock):
    assert fixed_clock.timestamp() == "2025-05-15 10:30:45"
    assert fixed_clock.timestamp() == "2025-05-15 10:30:45"


def test_fixed_clock_can_be_moved():
    clock = FixedClock(datetime(2000, 1, 1))
    clock.set(datetime(2024, 12, 31, 23, 59, 59))
    assert clock.timestamp() == "2024-12-31 23:59:59"


def test_clocks_are_independent(fixed_clock):
    # Freezing one clock must not affect a system clock
    before = datetime.now().replace(microsecond=0)
    assert SystemClock().now() >= before
    assert fixed_clock.now() == datetime(2025, 5, 15, 10, 30, 45)


def test_stamp(fixed_clock):
    assert stamp("Bob entered the chat.", fixed_clock) == "[2025-05-15 10:30:45] Bob entered the chat."


def test_clock_is_abstract():
    with pytest.raises(TypeError):
        Clock()


def test_custom_clock_needs_only_now():
    class EpochClock(Clock):
        def now(self):
            return datetime(1970, 1, 1)

    assert EpochClock().timestamp() == "1970-01-01 00:00:00"
