"""
pytest configuration for the udpcomm test suite
"""

import errno
import queue
import socket
import sys
import threading
from datetime import datetime
from pathlib import Path

import pytest

# Make the package importable without installing it
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from udpcomm.clock import FixedClock
from udpcomm.errors import JoinError
from udpcomm.multicast import MulticastManager
from udpcomm.server import PersonServer

FIXED_MOMENT = datetime(2025, 5, 15, 10, 30, 45)
LIVE_GROUP = "239.255.77.77"
LIVE_INTERFACE = "127.0.0.1"


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "live_multicast: needs working multicast loopback")


def free_udp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def fixed_clock():
    """Clock frozen at 2025-05-15 10:30:45."""
    return FixedClock(FIXED_MOMENT)


@pytest.fixture
def udp_port():
    return free_udp_port()


@pytest.fixture
def running_server(fixed_clock):
    """A PersonServer on an ephemeral localhost port, serving in a thread."""
    server = PersonServer("127.0.0.1", 0, clock=fixed_clock)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    assert server.running.wait(2.0), "server did not start"
    yield server
    server.close()
    thread.join(2.0)


@pytest.fixture
def silent_peer():
    """A bound UDP socket that never answers (no ICMP unreachable either)."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    yield sock.getsockname()
    sock.close()

# --------------------------------------------------------------------------
# In-memory multicast bus: lets manager tests run without a real network.
# --------------------------------------------------------------------------

class FakeSocket:
    """Just enough of socket.socket for MulticastManager."""

    def __init__(self, bus, port=None):
        self.bus = bus
        self.port = port
        self.inbox = queue.Queue()
        self.closed = False
        self.sent = []

    def setsockopt(self, *args):
        if self.closed:
            raise OSError(errno.EBADF, "Bad file descriptor")

    def recvfrom(self, bufsize):
        if self.closed:
            raise OSError(errno.EBADF, "Bad file descriptor")
        item = self.inbox.get()
        if item is None:                      # shutdown() wake-up
            return b"", None
        return item[:bufsize], ("127.0.0.1", 40000)

    def sendto(self, data, addr):
        if self.closed:
            raise OSError(errno.EBADF, "Bad file descriptor")
        if self.bus.fail_sends:
            raise OSError(errno.ENETUNREACH, "Network is unreachable")
        self.sent.append((data, addr))
        self.bus.deliver(data, addr)

    def shutdown(self, how):
        self.inbox.put(None)

    def close(self):
        self.closed = True
        self.bus.unregister(self)


class FakeBus:
    def __init__(self):
        self.members = []
        self.fail_sends = False
        self.lock = threading.Lock()

    def open(self, manager):
        recv = FakeSocket(self, manager.port)
        with self.lock:
            self.members.append(recv)
        manager._recv_sock = recv
        manager._send_sock = FakeSocket(self)

    def unregister(self, sock):
        with self.lock:
            if sock in self.members:
                self.members.remove(sock)

    def deliver(self, data, addr):
        with self.lock:
            targets = [m for m in self.members if m.port == addr[1]]
        for member in targets:
            member.inbox.put(data)


@pytest.fixture
def fake_bus(monkeypatch):
    """Route every MulticastManager created in the test through a FakeBus."""
    bus = FakeBus()
    monkeypatch.setattr(MulticastManager, "_open_sockets", lambda self: bus.open(self))
    return bus


@pytest.fixture(scope="session")
def live_multicast():
    """Group/port/interface for real-socket tests; skips if loopback multicast is unusable."""
    port = free_udp_port()
    received = threading.Event()
    try:
        rx = MulticastManager(LIVE_GROUP, port, "mcast-check-rx", interface=LIVE_INTERFACE)
        tx = MulticastManager(LIVE_GROUP, port, "mcast-check-tx", interface=LIVE_INTERFACE)
    except JoinError as exc:
        pytest.skip(f"multicast unavailable: {exc}")
    rx.set_listener(lambda text, sender: received.set())
    try:
        rx.start()
        tx.send_message("ping")
        ok = received.wait(2.0)
    except Exception as exc:
        ok = False
        reason = str(exc)
    else:
        reason = "no loopback delivery"
    finally:
        rx.close()
        tx.close()
    if not ok:
        pytest.skip(f"multicast unavailable: {reason}")
    return {"group": LIVE_GROUP, "interface": LIVE_INTERFACE}
