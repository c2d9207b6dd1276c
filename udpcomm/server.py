#!/usr/bin/env python3
"""Concurrent UDP request/response server.

* One socket bound to a well-known port (default 50000).
* The receive loop hands every datagram to a thread pool and goes straight
  back to ``recvfrom`` - a slow client never stalls the others.
* Each worker decodes a person record and answers the sender with a
  greeting that carries the server's timestamp.
* Undecodable datagrams are logged and dropped without a reply.
"""

from __future__ import annotations

import argparse                       # CLI parsing
import errno
import socket                         # UDP socket operations
import threading                      # Concurrency primitives
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from .clock import Clock, SystemClock
from .errors import BindError, DecodeError
from .protocol import BUF_SIZE, DEFAULT_PORT, RESPONSE_TEMPLATE, Person, decode_person
from .util import LOG, get_local_ip, set_verbose

Address = Tuple[str, int]


def build_response(person: Person, clock: Clock) -> str:
    """Render the reply sent back for *person*."""
    return RESPONSE_TEMPLATE.format(name=person.name, age=person.age, timestamp=clock.timestamp())


class PersonServer:
    """Receives person records and acknowledges each one to its sender."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        clock: Optional[Clock] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.host = host
        self.clock = clock or SystemClock()
        self.max_workers = max_workers

        # ------ bind socket ------
        # No SO_REUSEADDR: a second server on the same port must fail.
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self.sock.bind((host, port))
        except OSError as exc:
            self.sock.close()
            raise BindError(f"cannot bind UDP {host}:{port}: {exc}", port=port) from exc
        self.port: int = self.sock.getsockname()[1]   # Real port when 0 was requested

        # Concurrent handlers share the socket; one lock serialises sendto().
        self._send_lock = threading.Lock()
        self._pool: Optional[ThreadPoolExecutor] = None

        self.running = threading.Event()
        self._closed = False
        self._state_lock = threading.Lock()   # Guards _closed, _pool and running together
        LOG.info("Server bound on %s:%d", self.host, self.port)

    @property
    def address(self) -> Address:
        return (self.host, self.port)

    # ================================================================= main ===
    def start(self) -> None:
        """Run until Ctrl-C, then release the socket."""
        LOG.info("Server listening on %s:%d (reachable at %s)", self.host, self.port, get_local_ip())
        try:
            self.serve_forever()
        except KeyboardInterrupt:
            LOG.info("Shutdown requested")
        finally:
            self.close()

    def serve_forever(self) -> None:
        """Blocking receive loop; returns once the socket has been closed."""
        with self._state_lock:
            if self._closed:
                raise BindError("server socket already closed", port=self.port)
            self._pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="udpcomm-worker")
            self.running.set()
        try:
            while self.running.is_set():
                try:
                    data, addr = self.sock.recvfrom(BUF_SIZE)   # Blocking, no timeout
                except OSError as exc:
                    if not self.running.is_set():           # close() woke us up
                        break
                    if exc.errno == errno.EBADF or self.sock.fileno() == -1:
                        LOG.warning("Server socket closed underneath the loop: %s", exc)
                        break
                    LOG.error("Receive failed: %s", exc)
                    continue
                if not self.running.is_set():                # Wake-up after shutdown()
                    break
                LOG.debug("Datagram of %d bytes from %s:%d", len(data), *addr)
                self._dispatch(data, addr)
        finally:
            self.close()
        LOG.info("Server loop stopped")

    def close(self) -> None:
        """Stop the loop and release the socket. Safe to call more than once."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            self.running.clear()
            pool = self._pool
        try:
            # Wakes a thread blocked in recvfrom(); close() alone does not on Linux.
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            LOG.debug("Socket shutdown: %s", exc)
        self.sock.close()
        if pool is not None:
            pool.shutdown(wait=False)
        LOG.info("Server on port %d closed", self.port)

    def __enter__(self) -> "PersonServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------------------------------------------------------------- internals
    def _dispatch(self, data: bytes, addr: Address) -> None:
        try:
            self._pool.submit(self.handle_datagram, data, addr)
        except RuntimeError:                          # Pool shut down mid-close
            LOG.debug("Dropped datagram from %s:%d during shutdown", *addr)

    def handle_datagram(self, data: bytes, addr: Address) -> Optional[str]:
        """Decode, answer, and return the reply text (None when dropped)."""
        try:
            person = decode_person(data)
        except DecodeError as exc:
            LOG.warning("Dropped malformed datagram from %s:%d: %s", addr[0], addr[1], exc)
            return None

        try:
            LOG.info("Record from %s:%d name=%r age=%d", addr[0], addr[1], person.name, person.age)
            response = build_response(person, self.clock)
            # Lone surrogates survive JSON but not strict UTF-8
            self._send(response.encode("utf-8", errors="replace"), addr)
        except Exception:                             # Worker futures are never awaited
            LOG.exception("Handling datagram from %s:%d failed", addr[0], addr[1])
            return None
        return response

    def _send(self, pkt: bytes, addr: Address) -> None:
        """Send helper; failures are logged, never raised into the pool."""
        try:
            with self._send_lock:
                self.sock.sendto(pkt, addr)
        except OSError as exc:
            LOG.error("Reply to %s:%d failed: %s", addr[0], addr[1], exc)
            return
        LOG.debug("Reply of %d bytes sent to %s:%d", len(pkt), *addr)

# ======================================================================
#  Command-line entry point
# ======================================================================

def main() -> None:
    parser = argparse.ArgumentParser("udpcomm server")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size (default: executor default)")
    parser.add_argument("--verbose", action="store_true", help="Log every datagram")
    args = parser.parse_args()
    set_verbose(args.verbose)
    try:
        server = PersonServer(args.host, args.port, max_workers=args.workers)
    except BindError as exc:
        LOG.error("%s", exc)
        raise SystemExit(1) from exc
    server.start()


if __name__ == "__main__":
    main()
