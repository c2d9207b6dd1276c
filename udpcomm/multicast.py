#!/usr/bin/env python3
"""Multicast group membership with a background receive loop.

A :class:`MulticastManager` owns two sockets:

* a receive socket bound to the group port and joined to the group;
* a plain send socket that addresses the group.

Incoming text is passed to one registered listener, except for messages
this instance authored itself (recognised by the ``"<label> "`` prefix).
"""

from __future__ import annotations

import ipaddress                      # Multicast range validation
import os
import socket
import struct                         # ip_mreq packing
import threading
from typing import Callable, Optional

from .clock import Clock, SystemClock
from .errors import JoinError, SendError
from .protocol import (
    CHAT_BUF_SIZE, JOINED_NOTICE, LEFT_NOTICE, format_chat, format_notice,
    is_own_message, parse_sender,
)
from .util import LOG

__all__ = ["MessageListener", "MulticastManager", "join_group", "validate_group"]

# listener(text, sender) - sender is None for join/leave notices
MessageListener = Callable[[str, Optional[str]], None]

STOP_JOIN_TIMEOUT = 2.0               # Seconds stop() waits for the receive thread


def validate_group(group: str) -> str:
    """Return *group* unchanged if it is an IPv4 multicast address.

    Raises:
        JoinError: not an address, or outside 224.0.0.0-239.255.255.255.
    """
    try:
        addr = ipaddress.ip_address(group)
    except ValueError as exc:
        raise JoinError(f"invalid address {group!r}", group=group) from exc
    if addr.version != 4 or not addr.is_multicast:
        raise JoinError(
            f"{group} is not a multicast address (expected 224.0.0.0 to 239.255.255.255)",
            group=group,
        )
    return group


class MulticastManager:
    """Joins a group on construction; :meth:`start` begins delivery."""

    def __init__(
        self,
        group: str,
        port: int,
        label: str,
        interface: str = "0.0.0.0",
        clock: Optional[Clock] = None,
        ttl: int = 1,
    ) -> None:
        self.group = validate_group(group)
        self.port = port
        self.label = label
        self.interface = interface
        self.clock = clock or SystemClock()
        self.ttl = ttl

        self._listener: Optional[MessageListener] = None
        self._running = threading.Event()
        self._lock = threading.Lock()          # Serialises start/stop transitions
        self._thread: Optional[threading.Thread] = None
        self._closed = False

        self._recv_sock: Optional[socket.socket] = None
        self._send_sock: Optional[socket.socket] = None
        try:
            self._open_sockets()
        except OSError as exc:
            self._close_sockets()
            raise JoinError(f"cannot join {group}:{port}: {exc}", group=group, port=port) from exc

        LOG.info("Joined multicast group %s:%d as %r", self.group, self.port, self.label)

    # ---------------------------------------------------------------- sockets
    def _membership(self) -> bytes:
        return struct.pack("4s4s", socket.inet_aton(self.group), socket.inet_aton(self.interface))

    def _open_sockets(self) -> None:
        recv = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        self._recv_sock = recv
        recv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)   # Several peers per host
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                recv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError as exc:
                LOG.debug("SO_REUSEPORT unavailable: %s", exc)
        # Binding the group address keeps other groups on this port out (POSIX only)
        recv.bind((self.group if os.name == "posix" else "", self.port))
        recv.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, self._membership())
        recv.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)

        send = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        self._send_sock = send
        send.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl)
        send.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)     # Same-host peers
        send.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(self.interface))

    def _leave_group(self) -> None:
        try:
            self._recv_sock.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._membership())
        except OSError as exc:
            LOG.warning("Leaving %s failed: %s", self.group, exc)

    def _close_sockets(self) -> None:
        for sock in (self._recv_sock, self._send_sock):
            if sock is None:
                continue
            try:
                # Unblocks a recvfrom() in the receive thread.
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as exc:
                LOG.debug("Socket shutdown: %s", exc)
            sock.close()

    # ---------------------------------------------------------------- public API
    def set_listener(self, listener: Optional[MessageListener]) -> None:
        """Register the single listener, replacing any previous one."""
        self._listener = listener

    def is_running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        """Begin receiving and announce ourselves. No-op when already running."""
        with self._lock:
            if self._running.is_set():
                return
            if self._closed:
                raise JoinError(
                    "manager was stopped; create a new one to rejoin",
                    group=self.group, port=self.port,
                )
            self._running.set()
            self._thread = threading.Thread(
                target=self._recv_loop, name=f"mcast-recv-{self.label}", daemon=True
            )
            self._thread.start()

        try:
            self._send_notice(JOINED_NOTICE)
        except SendError as exc:
            LOG.warning("Could not announce join: %s", exc)

    def send_message(self, text: str) -> None:
        """Broadcast ``"<label> says: <text>"``; blank text is ignored.

        Raises:
            SendError: the manager is closed or the socket send failed.
        """
        if text is None or not text.strip():
            return
        self._send_raw(format_chat(self.label, text))

    def stop(self) -> None:
        """Announce departure, leave the group and release both sockets."""
        with self._lock:
            if not self._running.is_set():
                return
            self._running.clear()

        try:
            self._send_notice(LEFT_NOTICE)
        except SendError as exc:
            LOG.warning("Could not announce leave: %s", exc)

        self._release()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(STOP_JOIN_TIMEOUT)
        LOG.info("Left multicast group %s:%d", self.group, self.port)

    def close(self) -> None:
        """Like :meth:`stop`, but also releases a manager that never started."""
        if self._running.is_set():
            self.stop()
        else:
            self._release()

    def __enter__(self) -> "MulticastManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------------------------------------------------------------- internals
    def _release(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._leave_group()
        self._close_sockets()

    def _send_notice(self, notice: str) -> None:
        self._send_raw(format_notice(self.label, notice))

    def _send_raw(self, message: str) -> None:
        if self._closed:
            raise SendError(f"manager for {self.group}:{self.port} is stopped")
        data = message.encode("utf-8")
        try:
            self._send_sock.sendto(data, (self.group, self.port))
        except OSError as exc:
            raise SendError(f"send to {self.group}:{self.port} failed: {exc}") from exc
        LOG.debug("Sent to group: %s", message)

    def _recv_loop(self) -> None:
        """Background thread - deliver group traffic until stop()."""
        LOG.debug("Receive loop started for %r", self.label)
        while self._running.is_set():
            try:
                data, _ = self._recv_sock.recvfrom(CHAT_BUF_SIZE)
            except OSError as exc:
                if not self._running.is_set():           # Socket closed by stop()
                    break
                LOG.error("Multicast receive failed: %s", exc)
                continue
            if not self._running.is_set():
                break

            message = data.decode("utf-8", errors="replace")
            if is_own_message(message, self.label):
                continue

            sender = parse_sender(message)
            listener = self._listener
            LOG.debug("Received: %s", message)
            if listener is None:
                continue
            try:
                listener(message, sender)
            except Exception:                          # Listener bugs must not kill the loop
                LOG.exception("Message listener raised")
        LOG.debug("Receive loop finished for %r", self.label)


def join_group(group: str, port: int, label: str, **kwargs) -> MulticastManager:
    """Construct a joined (not yet started) :class:`MulticastManager`."""
    return MulticastManager(group, port, label, **kwargs)
