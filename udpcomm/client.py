#!/usr/bin/env python3
"""Request sender: one person record out, one text reply back.

Usage (after installing the package):

    udpcomm-client Ana 28 --server 127.0.0.1 --port 50000
"""

from __future__ import annotations

import argparse                                    # For CLI parsing
import socket                                      # Low-level UDP API
import sys
from typing import Tuple

from colorama import Fore, Style, init

from .errors import ReceiveError, RequestTimeoutError, SendError, UDPCommError
from .protocol import BUF_SIZE, DEFAULT_PORT, DEFAULT_SERVER, DEFAULT_TIMEOUT, Person, encode_person
from .util import LOG, set_verbose

MIN_AGE = 0
MAX_AGE = 150


def send_request(
    name: str,
    age: int,
    server_ip: str = DEFAULT_SERVER,
    server_port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Send one record and block for the server's reply.

    Raises:
        RequestTimeoutError: nothing came back within *timeout* seconds.
        SendError: the datagram could not leave this host.
        ReceiveError: the socket failed while waiting for the reply.
    """
    server: Tuple[str, int] = (server_ip, server_port)
    pkt = encode_person(Person(name, age))

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.settimeout(timeout)

        try:
            sock.sendto(pkt, server)
        except OSError as exc:                     # Unresolvable / unreachable host
            raise SendError(f"send to {server_ip}:{server_port} failed: {exc}") from exc
        LOG.debug("Sent %d bytes to %s:%d", len(pkt), server_ip, server_port)

        try:
            data, _ = sock.recvfrom(BUF_SIZE)
        except socket.timeout as exc:              # Must precede OSError (subclass)
            raise RequestTimeoutError(
                f"no reply from {server_ip}:{server_port} within {timeout:g}s", timeout=timeout
            ) from exc
        except OSError as exc:                     # e.g. ICMP port unreachable
            raise ReceiveError(f"receive from {server_ip}:{server_port} failed: {exc}") from exc

    return data.decode("utf-8", errors="replace")


class PersonClient:
    """Remembers one server endpoint for repeated :func:`send_request` calls."""

    def __init__(
        self,
        server_ip: str = DEFAULT_SERVER,
        server_port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.server: Tuple[str, int] = (server_ip, server_port)
        self.timeout = timeout

    def send(self, name: str, age: int) -> str:
        return send_request(name, age, self.server[0], self.server[1], self.timeout)

# ======================================================================
#  Command-line entry point
# ======================================================================

def _validate(name: str, age: str) -> Tuple[str, int]:
    """Input rules of the interactive client; raise ValueError with the reason."""
    name = name.strip()
    if not name:
        raise ValueError("Please enter a valid name!")
    try:
        value = int(age.strip())
    except ValueError:
        raise ValueError("Please enter a valid age!") from None
    if not MIN_AGE <= value <= MAX_AGE:
        raise ValueError(f"Please enter a valid age (between {MIN_AGE} and {MAX_AGE})!")
    return name, value


def main(argv=None) -> int:
    """Parse CLI args, send one record and print the reply."""
    init(autoreset=True)
    parser = argparse.ArgumentParser("udpcomm client")
    parser.add_argument("name", help="Person name")
    parser.add_argument("age", help="Person age (0-150)")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="IP address of the server")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="UDP port of the server")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Seconds to wait for a reply")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    try:
        name, age = _validate(args.name, args.age)
    except ValueError as exc:
        print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {exc}", file=sys.stderr)
        return 2

    print(f"{Fore.CYAN}[SYSTEM]{Style.RESET_ALL} Sending data to {args.server}:{args.port}...")
    try:
        reply = send_request(name, age, args.server, args.port, args.timeout)
    except RequestTimeoutError as exc:
        print(f"{Fore.YELLOW}[TIMEOUT]{Style.RESET_ALL} Server did not answer: {exc}", file=sys.stderr)
        return 1
    except UDPCommError as exc:
        print(f"{Fore.RED}[NETWORK]{Style.RESET_ALL} Could not reach the server: {exc}", file=sys.stderr)
        return 1

    print(f"{Fore.GREEN}--- Server reply ---{Style.RESET_ALL}\n{reply}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
