#!/usr/bin/env python3
"""Terminal front end for the multicast group chat.

* Lines you type go to the whole group.
* Lines from other peers and join/leave notices are printed with a
  ``[YYYY-MM-DD HH:MM:SS]`` stamp.
* ``/quit`` (or Ctrl-D / Ctrl-C) leaves the group.

Usage (after installing package locally):

    udpcomm-chat --group 224.0.0.1 --port 9000 --name Ana
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from colorama import Fore, Style, init

from .clock import Clock, SystemClock, stamp
from .errors import JoinError, SendError
from .multicast import MulticastManager, validate_group
from .protocol import DEFAULT_GROUP, DEFAULT_GROUP_PORT
from .util import LOG, set_verbose

PROMPT = "> "
QUIT_COMMANDS = {"/quit", "qqq"}


class ChatSession:
    """Wires a :class:`MulticastManager` to stdin/stdout."""

    def __init__(self, manager: MulticastManager, clock: Optional[Clock] = None) -> None:
        self.manager = manager
        self.clock = clock or manager.clock
        manager.set_listener(self.on_message)

    # ---------------------------------------------------------------- rendering
    def render_received(self, message: str, sender: Optional[str]) -> str:
        if sender is None:                          # join/leave notice
            return f"{Fore.CYAN}{stamp(message, self.clock)}{Style.RESET_ALL}"
        return f"{Fore.GREEN}{stamp(message, self.clock)}{Style.RESET_ALL}"

    def render_own(self, text: str) -> str:
        return f"{Fore.YELLOW}{stamp('You say: ' + text, self.clock)}{Style.RESET_ALL}"

    def render_system(self, text: str) -> str:
        return f"{Fore.MAGENTA}{stamp(text, self.clock)}{Style.RESET_ALL}"

    # ---------------------------------------------------------------- callbacks
    def on_message(self, message: str, sender: Optional[str]) -> None:
        """Listener for the receive thread - print then redraw the prompt."""
        print(f"\r{self.render_received(message, sender)}")
        sys.stdout.write(PROMPT)
        sys.stdout.flush()

    # ================================================================== main ===
    def run(self) -> None:
        """Blocking input loop; returns after the user leaves."""
        self.manager.start()
        print(self.render_system(f"Connected to {self.manager.group}:{self.manager.port} as {self.manager.label}"))
        try:
            while self.manager.is_running():
                try:
                    line = input(PROMPT)
                except EOFError:                    # Ctrl-D
                    break
                if line.strip().lower() in QUIT_COMMANDS:
                    break
                if not line.strip():
                    continue
                try:
                    self.manager.send_message(line)
                except SendError as exc:
                    LOG.warning("Send failed: %s", exc)
                    print(self.render_system(f"Error sending message: {exc}"))
                    continue
                print(self.render_own(line))
        except KeyboardInterrupt:
            pass
        finally:
            self.manager.stop()
            print(self.render_system("You left the chat."))

# ======================================================================
#  Command-line entry point
# ======================================================================

def main(argv=None) -> int:
    init(autoreset=True)
    parser = argparse.ArgumentParser("udpcomm multicast chat")
    parser.add_argument("--group", default=DEFAULT_GROUP, help="Multicast address (224.0.0.0-239.255.255.255)")
    parser.add_argument("--port", type=int, default=DEFAULT_GROUP_PORT)
    parser.add_argument("--name", default="", help="Label shown to other peers")
    parser.add_argument("--interface", default="0.0.0.0", help="Local interface IP for the group")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    try:
        validate_group(args.group)
    except JoinError as exc:
        print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {exc}", file=sys.stderr)
        return 1

    label = args.name.strip()
    if not label:
        try:
            label = input("Your name: ").strip()
        except EOFError:                            # stdin closed
            label = ""
    if not label:
        print("A user name is required.", file=sys.stderr)
        return 1

    clock = SystemClock()
    try:
        manager = MulticastManager(args.group, args.port, label, interface=args.interface, clock=clock)
    except JoinError as exc:
        print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {exc}", file=sys.stderr)
        return 1

    ChatSession(manager, clock).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
