#!/usr/bin/env python3
"""Logging setup shared by every udpcomm component, plus local IP discovery."""

from __future__ import annotations
import logging                           # Python stdlib logging framework
import socket                            # Needed for IP detection
import sys                               # For stderr/stdout handles
from logging.handlers import RotatingFileHandler

__all__ = ["LOG", "LOG_FILE", "configure_logging", "get_local_ip", "set_verbose"]

LOG_FILE = "udpcomm.log"

# ----------------------------------------------------------------------
# configure_logging() builds the "udpcomm" logger with console + rotating
# file output.  Called once at import time; the result lives in LOG.
# ----------------------------------------------------------------------

def configure_logging(level: int = logging.INFO, log_file: str = LOG_FILE) -> logging.Logger:
    """Return the "udpcomm" logger, attaching handlers on first call only."""

    logger = logging.getLogger("udpcomm")
    logger.setLevel(level)

    if logger.handlers:                     # Re-import / second call: keep existing
        return logger

    # ----- Console handler (stdout) -----
    sh = logging.StreamHandler(sys.stdout)

    # ----- Rotating file handler -----
    # Rotates at 1 MiB, keeps 3 backups.
    fh = RotatingFileHandler(
        log_file,
        maxBytes=1_048_576,
        backupCount=3,
        encoding="utf-8",
        delay=True,                         # File is created on first record
    )

    # Example: [23:59:59] INFO     Server listening on 0.0.0.0:50000
    fmt = logging.Formatter("[%(asctime)s] %(levelname)-8s %(message)s", "%H:%M:%S")
    sh.setFormatter(fmt)
    fh.setFormatter(fmt)

    logger.addHandler(sh)
    logger.addHandler(fh)

    return logger


def set_verbose(verbose: bool) -> None:
    """Switch LOG between INFO and DEBUG (wired to the CLIs' --verbose)."""
    LOG.setLevel(logging.DEBUG if verbose else logging.INFO)


# Importers simply do:  from udpcomm.util import LOG
LOG = configure_logging()

# ----------------------------------------------------------------------
# best-effort outward IP discovery (no external calls, works offline)
# ----------------------------------------------------------------------

def get_local_ip() -> str:
    """Return the host's primary IP, fallback to 127.0.0.1 on failure."""

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # connect() on UDP sends nothing; it only makes the OS pick a source IP.
        sock.connect(("8.8.8.8", 80))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"                      # Offline or no NIC
    finally:
        sock.close()
