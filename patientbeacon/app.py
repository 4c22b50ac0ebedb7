"""Command-line entry point of the central node."""

from __future__ import annotations

import argparse
import logging
import queue
import sys
import threading
from typing import Any, Optional, Sequence

from .lookup import UUIDHandler
from .network.localip import local_ip
from .network.sync import sync
from .records import DEFAULT_DIRECTORY

__all__ = ["main"]

log = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patientbeacon",
        description="Report the patients behind beacon UUIDs read from standard input "
        "or broadcast by peer nodes.",
    )
    parser.add_argument("--directory", default=DEFAULT_DIRECTORY,
                        help="patient directory JSON file")
    parser.add_argument("--ip", default=None,
                        help="local IP address (discovered when omitted)")
    parser.add_argument("--offline", action="store_true",
                        help="do not talk to peer nodes")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the node until standard input ends; returns the exit status."""
    args = _parser().parse_args(argv)
    ip = args.ip
    if ip is None:
        try:
            ip = local_ip()
        except OSError as exc:
            log.warning("cannot determine local IP: %s", exc)
            ip = ""

    events: "queue.Queue[Any]" = queue.Queue()
    stop = threading.Event()
    handler = UUIDHandler(ip, args.directory)
    handler_thread = threading.Thread(target=handler.run, args=(events, stop), daemon=True)
    handler_thread.start()
    if not args.offline:
        threading.Thread(target=sync, args=(events, events, ip, stop), daemon=True).start()

    try:
        for line in sys.stdin:
            uuid = line.strip()
            if uuid:
                events.put(uuid)
        events.join()
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
        handler_thread.join(timeout=1.0)
    return 0