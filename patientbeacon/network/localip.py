"""Discovery of this host's outward-facing IPv4 address."""

from __future__ import annotations

import functools
import socket

__all__ = ["local_ip"]

_PROBE_ADDRESS = ("8.8.8.8", 53)
_TIMEOUT = 5.0


@functools.lru_cache(maxsize=None)
def local_ip() -> str:
    """Return the local IPv4 address used to reach the internet.

    The result is cached after the first success; raises OSError if no
    connection can be made.
    """
    conn = socket.create_connection(_PROBE_ADDRESS, timeout=_TIMEOUT)
    try:
        return conn.getsockname()[0]
    finally:
        conn.close()