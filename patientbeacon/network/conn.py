"""UDP sockets for sending and receiving IPv4 broadcasts."""

from __future__ import annotations

import socket

__all__ = ["dial_broadcast_udp"]


def dial_broadcast_udp(port: int) -> socket.socket:
    """Open a UDP socket bound to port on all interfaces, with broadcast and address reuse enabled."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind(("", port))
    except BaseException:
        sock.close()
        raise
    return sock