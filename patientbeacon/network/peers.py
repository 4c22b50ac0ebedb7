"""Peer discovery by periodic UDP broadcasts of each node's id."""

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from .conn import dial_broadcast_udp

__all__ = ["INTERVAL", "TIMEOUT", "PeerUpdate", "PeerTracker", "transmit", "receive"]

log = logging.getLogger(__name__)

INTERVAL = 0.050
TIMEOUT = 0.999

_BROADCAST_ADDRESS = "255.255.255.255"


@dataclass
class PeerUpdate:
    """A change in the set of live peers."""

    peers: list[str] = field(default_factory=list)
    new: str = ""
    lost: list[str] = field(default_factory=list)


class PeerTracker:
    """Tracks when each peer was last heard from."""

    def __init__(self, timeout: float = TIMEOUT) -> None:
        self.timeout = timeout
        self._last_seen: dict[str, float] = {}

    @property
    def peers(self) -> list[str]:
        """The live peers, sorted."""
        return sorted(self._last_seen)

    def observe(self, peer_id: str, now: Optional[float] = None) -> Optional[PeerUpdate]:
        """Record a heartbeat (empty id for none) and return an update if the set changed."""
        if now is None:
            now = time.monotonic()
        updated = False
        new = ""
        if peer_id:
            if peer_id not in self._last_seen:
                new = peer_id
                updated = True
            self._last_seen[peer_id] = now
        lost = [k for k, seen in self._last_seen.items() if now - seen > self.timeout]
        for k in lost:
            del self._last_seen[k]
        if lost:
            updated = True
        if not updated:
            return None
        return PeerUpdate(peers=self.peers, new=new, lost=sorted(lost))


def transmit(
    port: int,
    peer_id: str,
    enabled: Optional[threading.Event] = None,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Broadcast peer_id on port every INTERVAL while enabled is set (always if None)."""
    address = (_BROADCAST_ADDRESS, port)
    payload = peer_id.encode("utf-8")
    with dial_broadcast_udp(port) as sock:
        while True:
            if enabled is None or enabled.is_set():
                try:
                    sock.sendto(payload, address)
                except OSError as exc:
                    log.debug("peer broadcast failed: %s", exc)
            if stop_event is None:
                time.sleep(INTERVAL)
            elif stop_event.wait(INTERVAL):
                return


def receive(port: int, updates: Any, stop_event: Optional[threading.Event] = None) -> None:
    """Listen for peer heartbeats on port and put each PeerUpdate on updates."""
    tracker = PeerTracker()
    with dial_broadcast_udp(port) as sock:
        sock.settimeout(INTERVAL)
        while stop_event is None or not stop_event.is_set():
            try:
                data, _ = sock.recvfrom(1024)
            except socket.timeout:
                data = b""
            update = tracker.observe(data.decode("utf-8", errors="replace"))
            if update is not None:
                updates.put(update)