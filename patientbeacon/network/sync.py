"""Keeping a node in touch with its peers: heartbeats and broadcast UUID messages."""

from __future__ import annotations

import queue
import threading
from typing import Any, Optional

from ..records import PeerStatus
from . import bcast, peers
from .peers import PeerUpdate

__all__ = ["PEER_PORT", "BCAST_PORT", "peer_statuses", "sync"]

PEER_PORT = 20004
BCAST_PORT = 15647

_POLL = 0.1


def peer_statuses(update: PeerUpdate) -> list[PeerStatus]:
    """The online/offline statuses announced by a peer update, new peer first."""
    statuses = []
    if update.new:
        statuses.append(PeerStatus(ip=update.new, online=True))
    statuses.extend(PeerStatus(ip=ip, online=False) for ip in update.lost)
    return statuses


def _forward(
    updates: "queue.Queue[PeerUpdate]",
    online_status: Any,
    stop_event: Optional[threading.Event],
) -> None:
    while stop_event is None or not stop_event.is_set():
        try:
            update = updates.get(timeout=_POLL)
        except queue.Empty:
            continue
        for status in peer_statuses(update):
            online_status.put(status)


def sync(
    incoming: Any,
    online_status: Any,
    local_ip: str,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Announce local_ip to peers, report their status on online_status and
    put received UUID strings on incoming, until stop_event is set."""
    updates: "queue.Queue[PeerUpdate]" = queue.Queue()
    workers = [
        threading.Thread(
            target=peers.transmit, args=(PEER_PORT, local_ip, None, stop_event), daemon=True
        ),
        threading.Thread(
            target=peers.receive, args=(PEER_PORT, updates, stop_event), daemon=True
        ),
        threading.Thread(
            target=bcast.receive,
            args=(BCAST_PORT, [str], incoming.put, stop_event),
            daemon=True,
        ),
    ]
    for worker in workers:
        worker.start()
    _forward(updates, online_status, stop_event)