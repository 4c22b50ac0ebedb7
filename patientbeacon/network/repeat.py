"""Repeated sending of a message for a short burst."""

from __future__ import annotations

import time
from typing import Callable, TypeVar

__all__ = ["broadcast_message", "INTERVAL", "DURATION"]

INTERVAL = 0.030
DURATION = 0.150

T = TypeVar("T")


def broadcast_message(message: T, send: Callable[[T], object]) -> None:
    """Call send(message) every 30 ms until 150 ms have passed."""
    start = time.monotonic()
    deadline = start + DURATION
    next_tick = start + INTERVAL
    while next_tick < deadline:
        time.sleep(max(0.0, next_tick - time.monotonic()))
        send(message)
        next_tick += INTERVAL
    time.sleep(max(0.0, deadline - time.monotonic()))