"""Looking up patients for UUIDs seen locally or reported by peers."""

from __future__ import annotations

import queue
import threading
from pathlib import Path
from typing import Any, Optional

from .records import DEFAULT_DIRECTORY, N_NODES, Patient, PeerStatus, find_patient

__all__ = ["UUIDHandler"]

_POLL = 0.1


def _format(patient: Patient) -> str:
    fields = (patient.name, patient.id, patient.uuid, patient.location, patient.timestamp)
    return "{" + " ".join(fields) + "}"


class UUIDHandler:
    """Tracks peer status and prints the patient behind each UUID event."""

    def __init__(self, local_ip: str, directory: str | Path = DEFAULT_DIRECTORY) -> None:
        self.directory = directory
        self.statuses = [PeerStatus() for _ in range(N_NODES)]
        self.statuses[0].ip = local_ip

    def update_status(self, status: PeerStatus) -> None:
        """Apply a peer's online status to every remote node slot with its IP."""
        for node in self.statuses[1:]:
            if node.ip == status.ip:
                node.online = status.online

    def lookup(self, uuid: str) -> Optional[Patient]:
        """The patient registered for uuid, or None if there is none."""
        patient = find_patient(uuid, self.directory)
        if patient is None or not patient.uuid:
            return None
        return patient

    def _handle(self, event: Any) -> None:
        if isinstance(event, PeerStatus):
            self.update_status(event)
        elif isinstance(event, str):
            patient = self.lookup(event)
            if patient is not None:
                print(_format(patient), flush=True)

    def run(self, events: "queue.Queue[Any]", stop_event: Optional[threading.Event] = None) -> None:
        """Handle PeerStatus and UUID-string events from events until stop_event is set."""
        while stop_event is None or not stop_event.is_set():
            try:
                event = events.get(timeout=_POLL)
            except queue.Empty:
                continue
            try:
                self._handle(event)
            finally:
                events.task_done()