"""Message and patient records, and the patient directory file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "N_NODES",
    "MASTER",
    "DEFAULT_DIRECTORY",
    "Message",
    "AcknowledgeMessage",
    "PeerStatus",
    "Patient",
    "write_patient",
    "find_patient",
]

log = logging.getLogger(__name__)

N_NODES = 3
MASTER = 1
DEFAULT_DIRECTORY = "UUIDdir.json"


@dataclass(frozen=True)
class Message:
    """A UUID seen by the node at the given IP."""

    ip: str = ""
    uuid: str = ""


@dataclass(frozen=True)
class AcknowledgeMessage:
    """Acknowledgement (or its absence) of a Message."""

    ip: str = ""
    uuid: str = ""
    not_acknowledged: bool = False


@dataclass
class PeerStatus:
    """Online status of a peer node."""

    ip: str = ""
    online: bool = False


def _get(d: dict[str, Any], key: str) -> Any:
    if key in d:
        return d[key]
    lowered = key.lower()
    for k, v in d.items():
        if k.lower() == lowered:
            return v
    return None


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class Patient:
    """A patient record from the directory, keyed by beacon UUID."""

    name: str = ""
    id: str = ""
    uuid: str = ""
    location: str = ""
    timestamp: str = ""

    def to_dict(self) -> dict[str, str]:
        """The record as stored in the directory file."""
        return {
            "NAME": self.name,
            "ID": self.id,
            "UUID": self.uuid,
            "LOCATION": self.location,
            "TIMESTAMP": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Patient:
        """Build a record from a directory entry; field names match case-insensitively."""
        return cls(
            name=_str(_get(d, "NAME")),
            id=_str(_get(d, "ID")),
            uuid=_str(_get(d, "UUID")),
            location=_str(_get(d, "LOCATION")),
            timestamp=_str(_get(d, "TIMESTAMP")),
        )


def write_patient(patient: Patient, path: str | Path = DEFAULT_DIRECTORY) -> None:
    """Write a single patient record as JSON to path."""
    Path(path).write_text(json.dumps(patient.to_dict(), indent=0), encoding="utf-8")


def find_patient(uuid: str, path: str | Path = DEFAULT_DIRECTORY) -> Patient | None:
    """Find the patient with the given UUID in the {"Users": [...]} directory file.

    Returns None when no entry matches or the file cannot be read.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        log.error("cannot read patient directory: %s", exc)
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    users = _get(data, "Users")
    if not isinstance(users, list):
        return None
    for entry in users:
        if not isinstance(entry, dict):
            continue
        patient = Patient.from_dict(entry)
        if patient.uuid == uuid:
            return patient
    return None