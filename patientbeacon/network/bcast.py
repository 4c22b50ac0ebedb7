"""Broadcasting of type-tagged JSON messages over UDP."""

from __future__ import annotations

import dataclasses
import json
import logging
import queue
import socket
import threading
from typing import Any, Callable, Optional, Sequence

from .conn import dial_broadcast_udp

__all__ = ["encode", "decode", "transmit", "receive"]

log = logging.getLogger(__name__)

_BROADCAST_ADDRESS = "255.255.255.255"
_BUFFER_SIZE = 1024
_POLL = 0.1

_BUILTIN_NAMES = {str: "string", bool: "bool", int: "int", float: "float64"}


def _type_name(tp: Any) -> str:
    if tp in _BUILTIN_NAMES:
        return _BUILTIN_NAMES[tp]
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return tp.__name__
    raise TypeError(f"message type must be supported by JSON, got {tp!r} instead")


def _check_types(types: Sequence[Any]) -> None:
    seen: dict[Any, int] = {}
    for i, tp in enumerate(types, 1):
        _type_name(tp)
        if tp in seen:
            raise ValueError(
                f"All types must be mutually different, arg#{seen[tp]} and arg#{i} "
                f"both have type '{_type_name(tp)}'"
            )
        seen[tp] = i


def _to_json(message: Any) -> Any:
    if dataclasses.is_dataclass(message) and not isinstance(message, type):
        return {f.name.upper(): getattr(message, f.name) for f in dataclasses.fields(message)}
    return message


def _from_json(tp: Any, value: Any) -> Any:
    if tp is bool:
        if isinstance(value, bool):
            return value
    elif tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif tp is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif tp is str:
        if isinstance(value, str):
            return value
    elif isinstance(value, dict):
        by_lower = {f.name.lower(): f.name for f in dataclasses.fields(tp)}
        kwargs = {}
        for key, item in value.items():
            name = by_lower.get(str(key).lower())
            if name is not None:
                kwargs[name] = item
        try:
            return tp(**kwargs)
        except TypeError as exc:
            raise ValueError(str(exc)) from exc
    raise ValueError(f"cannot decode {value!r} as {_type_name(tp)}")


def encode(message: Any) -> bytes:
    """Encode a message as its type name followed by its JSON form."""
    name = _type_name(type(message))
    body = json.dumps(_to_json(message), separators=(",", ":"), ensure_ascii=False)
    return (name + body).encode("utf-8")


def decode(data: bytes, types: Sequence[Any]) -> list[Any]:
    """Decode data as each of types whose name tags it; malformed bodies are skipped."""
    _check_types(types)
    data = bytes(data)
    probe = data + b"{"
    results = []
    for tp in types:
        prefix = _type_name(tp).encode("utf-8")
        if not probe.startswith(prefix):
            continue
        try:
            value = json.loads(data[len(prefix):].decode("utf-8"))
            results.append(_from_json(tp, value))
        except ValueError as exc:
            log.debug("dropping malformed %s message: %s", _type_name(tp), exc)
    return results


def transmit(
    port: int,
    outgoing: "queue.Queue[Any]",
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Broadcast every message taken from outgoing on port until stop_event is set."""
    address = (_BROADCAST_ADDRESS, port)
    with dial_broadcast_udp(port) as sock:
        while stop_event is None or not stop_event.is_set():
            try:
                message = outgoing.get(timeout=_POLL)
            except queue.Empty:
                continue
            try:
                sock.sendto(encode(message), address)
            except OSError as exc:
                log.debug("broadcast failed: %s", exc)


def receive(
    port: int,
    types: Sequence[Any],
    deliver: Callable[[Any], object],
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Receive messages on port and pass each one decoded as one of types to deliver."""
    _check_types(types)
    with dial_broadcast_udp(port) as sock:
        sock.settimeout(_POLL)
        while stop_event is None or not stop_event.is_set():
            try:
                data, _ = sock.recvfrom(_BUFFER_SIZE)
            except socket.timeout:
                continue
            for value in decode(data, types):
                deliver(value)