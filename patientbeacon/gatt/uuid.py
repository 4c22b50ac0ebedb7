"""Bluetooth Low Energy UUIDs (16-bit and 128-bit)."""

from __future__ import annotations

import binascii
import struct

__all__ = ["UUID", "uuid16", "parse_uuid", "reverse"]


class UUID:
    """An immutable BLE UUID, stored in little-endian (over-the-air) byte order."""

    __slots__ = ("_b",)

    def __init__(self, b: bytes | bytearray = b"") -> None:
        self._b = bytes(b)

    def __bytes__(self) -> bytes:
        return self._b

    def __len__(self) -> int:
        return len(self._b)

    def __str__(self) -> str:
        return reverse(self._b).hex()

    def __repr__(self) -> str:
        return f"UUID({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UUID):
            return NotImplemented
        return self._b == other._b

    def __hash__(self) -> int:
        return hash(self._b)


def uuid16(i: int) -> UUID:
    """Build a 16-bit UUID such as 0x1800."""
    return UUID(struct.pack("<H", i))


def parse_uuid(s: str) -> UUID:
    """Parse a UUID string such as "1800" or "34DA3AD1-7110-41A1-B1EF-4430F509CDE7".

    Raises ValueError on malformed hex or a length other than 2 or 16 bytes.
    """
    try:
        b = binascii.unhexlify(s.replace("-", ""))
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid UUID {s!r}: {exc}") from exc
    if len(b) not in (2, 16):
        raise ValueError(f"UUIDs must have length 2 or 16, got {len(b)}")
    return UUID(reverse(b))


def reverse(b: bytes | bytearray) -> bytes:
    """Return a reversed copy of b."""
    return bytes(reversed(b))