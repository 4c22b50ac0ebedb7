"""A small writer for building L2CAP/ATT responses bounded by the MTU."""

from __future__ import annotations

import struct

from .uuid import UUID

__all__ = ["L2capWriter"]


class L2capWriter:
    """Accumulates response bytes, never exceeding the MTU.

    Writes may be grouped into a chunk, which is added whole by commit()
    only if it fits.
    """

    def __init__(self, mtu: int) -> None:
        self.mtu = int(mtu)
        self._b = bytearray()
        self._chunk = bytearray()
        self._chunked = False

    def chunk(self) -> None:
        """Start a new chunk; raises RuntimeError if one is already open."""
        if self._chunked:
            raise RuntimeError("l2capWriter: chunk called twice without committing")
        self._chunked = True

    def commit(self) -> bool:
        """Write the current chunk if it fits entirely; report whether it did."""
        if not self._chunked:
            raise RuntimeError("l2capWriter: commit without starting a chunk")
        success = len(self._b) + len(self._chunk) <= self.mtu
        if success:
            self._b += self._chunk
        self._chunk.clear()
        self._chunked = False
        return success

    def commit_fit(self) -> None:
        """Write as much of the current chunk as fits, truncating the rest."""
        if not self._chunked:
            raise RuntimeError("l2capWriter: CommitFit without starting a chunk")
        writeable = max(min(self.mtu - len(self._b), len(self._chunk)), 0)
        self._b += self._chunk[:writeable]
        self._chunk.clear()
        self._chunked = False

    def write_byte_fit(self, b: int) -> bool:
        """Write a single byte, with the semantics of write_fit."""
        return self.write_fit(bytes([b & 0xFF]))

    def write_uint16_fit(self, v: int) -> bool:
        """Write v as a little-endian uint16, with the semantics of write_fit."""
        return self.write_fit(struct.pack("<H", v & 0xFFFF))

    def write_uuid_fit(self, u: UUID) -> bool:
        """Write a UUID in its over-the-air byte order."""
        return self.write_fit(bytes(u))

    def writeable(self, pad: int, b: bytes) -> int:
        """Number of bytes of b that would be written after pad bytes."""
        if self._chunked:
            return len(b)
        avail = self.mtu - len(self._b) - pad
        if avail > len(b):
            return len(b)
        return max(avail, 0)

    def write_fit(self, b: bytes) -> bool:
        """Write as much of b as fits; report whether nothing was truncated."""
        if self._chunked:
            self._chunk += b
            return True
        avail = max(self.mtu - len(self._b), 0)
        if avail >= len(b):
            self._b += b
            return True
        self._b += b[:avail]
        return False

    def chunk_seek(self, offset: int) -> bool:
        """Drop the first offset bytes of the open chunk; report whether there were enough."""
        if not self._chunked:
            raise RuntimeError(
                "l2capWriter: ChunkSeek requested without chunked write in progress"
            )
        if len(self._chunk) < offset:
            self._chunk.clear()
            return False
        del self._chunk[:offset]
        return True

    def to_bytes(self) -> bytes:
        """Return the bytes written; raises RuntimeError while a chunk is open."""
        if self._chunked:
            raise RuntimeError(
                "l2capWriter: Bytes requested while chunked write in progress"
            )
        return bytes(self._b)