"""Client side of GATT: discovering and using the attributes of a remote peripheral."""

from __future__ import annotations

import logging
import queue
import struct
import threading
from typing import Any, Callable, Optional, Protocol, Sequence

from .common import Characteristic, Descriptor, Property, Service
from .constants import (
    ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID,
    GATT_CCC_INDICATE_FLAG,
    GATT_CCC_NOTIFY_FLAG,
    AttOp,
)
from .uuid import UUID

__all__ = ["InvalidLengthError", "RemotePeripheral", "DEFAULT_MTU"]

log = logging.getLogger(__name__)

DEFAULT_MTU = 23
# L2CAP must support at least 48 bytes; 672 is the default MTU.
_READ_SIZE = 672

_OP_ERROR = 0x01
_OP_HANDLE_IND = 0x1D
_OP_HANDLE_CNF = 0x1E

_PRIMARY_SERVICE = 0x2800
_CHARACTERISTIC = 0x2803

# Expected response opcode for each request opcode.
_RSP_FOR = {
    0x02: 0x03,
    0x04: 0x05,
    0x06: 0x07,
    0x08: 0x09,
    0x0A: 0x0B,
    0x0C: 0x0D,
    0x0E: 0x0F,
    0x10: 0x11,
    0x12: 0x13,
    0x16: 0x17,
    0x18: 0x19,
}

NotifyCallback = Callable[[Characteristic, bytes], Any]


class InvalidLengthError(ValueError):
    """A response whose data length does not match its declared item length."""

    def __init__(self) -> None:
        super().__init__("invalid length")


class Connection(Protocol):
    """A bidirectional byte connection carrying ATT PDUs."""

    def read(self, size: int) -> bytes: ...

    def write(self, b: bytes) -> int: ...

    def close(self) -> None: ...


def _le16(b: bytes, offset: int = 0) -> int:
    return struct.unpack_from("<H", b, offset)[0]


def _finished(op: int, h: int, b: bytes) -> bool:
    """Whether b is the error response that ends a discovery started at handle h."""
    return (
        len(b) >= 4
        and b[0] == _OP_ERROR
        and b[1] == op
        and b[2] == h & 0xFF
        and b[3] == (h >> 8) & 0xFF
    )


def _search_service(services: Sequence[Service], start: int, end: int) -> Optional[Service]:
    for s in services:
        if s.handle < start and s.end_handle >= end:
            return s
    return None


def _items(b: bytes, lengths: dict[int, int]) -> tuple[int, bytes]:
    """Split a list response into its item length and data; validate the length."""
    if len(b) < 2:
        raise InvalidLengthError()
    width = lengths.get(b[1])
    data = b[2:]
    if width is None or len(data) % width:
        raise InvalidLengthError()
    return width, data


class RemotePeripheral:
    """A remote peripheral reached over an ATT connection.

    run() must be running (usually in its own thread) for requests to complete.
    """

    def __init__(self, conn: Connection, address: bytes = b"", name: str = "") -> None:
        self.conn = conn
        self.address = bytes(address)
        self.name = name
        self.services: list[Service] = []
        self.mtu = DEFAULT_MTU
        self._responses: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self._req_lock = threading.Lock()
        self._closed = threading.Event()
        self._subs: dict[int, Callable[[bytes], Any]] = {}
        self._subs_lock = threading.Lock()

    @property
    def id(self) -> str:
        """The peripheral's hardware address in upper-case colon notation."""
        return ":".join(f"{x:02X}" for x in self.address)

    # -- transport -------------------------------------------------------

    def _send_cmd(self, b: bytes) -> None:
        if self._closed.is_set():
            raise ConnectionError("connection closed")
        self.conn.write(b)

    def _send_req(self, b: bytes) -> bytes:
        with self._req_lock:
            if self._closed.is_set():
                raise ConnectionError("connection closed")
            self.conn.write(b)
            r = self._responses.get()
            if r is None:
                self._responses.put(None)
                raise ConnectionError("connection closed")
            req_op, rsp_op = b[0], r[0]
            matched = rsp_op == _RSP_FOR.get(req_op) or (
                rsp_op == _OP_ERROR and len(r) > 1 and r[1] == req_op
            )
            if not matched:
                log.warning(
                    "Request 0x%02x got a mismatched response: 0x%02x", req_op, rsp_op
                )
            return r

    def run(self) -> None:
        """Read responses and notifications until the connection ends."""
        try:
            while True:
                try:
                    b = self.conn.read(_READ_SIZE)
                except OSError:
                    b = b""
                if not b:
                    return
                b = bytes(b)
                if b[0] not in (AttOp.HANDLE_NOTIFY, _OP_HANDLE_IND):
                    self._responses.put(b)
                    continue
                if len(b) >= 3:
                    with self._subs_lock:
                        fn = self._subs.get(_le16(b, 1))
                    if fn is None:
                        log.warning("notified by unsubscribed handle")
                    else:
                        threading.Thread(target=fn, args=(b[3:],), daemon=True).start()
                if b[0] == _OP_HANDLE_IND:
                    self.conn.write(bytes([_OP_HANDLE_CNF]))
        finally:
            self._closed.set()
            self._responses.put(None)

    def close(self) -> None:
        """Close the connection; run() then returns."""
        self.conn.close()

    # -- discovery -------------------------------------------------------

    def discover_services(self, uuids: Optional[Sequence[UUID]] = None) -> list[Service]:
        """Discover all primary services (filtering by uuids is not supported)."""
        op = AttOp.READ_BY_GROUP_REQ
        start = 0x0001
        done = False
        while not done:
            b = self._send_req(struct.pack("<BHHH", op, start, 0xFFFF, _PRIMARY_SERVICE))
            if _finished(op, start, b):
                break
            width, data = _items(b, {6: 6, 20: 20})
            if not data:
                break
            for off in range(0, len(data), width):
                item = data[off:off + width]
                s = Service(UUID(item[4:]))
                s.handle = _le16(item, 0)
                s.end_handle = _le16(item, 2)
                self.services.append(s)
                done = s.end_handle == 0xFFFF
                start = (s.end_handle + 1) & 0xFFFF
        return self.services

    def discover_included_services(
        self, uuids: Optional[Sequence[UUID]], service: Service
    ) -> list[Service]:
        """Included services are not discovered; always empty."""
        return []

    def discover_characteristics(
        self, uuids: Optional[Sequence[UUID]], service: Service
    ) -> list[Characteristic]:
        """Discover the characteristics of a previously discovered service."""
        op = AttOp.READ_BY_TYPE_REQ
        start = service.handle
        prev: Optional[Characteristic] = None
        done = False
        while not done:
            b = self._send_req(
                struct.pack("<BHHH", op, start, service.end_handle, _CHARACTERISTIC)
            )
            if _finished(op, start, b):
                break
            width, data = _items(b, {7: 7, 21: 21})
            if not data:
                break
            for off in range(0, len(data), width):
                item = data[off:off + width]
                h = _le16(item, 0)
                props = Property(item[2])
                vh = _le16(item, 3)
                owner = _search_service(self.services, h, vh)
                if owner is None:
                    msg = f"Can't find service range that contains 0x{h:04X} - 0x{vh:04X}"
                    log.error(msg)
                    raise LookupError(msg)
                c = Characteristic(UUID(item[5:]), owner, props, h, vh)
                owner.characteristics.append(c)
                done = vh == owner.end_handle
                start = (vh + 1) & 0xFFFF
                if prev is not None:
                    prev.end_handle = c.handle - 1
                prev = c
        if len(service.characteristics) > 1:
            service.characteristics[-1].end_handle = service.end_handle
        return service.characteristics

    def discover_descriptors(
        self, uuids: Optional[Sequence[UUID]], characteristic: Characteristic
    ) -> list[Descriptor]:
        """Discover the descriptors of a characteristic."""
        c = characteristic
        op = AttOp.FIND_INFO_REQ
        start = (c.value_handle + 1) & 0xFFFF
        done = False
        while not done:
            if c.end_handle == 0 and c.service is not None:
                c.end_handle = c.service.end_handle
            b = self._send_req(struct.pack("<BHH", op, start, c.end_handle))
            if _finished(op, start, b):
                break
            width, data = _items(b, {1: 4, 2: 18})
            if not data:
                break
            for off in range(0, len(data), width):
                item = data[off:off + width]
                h = _le16(item, 0)
                u = UUID(item[2:])
                d = Descriptor(u, h, c)
                c.descriptors.append(d)
                if u == ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID:
                    c.cccd = d
                done = h == c.end_handle
                start = (h + 1) & 0xFFFF
        return c.descriptors

    # -- reads and writes ------------------------------------------------

    def read_characteristic(self, characteristic: Characteristic) -> bytes:
        """Read a characteristic value."""
        b = self._send_req(struct.pack("<BH", AttOp.READ_REQ, characteristic.value_handle))
        return b[1:]

    def read_long_characteristic(self, characteristic: Characteristic) -> bytes:
        """Read a value longer than one PDU, continuing with read-blob requests."""
        first = self.read_characteristic(characteristic)
        if len(first) < self.mtu - 1:
            return first
        buf = bytearray(first)
        off = len(first)
        while True:
            b = self._send_req(
                struct.pack(
                    "<BHH", AttOp.READ_BLOB_REQ, characteristic.value_handle, off & 0xFFFF
                )
            )[1:]
            if not b:
                break
            buf += b
            off += len(b)
            if len(b) < self.mtu - 1:
                break
        return bytes(buf)

    def write_characteristic(
        self, characteristic: Characteristic, value: bytes, no_response: bool = False
    ) -> None:
        """Write a characteristic value, as a command when no_response is set."""
        op = AttOp.WRITE_CMD if no_response else AttOp.WRITE_REQ
        b = struct.pack("<BH", op, characteristic.value_handle) + bytes(value)
        if no_response:
            self._send_cmd(b)
            return
        self._send_req(b)

    def read_descriptor(self, descriptor: Descriptor) -> bytes:
        """Read a descriptor value."""
        b = self._send_req(struct.pack("<BH", AttOp.READ_REQ, descriptor.handle))
        return b[1:]

    def write_descriptor(self, descriptor: Descriptor, value: bytes) -> None:
        """Write a descriptor value."""
        self._send_req(struct.pack("<BH", AttOp.WRITE_REQ, descriptor.handle) + bytes(value))

    # -- notifications ---------------------------------------------------

    def _set_notify_value(
        self, c: Characteristic, flag: int, callback: Optional[NotifyCallback]
    ) -> None:
        if c.cccd is None:
            raise ValueError("no cccd")
        ccc = 0
        if callback is not None:
            ccc = flag
            with self._subs_lock:
                self._subs[c.value_handle] = lambda data: callback(c, data)
        self._send_req(struct.pack("<BHH", AttOp.WRITE_REQ, c.cccd.handle, ccc))
        if callback is None:
            with self._subs_lock:
                self._subs.pop(c.value_handle, None)

    def set_notify_value(
        self, characteristic: Characteristic, callback: Optional[NotifyCallback]
    ) -> None:
        """Subscribe callback(characteristic, data) to notifications, or unsubscribe with None."""
        self._set_notify_value(characteristic, GATT_CCC_NOTIFY_FLAG, callback)

    def set_indicate_value(
        self, characteristic: Characteristic, callback: Optional[NotifyCallback]
    ) -> None:
        """Subscribe callback(characteristic, data) to indications, or unsubscribe with None."""
        self._set_notify_value(characteristic, GATT_CCC_INDICATE_FLAG, callback)

    def read_rssi(self) -> int:
        """Signal strength is not available on this transport; always -1."""
        return -1

    def set_mtu(self, mtu: int) -> None:
        """Exchange MTU with the peripheral and keep the smaller of the two."""
        b = self._send_req(struct.pack("<BH", AttOp.MTU_REQ, mtu))
        if len(b) < 3:
            raise InvalidLengthError()
        server_mtu = _le16(b, 1)
        self.mtu = min(mtu, server_mtu)