"""Serving the GATT attribute table to a connected remote central over ATT."""

from __future__ import annotations

import logging
import struct
import threading
from enum import IntEnum
from typing import Any, Callable, Optional, Protocol

from .attr import Attribute, AttributeRange
from .common import (
    Characteristic,
    Descriptor,
    Notifier,
    Property,
    ReadRequest,
    Request,
    ResponseWriter,
)
from .constants import (
    ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID,
    ATTR_PRIMARY_SERVICE_UUID,
    GATT_CCC_INDICATE_FLAG,
    GATT_CCC_NOTIFY_FLAG,
    AttErrorCode,
    AttOp,
    att_error_response,
)
from .l2cap import L2capWriter
from .uuid import UUID

__all__ = ["Security", "Connection", "RemoteCentral", "DEFAULT_MTU", "MAX_MTU"]

log = logging.getLogger(__name__)

DEFAULT_MTU = 23
MAX_MTU = 256
# L2CAP must support at least 48 bytes; 672 is the default MTU.
_READ_SIZE = 672


class Security(IntEnum):
    """Security level of a connection."""

    LOW = 0
    MED = 1
    HIGH = 2


class Connection(Protocol):
    """A bidirectional byte connection carrying ATT PDUs."""

    def read(self, size: int) -> bytes: ...

    def write(self, b: bytes) -> int: ...

    def close(self) -> None: ...


class _MalformedRequest(ValueError):
    """A request PDU that is too short for its opcode."""


def _le16(b: bytes, offset: int = 0) -> int:
    if len(b) < offset + 2:
        raise _MalformedRequest("truncated request")
    return struct.unpack_from("<H", b, offset)[0]


def _handle_range(b: bytes) -> tuple[int, int]:
    return _le16(b, 0), _le16(b, 2)


class RemoteCentral:
    """A remote central device connected to the local GATT server."""

    def __init__(self, attrs: AttributeRange, addr: Any, conn: Connection) -> None:
        self.attrs = attrs
        self.addr = addr
        self.conn = conn
        self.mtu = DEFAULT_MTU
        self.security = Security.LOW
        self._notifiers: dict[int, Notifier] = {}
        self._lock = threading.Lock()
        self._dispatch: dict[int, Callable[[bytes], Optional[bytes]]] = {
            AttOp.MTU_REQ: self._handle_mtu,
            AttOp.FIND_INFO_REQ: self._handle_find_info,
            AttOp.FIND_BY_TYPE_VALUE_REQ: self._handle_find_by_type_value,
            AttOp.READ_BY_TYPE_REQ: self._handle_read_by_type,
            AttOp.READ_REQ: self._handle_read,
            AttOp.READ_BLOB_REQ: self._handle_read_blob,
            AttOp.READ_BY_GROUP_REQ: self._handle_read_by_group,
            AttOp.WRITE_REQ: lambda req: self._handle_write(AttOp.WRITE_REQ, req),
            AttOp.WRITE_CMD: lambda req: self._handle_write(AttOp.WRITE_CMD, req),
        }

    @property
    def id(self) -> str:
        """Platform-specific identifier of the central (its address)."""
        if isinstance(self.addr, (bytes, bytearray)):
            return ":".join(f"{x:02x}" for x in self.addr)
        return str(self.addr) if self.addr is not None else ""

    def close(self) -> None:
        """Stop all notifications and close the connection."""
        with self._lock:
            for n in self._notifiers.values():
                n.stop()
        self.conn.close()

    def serve(self) -> None:
        """Read requests and write responses until the connection ends."""
        while True:
            try:
                b = self.conn.read(_READ_SIZE)
            except OSError:
                b = b""
            if not b:
                self.close()
                return
            rsp = self.handle_request(bytes(b))
            if rsp is not None:
                self.conn.write(rsp)

    def handle_request(self, b: bytes) -> Optional[bytes]:
        """Dispatch one raw request and return the response PDU, or None if none is due.

        Raises ValueError for an empty request.
        """
        if not b:
            raise ValueError("empty request")
        req_type, req = b[0], bytes(b[1:])
        handler = self._dispatch.get(req_type)
        if handler is None:
            return att_error_response(req_type, 0x0000, AttErrorCode.REQ_NOT_SUPP)
        try:
            return handler(req)
        except _MalformedRequest:
            return att_error_response(req_type, 0x0000, AttErrorCode.INVALID_PDU)

    # -- helpers ---------------------------------------------------------

    def _read_value(self, a: Attribute, offset: int) -> tuple[bytes, bool]:
        """Return the attribute's value and whether a read handler produced it."""
        if a.value is not None:
            return a.value, False
        req = ReadRequest(central=self, cap=self.mtu - 1, offset=offset)
        rsp = ResponseWriter(self.mtu - 1)
        if isinstance(a.pvt, (Characteristic, Descriptor)) and a.pvt.read_handler is not None:
            a.pvt.read_handler(rsp, req)
        return rsp.getvalue(), True

    def _read_denied(self, op: int, h: int, a: Attribute) -> Optional[bytes]:
        if not a.props & Property.READ:
            return att_error_response(op, h, AttErrorCode.READ_NOT_PERM)
        if a.secure & Property.READ and self.security > Security.LOW:
            return att_error_response(op, h, AttErrorCode.AUTHENTICATION)
        return None

    # -- request handlers ------------------------------------------------

    def _handle_mtu(self, b: bytes) -> bytes:
        mtu = _le16(b)
        self.mtu = min(max(mtu, DEFAULT_MTU), MAX_MTU)
        return bytes([AttOp.MTU_RSP]) + struct.pack("<H", self.mtu)

    def _handle_find_info(self, b: bytes) -> bytes:
        start, end = _handle_range(b)
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.FIND_INFO_RSP)
        uuid_len = -1
        for a in self.attrs.subrange(start, end):
            if uuid_len == -1:
                uuid_len = len(a.typ)
                w.write_byte_fit(0x01 if uuid_len == 2 else 0x02)
            if len(a.typ) != uuid_len:
                break
            w.chunk()
            w.write_uint16_fit(a.handle)
            w.write_uuid_fit(a.typ)
            if not w.commit():
                break
        if uuid_len == -1:
            return att_error_response(AttOp.FIND_INFO_REQ, start, AttErrorCode.ATTR_NOT_FOUND)
        return w.to_bytes()

    def _handle_find_by_type_value(self, b: bytes) -> bytes:
        start, end = _handle_range(b)
        if len(b) < 6:
            raise _MalformedRequest("truncated request")
        t = UUID(b[4:6])
        u = UUID(b[6:])
        # Only primary service discovery by service UUID is supported.
        if t != ATTR_PRIMARY_SERVICE_UUID:
            return att_error_response(
                AttOp.FIND_BY_TYPE_VALUE_REQ, start, AttErrorCode.ATTR_NOT_FOUND
            )
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.FIND_BY_TYPE_VALUE_RSP)
        wrote = False
        for a in self.attrs.subrange(start, end):
            if a.typ != ATTR_PRIMARY_SERVICE_UUID:
                continue
            if UUID(a.value or b"") != u:
                continue
            s = a.pvt
            w.chunk()
            w.write_uint16_fit(s.handle)
            w.write_uint16_fit(s.end_handle)
            if not w.commit():
                break
            wrote = True
        if not wrote:
            return att_error_response(
                AttOp.FIND_BY_TYPE_VALUE_REQ, start, AttErrorCode.ATTR_NOT_FOUND
            )
        return w.to_bytes()

    def _handle_read_by_type(self, b: bytes) -> bytes:
        start, end = _handle_range(b)
        t = UUID(b[4:])
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.READ_BY_TYPE_RSP)
        uuid_len = -1
        for a in self.attrs.subrange(start, end):
            if a.typ != t:
                continue
            if a.secure & Property.READ and self.security > Security.LOW:
                return att_error_response(
                    AttOp.READ_BY_TYPE_REQ, start, AttErrorCode.AUTHENTICATION
                )
            v, _ = self._read_value(a, 0)
            if uuid_len == -1:
                uuid_len = len(v)
                w.write_byte_fit(uuid_len + 2)
            if len(v) != uuid_len:
                break
            w.chunk()
            w.write_uint16_fit(a.handle)
            w.write_fit(v)
            if not w.commit():
                break
        if uuid_len == -1:
            return att_error_response(AttOp.READ_BY_TYPE_REQ, start, AttErrorCode.ATTR_NOT_FOUND)
        return w.to_bytes()

    def _handle_read(self, b: bytes) -> bytes:
        h = _le16(b)
        a = self.attrs.at(h)
        if a is None:
            return att_error_response(AttOp.READ_REQ, h, AttErrorCode.INVALID_HANDLE)
        denied = self._read_denied(AttOp.READ_REQ, h, a)
        if denied is not None:
            return denied
        v, _ = self._read_value(a, 0)
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.READ_RSP)
        w.chunk()
        w.write_fit(v)
        w.commit_fit()
        return w.to_bytes()

    def _handle_read_blob(self, b: bytes) -> bytes:
        h = _le16(b)
        offset = _le16(b, 2)
        a = self.attrs.at(h)
        if a is None:
            return att_error_response(AttOp.READ_BLOB_REQ, h, AttErrorCode.INVALID_HANDLE)
        denied = self._read_denied(AttOp.READ_BLOB_REQ, h, a)
        if denied is not None:
            return denied
        v, from_handler = self._read_value(a, offset)
        if from_handler:
            offset = 0  # the handler has already applied the offset
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.READ_BLOB_RSP)
        w.chunk()
        w.write_fit(v)
        if not w.chunk_seek(offset):
            return att_error_response(AttOp.READ_BLOB_REQ, h, AttErrorCode.INVALID_OFFSET)
        w.commit_fit()
        return w.to_bytes()

    def _handle_read_by_group(self, b: bytes) -> bytes:
        start, end = _handle_range(b)
        t = UUID(b[4:])
        # Only "Discover All Primary Services" is supported.
        if t != ATTR_PRIMARY_SERVICE_UUID:
            return att_error_response(
                AttOp.READ_BY_GROUP_REQ, start, AttErrorCode.UNSUPP_GRP_TYPE
            )
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.READ_BY_GROUP_RSP)
        uuid_len = -1
        for a in self.attrs.subrange(start, end):
            if a.typ != ATTR_PRIMARY_SERVICE_UUID:
                continue
            value = a.value or b""
            if uuid_len == -1:
                uuid_len = len(value)
                w.write_byte_fit(uuid_len + 4)
            if len(value) != uuid_len:
                break
            s = a.pvt
            w.chunk()
            w.write_uint16_fit(s.handle)
            w.write_uint16_fit(s.end_handle)
            w.write_fit(value)
            if not w.commit():
                break
        if uuid_len == -1:
            return att_error_response(AttOp.READ_BY_GROUP_REQ, start, AttErrorCode.ATTR_NOT_FOUND)
        return w.to_bytes()

    def _handle_write(self, req_type: int, b: bytes) -> Optional[bytes]:
        h = _le16(b)
        value = b[2:]
        a = self.attrs.at(h)
        if a is None:
            return att_error_response(req_type, h, AttErrorCode.INVALID_HANDLE)
        no_rsp = req_type == AttOp.WRITE_CMD
        flag = Property.WRITE_NR if no_rsp else Property.WRITE
        if not a.props & flag:
            return att_error_response(req_type, h, AttErrorCode.WRITE_NOT_PERM)
        if not a.secure & flag and self.security > Security.LOW:
            return att_error_response(req_type, h, AttErrorCode.AUTHENTICATION)

        if a.typ != ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID:
            # Regular write; declarations are read-only, so only values and descriptors land here.
            if isinstance(a.pvt, (Characteristic, Descriptor)) and a.pvt.write_handler is not None:
                a.pvt.write_handler(Request(central=self), value)
            return None if no_rsp else bytes([AttOp.WRITE_RSP])

        if len(value) != 2:
            return att_error_response(req_type, h, AttErrorCode.INVAL_ATTR_VALUE_LEN)
        ccc = _le16(value)
        if ccc & (GATT_CCC_NOTIFY_FLAG | GATT_CCC_INDICATE_FLAG):
            self._start_notify(a, self.mtu - 3)
        else:
            self._stop_notify(a)
        return None if no_rsp else bytes([AttOp.WRITE_RSP])

    # -- notifications ---------------------------------------------------

    def send_notification(self, attr: Attribute, data: bytes) -> int:
        """Send a value notification for the characteristic that owns the CCC attribute."""
        w = L2capWriter(self.mtu)
        w.write_byte_fit(AttOp.HANDLE_NOTIFY)
        w.write_uint16_fit(attr.pvt.characteristic.value_handle)
        w.write_fit(bytes(data))
        return self.conn.write(w.to_bytes())

    def _start_notify(self, attr: Attribute, maxlen: int) -> None:
        with self._lock:
            if attr.handle in self._notifiers:
                return
            char = attr.pvt.characteristic
            n = Notifier(self, attr, maxlen)
            self._notifiers[attr.handle] = n
            if char is not None and char.notify_handler is not None:
                threading.Thread(
                    target=char.notify_handler,
                    args=(Request(central=self), n),
                    daemon=True,
                ).start()

    def _stop_notify(self, attr: Attribute) -> None:
        with self._lock:
            n = self._notifiers.pop(attr.handle, None)
            if n is not None:
                n.stop()