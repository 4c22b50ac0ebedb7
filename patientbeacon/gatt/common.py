"""GATT services, characteristics and descriptors, and the request helpers used to serve them."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Callable, Optional

from .constants import ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID
from .known import characteristic_name, descriptor_name, service_name
from .uuid import UUID

__all__ = [
    "STATUS_SUCCESS",
    "STATUS_INVALID_OFFSET",
    "STATUS_UNEXPECTED_ERROR",
    "Property",
    "Request",
    "ReadRequest",
    "ResponseWriter",
    "Notifier",
    "Service",
    "Characteristic",
    "Descriptor",
    "ReadHandler",
    "WriteHandler",
    "NotifyHandler",
]

# Statuses for characteristic read/write operations (ATT error codes).
STATUS_SUCCESS = 0
STATUS_INVALID_OFFSET = 1
STATUS_UNEXPECTED_ERROR = 2


class Property(IntFlag):
    """Characteristic property flags."""

    BROADCAST = 0x01
    READ = 0x02
    WRITE_NR = 0x04
    WRITE = 0x08
    NOTIFY = 0x10
    INDICATE = 0x20
    SIGNED_WRITE = 0x40
    EXTENDED = 0x80

    def __str__(self) -> str:
        words = (
            (Property.BROADCAST, "broadcast "),
            (Property.READ, "read "),
            (Property.WRITE_NR, "writeWithoutResponse "),
            (Property.WRITE, "write "),
            (Property.NOTIFY, "notify "),
            (Property.INDICATE, "indicate "),
            (Property.SIGNED_WRITE, "authenticateSignedWrites "),
            (Property.EXTENDED, "extendedProperties "),
        )
        value = int(self)
        return "".join(word for flag, word in words if value & int(flag))


@dataclass
class Request:
    """The context of a request from a connected central device."""

    central: Any = None


@dataclass
class ReadRequest(Request):
    """A characteristic or descriptor read request."""

    cap: int = 0
    offset: int = 0


class ResponseWriter:
    """Collects the value returned for a read request, bounded by a capacity."""

    def __init__(self, capacity: int) -> None:
        self.capacity = int(capacity)
        self._buf = bytearray()
        self.status = STATUS_SUCCESS

    def write(self, b: bytes) -> int:
        """Append b; raises ValueError if it would exceed the capacity."""
        avail = self.capacity - len(self._buf)
        if avail < len(b):
            raise ValueError(f"requested write {len(b)} bytes, {avail} available")
        self._buf += b
        return len(b)

    def set_status(self, status: int) -> None:
        """Report the result of the read operation (one of the STATUS_* values)."""
        self.status = status

    def getvalue(self) -> bytes:
        """The bytes written so far."""
        return bytes(self._buf)


ReadHandler = Callable[[ResponseWriter, ReadRequest], None]
WriteHandler = Callable[[Request, bytes], int]


class Notifier:
    """Sends value-change notifications for one attribute to a connected central."""

    def __init__(self, central: Any, attr: Any, maxlen: int) -> None:
        self.central = central
        self.attr = attr
        self.maxlen = int(maxlen)
        self._lock = threading.Lock()
        self._done = False

    def write(self, data: bytes) -> int:
        """Send data; raises RuntimeError once the central stopped notifications."""
        with self._lock:
            if self._done:
                raise RuntimeError("central stopped notifications")
            return self.central.send_notification(self.attr, data)

    @property
    def done(self) -> bool:
        """Whether the central asked for no more notifications."""
        with self._lock:
            return self._done

    @property
    def cap(self) -> int:
        """Maximum number of bytes in a single notification."""
        return self.maxlen

    def stop(self) -> None:
        """Mark the notifier as finished."""
        with self._lock:
            self._done = True


NotifyHandler = Callable[[Request, Notifier], None]


class Service:
    """A BLE service."""

    def __init__(self, uuid: UUID) -> None:
        self.uuid = uuid
        self.characteristics: list[Characteristic] = []
        self.handle = 0
        self.end_handle = 0

    def __repr__(self) -> str:
        return f"Service({str(self.uuid)!r})"

    @property
    def name(self) -> str:
        """Specification name of the service, or "" if not assigned."""
        return service_name(self.uuid)

    def add_characteristic(self, uuid: UUID) -> Characteristic:
        """Add a characteristic; raises ValueError if the UUID is already present."""
        if any(c.uuid == uuid for c in self.characteristics):
            raise ValueError(f"service already contains a characteristic with uuid {uuid}")
        c = Characteristic(uuid, self)
        self.characteristics.append(c)
        return c


class Characteristic:
    """A BLE characteristic."""

    def __init__(
        self,
        uuid: UUID,
        service: Optional[Service] = None,
        props: Property = Property(0),
        handle: int = 0,
        value_handle: int = 0,
    ) -> None:
        self.uuid = uuid
        self.service = service
        self.properties = Property(props)
        self.secure = Property(0)
        self.cccd: Optional[Descriptor] = None
        self.descriptors: list[Descriptor] = []
        self.value: Optional[bytes] = None
        self.read_handler: Optional[ReadHandler] = None
        self.write_handler: Optional[WriteHandler] = None
        self.notify_handler: Optional[NotifyHandler] = None
        self.handle = handle
        self.value_handle = value_handle
        self.end_handle = 0

    def __repr__(self) -> str:
        return f"Characteristic({str(self.uuid)!r})"

    @property
    def name(self) -> str:
        """Specification name of the characteristic, or "" if not assigned."""
        return characteristic_name(self.uuid)

    def add_descriptor(self, uuid: UUID) -> Descriptor:
        """Add a descriptor; raises ValueError if the UUID is already present."""
        if any(d.uuid == uuid for d in self.descriptors):
            raise ValueError(f"characteristic already contains a descriptor with uuid {uuid}")
        d = Descriptor(uuid, 0, self)
        self.descriptors.append(d)
        return d

    def set_value(self, value: bytes) -> None:
        """Serve reads with a static value; raises ValueError if a read handler is set."""
        if self.read_handler is not None:
            raise ValueError("characteristic has been configured with a read handler")
        self.properties |= Property.READ
        self.value = bytes(value)

    def handle_read(self, handler: ReadHandler) -> None:
        """Route reads to handler(resp, req); raises ValueError if a static value is set."""
        if self.value is not None:
            raise ValueError("characteristic has been configured with a static value")
        self.properties |= Property.READ
        self.read_handler = handler

    def handle_write(self, handler: WriteHandler) -> None:
        """Route writes (with or without response) to handler(request, data)."""
        self.properties |= Property.WRITE | Property.WRITE_NR
        self.write_handler = handler

    def handle_notify(self, handler: NotifyHandler) -> None:
        """Route notification subscriptions to handler(request, notifier) and add a CCC descriptor."""
        if self.cccd is not None:
            return
        p = Property.NOTIFY | Property.INDICATE
        self.properties |= p
        self.notify_handler = handler
        secure = Property(0)
        if self.secure & p:
            secure = Property.READ | Property.WRITE
        cd = Descriptor(ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID, 0, self)
        cd.properties = Property.READ | Property.WRITE | Property.WRITE_NR
        cd.secure = secure
        cd.value = b"\x00\x00"
        self.cccd = cd
        self.descriptors.append(cd)


class Descriptor:
    """A BLE descriptor."""

    def __init__(
        self, uuid: UUID, handle: int = 0, characteristic: Optional[Characteristic] = None
    ) -> None:
        self.uuid = uuid
        self.handle = handle
        self.characteristic = characteristic
        self.properties = Property(0)
        self.secure = Property(0)
        self.value: Optional[bytes] = None
        self.read_handler: Optional[ReadHandler] = None
        self.write_handler: Optional[WriteHandler] = None

    def __repr__(self) -> str:
        return f"Descriptor({str(self.uuid)!r})"

    @property
    def name(self) -> str:
        """Specification name of the descriptor, or "" if not assigned."""
        return descriptor_name(self.uuid)

    def set_value(self, value: bytes) -> None:
        """Serve reads with a static value; raises ValueError if a read handler is set."""
        if self.read_handler is not None:
            raise ValueError("descriptor has been configured with a read handler")
        self.properties |= Property.READ
        self.value = bytes(value)

    def handle_read(self, handler: ReadHandler) -> None:
        """Route reads to handler(resp, req); raises ValueError if a static value is set."""
        if self.value is not None:
            raise ValueError("descriptor has been configured with a static value")
        self.properties |= Property.READ
        self.read_handler = handler

    def handle_write(self, handler: WriteHandler) -> None:
        """Route writes (with or without response) to handler(request, data)."""
        self.properties |= Property.WRITE | Property.WRITE_NR
        self.write_handler = handler