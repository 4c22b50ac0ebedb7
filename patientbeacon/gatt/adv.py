"""Advertising data: parsing received advertisements and building packets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .constants import ATTR_GAP_UUID, ATTR_GATT_UUID
from .uuid import UUID

__all__ = [
    "MAX_EIR_PACKET_LENGTH",
    "ServiceData",
    "Advertisement",
    "AdvPacket",
]

log = logging.getLogger(__name__)

MAX_EIR_PACKET_LENGTH = 31

# Advertising data field types
TYPE_FLAGS = 0x01
TYPE_SOME_UUID16 = 0x02
TYPE_ALL_UUID16 = 0x03
TYPE_SOME_UUID32 = 0x04
TYPE_ALL_UUID32 = 0x05
TYPE_SOME_UUID128 = 0x06
TYPE_ALL_UUID128 = 0x07
TYPE_SHORT_NAME = 0x08
TYPE_COMPLETE_NAME = 0x09
TYPE_TX_POWER = 0x0A
TYPE_CLASS_OF_DEVICE = 0x0D
TYPE_SIMPLE_PAIRING_C192 = 0x0E
TYPE_SIMPLE_PAIRING_R192 = 0x0F
TYPE_SEC_MANAGER_TK = 0x10
TYPE_SEC_MANAGER_OOB = 0x11
TYPE_SLAVE_CONN_INT = 0x12
TYPE_SERVICE_SOL16 = 0x14
TYPE_SERVICE_SOL128 = 0x15
TYPE_SERVICE_DATA16 = 0x16
TYPE_PUB_TARGET_ADDR = 0x17
TYPE_RAND_TARGET_ADDR = 0x18
TYPE_APPEARANCE = 0x19
TYPE_ADV_INTERVAL = 0x1A
TYPE_LE_DEVICE_ADDR = 0x1B
TYPE_LE_ROLE = 0x1C
TYPE_SERVICE_SOL32 = 0x1F
TYPE_SERVICE_DATA32 = 0x20
TYPE_SERVICE_DATA128 = 0x21
TYPE_LE_SEC_CONFIRM = 0x22
TYPE_LE_SEC_RANDOM = 0x23
TYPE_MANUFACTURER_DATA = 0xFF

# Advertising type flags
FLAG_LIMITED_DISCOVERABLE = 0x01
FLAG_GENERAL_DISCOVERABLE = 0x02
FLAG_LE_ONLY = 0x04
FLAG_BOTH_CONTROLLER = 0x08
FLAG_BOTH_HOST = 0x10

_SERVICE_WIDTHS = {
    TYPE_SOME_UUID16: 2,
    TYPE_ALL_UUID16: 2,
    TYPE_SOME_UUID32: 4,
    TYPE_ALL_UUID32: 4,
    TYPE_SOME_UUID128: 16,
    TYPE_ALL_UUID128: 16,
}

_SOLICITED_WIDTHS = {
    TYPE_SERVICE_SOL16: 2,
    TYPE_SERVICE_SOL32: 4,
    TYPE_SERVICE_SOL128: 16,
}


@dataclass
class ServiceData:
    """Data attached to a service UUID in an advertisement."""

    uuid: UUID
    data: bytes


def _uuid_list(d: bytes, width: int) -> list[UUID]:
    if len(d) % width:
        raise ValueError("invalid advertise data")
    return [UUID(d[i:i + width]) for i in range(0, len(d), width)]


@dataclass
class Advertisement:
    """The content of a received advertisement."""

    local_name: str = ""
    manufacturer_data: bytes = b""
    service_data: list[ServiceData] = field(default_factory=list)
    services: list[UUID] = field(default_factory=list)
    overflow_service: list[UUID] = field(default_factory=list)
    tx_power_level: int = 0
    connectable: bool = False
    solicited_service: list[UUID] = field(default_factory=list)

    def unmarshal(self, data: bytes) -> None:
        """Fill the fields from raw advertising data; raises ValueError if malformed."""
        data = bytes(data)
        while data:
            if len(data) < 2:
                raise ValueError("invalid advertise data")
            length, typ = data[0], data[1]
            if length < 1 or len(data) < 1 + length:
                raise ValueError("invalid advertise data")
            d = data[2:1 + length]
            if typ == TYPE_FLAGS:
                pass
            elif typ in _SERVICE_WIDTHS:
                self.services.extend(_uuid_list(d, _SERVICE_WIDTHS[typ]))
            elif typ in (TYPE_SHORT_NAME, TYPE_COMPLETE_NAME):
                self.local_name = d.decode("utf-8", errors="replace")
            elif typ == TYPE_TX_POWER:
                if not d:
                    raise ValueError("invalid advertise data")
                self.tx_power_level = d[0]
            elif typ in _SOLICITED_WIDTHS:
                self.solicited_service.extend(_uuid_list(d, _SOLICITED_WIDTHS[typ]))
            elif typ == TYPE_MANUFACTURER_DATA:
                self.manufacturer_data = d
            else:
                log.debug("DATA: [ %s ]", " ".join(f"{x:02X}" for x in d))
            data = data[1 + length:]


class AdvPacket:
    """Builds advertising or scan-response data of at most 31 bytes."""

    def __init__(self, data: bytes = b"") -> None:
        self._b = bytearray(data)

    def to_bytes(self) -> bytes:
        """The packet as exactly 31 bytes, zero-padded or truncated."""
        return bytes(self._b[:MAX_EIR_PACKET_LENGTH]).ljust(MAX_EIR_PACKET_LENGTH, b"\x00")

    def __len__(self) -> int:
        return min(len(self._b), MAX_EIR_PACKET_LENGTH)

    def append_field(self, typ: int, b: bytes) -> AdvPacket:
        """Append a field, truncating its data to fit; raises ValueError if no room is left."""
        b = bytes(b)
        if len(self._b) + 2 + len(b) > MAX_EIR_PACKET_LENGTH:
            room = MAX_EIR_PACKET_LENGTH - len(self._b) - 2
            if room < 0:
                raise ValueError("max packet length is 31")
            b = b[:room]
        self._b.append((len(b) + 1) & 0xFF)
        self._b.append(typ & 0xFF)
        self._b += b
        return self

    def append_flags(self, flags: int) -> AdvPacket:
        """Append a flags field."""
        return self.append_field(TYPE_FLAGS, bytes([flags & 0xFF]))

    def append_name(self, name: str) -> AdvPacket:
        """Append the name, as a complete name if it fits and a shortened one otherwise."""
        encoded = name.encode("utf-8")
        typ = TYPE_COMPLETE_NAME
        if len(self._b) + 2 + len(encoded) > MAX_EIR_PACKET_LENGTH:
            typ = TYPE_SHORT_NAME
        return self.append_field(typ, encoded)

    def append_manufacturer_data(self, company_id: int, b: bytes) -> AdvPacket:
        """Append manufacturer-specific data prefixed by the little-endian company id."""
        d = bytes([company_id & 0xFF, (company_id >> 8) & 0xFF]) + bytes(b)
        return self.append_field(TYPE_MANUFACTURER_DATA, d)

    def append_uuid_fit(self, uuids: Iterable[UUID]) -> bool:
        """Append service UUIDs while they fit; report whether all of them fit."""
        uuids = [u for u in uuids if u != ATTR_GAP_UUID and u != ATTR_GATT_UUID]
        fit = True
        total = len(self._b)
        for u in uuids:
            total += 2 + len(u)
            if total > MAX_EIR_PACKET_LENGTH:
                fit = False
                break
        for u in uuids:
            if len(self._b) + 2 + len(u) > MAX_EIR_PACKET_LENGTH:
                break
            if len(u) == 2:
                self.append_field(TYPE_ALL_UUID16 if fit else TYPE_SOME_UUID16, bytes(u))
            elif len(u) == 16:
                self.append_field(TYPE_ALL_UUID128 if fit else TYPE_SOME_UUID128, bytes(u))
        return fit