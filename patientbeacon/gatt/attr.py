"""The GATT attribute table built from a set of services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .common import Characteristic, Descriptor, Property, Service
from .constants import ATTR_CHARACTERISTIC_UUID, ATTR_PRIMARY_SERVICE_UUID
from .uuid import UUID

__all__ = ["Attribute", "AttributeRange", "generate_attributes"]

log = logging.getLogger(__name__)

_TOO_SMALL = -1
_TOO_LARGE = -2


@dataclass
class Attribute:
    """A single BLE attribute."""

    handle: int = 0
    typ: UUID = field(default_factory=UUID)
    props: Property = Property(0)
    secure: Property = Property(0)
    value: Optional[bytes] = None
    pvt: Any = None


class AttributeRange:
    """A contiguous run of attributes whose first handle is base."""

    def __init__(self, attrs: Sequence[Attribute], base: int) -> None:
        self.attrs = list(attrs)
        self.base = int(base)

    def __len__(self) -> int:
        return len(self.attrs)

    def __iter__(self):
        return iter(self.attrs)

    def _idx(self, h: int) -> int:
        if h < self.base:
            return _TOO_SMALL
        if h >= self.base + len(self.attrs):
            return _TOO_LARGE
        return h - self.base

    def at(self, handle: int) -> Optional[Attribute]:
        """The attribute with the given handle, or None if out of range."""
        i = self._idx(handle)
        if i < 0:
            return None
        return self.attrs[i]

    def subrange(self, start: int, end: int) -> list[Attribute]:
        """Attributes with handles in [start, end]; empty when nothing overlaps."""
        start_idx = self._idx(start)
        if start_idx == _TOO_SMALL:
            start_idx = 0
        elif start_idx == _TOO_LARGE:
            return []
        end_idx = self._idx(end + 1)
        if end_idx == _TOO_SMALL:
            return []
        if end_idx == _TOO_LARGE:
            end_idx = len(self.attrs)
        return self.attrs[start_idx:end_idx]


def _dump(attrs: Sequence[Attribute]) -> None:
    if not log.isEnabledFor(logging.DEBUG):
        return
    log.debug("Generating attribute table:")
    log.debug("handle\ttype\tprops\tsecure\tpvt\tvalue")
    for a in attrs:
        value = " ".join(f"{x:02X}" for x in (a.value or b""))
        log.debug(
            "0x%04X\t0x%s\t0x%02X\t0x%02x\t%s\t[ %s ]",
            a.handle, a.typ, int(a.props), int(a.secure), type(a.pvt).__name__, value,
        )


def _descriptor_attribute(d: Descriptor, h: int) -> Attribute:
    d.handle = h
    return Attribute(handle=h, typ=d.uuid, props=d.properties, value=d.value, pvt=d)


def _characteristic_attributes(c: Characteristic, h: int) -> tuple[int, list[Attribute]]:
    c.handle = h
    c.value_handle = vh = (h + 1) & 0xFFFF
    declaration = Attribute(
        handle=c.handle,
        typ=ATTR_CHARACTERISTIC_UUID,
        value=bytes([int(c.properties) & 0xFF, vh & 0xFF, (vh >> 8) & 0xFF]) + bytes(c.uuid),
        props=c.properties,
        pvt=c,
    )
    value = Attribute(handle=vh, typ=c.uuid, value=c.value, props=c.properties, pvt=c)
    h += 2
    attrs = [declaration, value]
    for d in c.descriptors:
        attrs.append(_descriptor_attribute(d, h))
        h += 1
    return h, attrs


def _service_attributes(s: Service, h: int, last: bool) -> tuple[int, list[Attribute]]:
    s.handle = h
    attrs = [
        Attribute(
            handle=h,
            typ=ATTR_PRIMARY_SERVICE_UUID,
            value=bytes(s.uuid),
            props=Property.READ,
            pvt=s,
        )
    ]
    h += 1
    for c in s.characteristics:
        h, char_attrs = _characteristic_attributes(c, h)
        attrs.extend(char_attrs)
    s.end_handle = h - 1
    if last:
        h = 0xFFFF
        s.end_handle = h
    return h, attrs


def generate_attributes(services: Sequence[Service], base: int) -> AttributeRange:
    """Assign handles to services, characteristics and descriptors and build the table."""
    attrs: list[Attribute] = []
    h = base
    last = len(services) - 1
    for i, s in enumerate(services):
        h, service_attrs = _service_attributes(s, h, i == last)
        attrs.extend(service_attrs)
    _dump(attrs)
    return AttributeRange(attrs, base)