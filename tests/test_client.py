import queue
import threading
import time
from types import SimpleNamespace

import pytest

from patientbeacon.gatt.attr import generate_attributes
from patientbeacon.gatt.client import InvalidLengthError, RemotePeripheral
from patientbeacon.gatt.common import (
    STATUS_SUCCESS,
    Characteristic,
    Descriptor,
    Property,
    Service,
)
from patientbeacon.gatt.constants import ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID
from patientbeacon.gatt.server import RemoteCentral
from patientbeacon.gatt.uuid import parse_uuid, uuid16

LONG = b"A really long characteristic"


class Loopback:
    """Client-side connection whose writes are served by a RemoteCentral."""

    def __init__(self):
        self.inbox = queue.Queue()
        self.server = None
        self.sent = []

    def read(self, size):
        return self.inbox.get()

    def write(self, b):
        self.sent.append(bytes(b))
        rsp = self.server.handle_request(bytes(b))
        if rsp is not None:
            self.inbox.put(rsp)
        return len(b)

    def close(self):
        self.inbox.put(b"")


class ServerConn:
    def __init__(self, loop):
        self.loop = loop

    def read(self, size):
        return b""

    def write(self, b):
        self.loop.inbox.put(bytes(b))
        return len(b)

    def close(self):
        pass


class Scripted:
    def __init__(self, responses):
        self.inbox = queue.Queue()
        self.responses = list(responses)
        self.sent = []

    def read(self, size):
        return self.inbox.get()

    def write(self, b):
        self.sent.append(bytes(b))
        if b[0] != 0x1E and self.responses:
            self.inbox.put(self.responses.pop(0))
        return len(b)

    def close(self):
        self.inbox.put(b"")


def _start(p):
    t = threading.Thread(target=p.run, daemon=True)
    t.start()
    return t


@pytest.fixture
def served():
    recorded = []
    svc = Service(parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b"))
    svc.add_characteristic(parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51b")).handle_read(
        lambda resp, req: resp.write(b"count: 1")
    )

    def on_write(r, data):
        recorded.append(bytes(data))
        return STATUS_SUCCESS

    svc.add_characteristic(parse_uuid("16fe0d80-c111-11e3-b8c8-0002a5d5c51b")).handle_write(
        on_write
    )
    svc.add_characteristic(parse_uuid("1c927b50-c116-11e3-8a33-0800200c9a66")).handle_notify(
        lambda r, n: n.write(b"Count: 0")
    )
    svc.add_characteristic(parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51d")).set_value(LONG)
    gap = Service(uuid16(0x1800))
    gap.add_characteristic(uuid16(0x2A00)).set_value(b"Gopher")
    attrs = generate_attributes([gap, svc], 1)
    conn = Loopback()
    conn.server = RemoteCentral(attrs, b"", ServerConn(conn))
    p = RemotePeripheral(conn, bytes(6), "test")
    t = _start(p)
    yield SimpleNamespace(peripheral=p, gap=gap, svc=svc, recorded=recorded)
    p.close()
    t.join(timeout=2)


def _discover(p):
    services = p.discover_services(None)
    custom = services[1]
    chars = p.discover_characteristics(None, custom)
    return services, custom, chars


def test_discover_services_matches_server(served):
    services = served.peripheral.discover_services(None)
    assert [s.uuid for s in services] == [served.gap.uuid, served.svc.uuid]
    assert [s.handle for s in services] == [served.gap.handle, served.svc.handle]
    assert services[-1].end_handle == served.svc.end_handle


def test_discover_characteristics_matches_server(served):
    _, custom, chars = _discover(served.peripheral)
    expected = served.svc.characteristics
    assert [c.uuid for c in chars] == [c.uuid for c in expected]
    assert [c.value_handle for c in chars] == [c.value_handle for c in expected]
    assert all(c.service is custom for c in chars)
    assert chars[-1].end_handle == custom.end_handle


def test_discover_descriptors_finds_cccd(served):
    _, _, chars = _discover(served.peripheral)
    notify_char = chars[2]
    descs = served.peripheral.discover_descriptors(None, notify_char)
    assert [d.uuid for d in descs] == [ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID]
    assert notify_char.cccd is descs[0]
    assert descs[0].handle == served.svc.characteristics[2].cccd.handle


def test_read_characteristic(served):
    _, _, chars = _discover(served.peripheral)
    assert served.peripheral.read_characteristic(chars[0]) == b"count: 1"


def test_read_long_characteristic(served):
    _, _, chars = _discover(served.peripheral)
    assert served.peripheral.read_long_characteristic(chars[3]) == LONG
    assert served.peripheral.read_long_characteristic(chars[0]) == b"count: 1"


def test_write_characteristic(served):
    _, _, chars = _discover(served.peripheral)
    served.peripheral.write_characteristic(chars[1], b"abcdef", False)
    served.peripheral.write_characteristic(chars[1], b"xyz", True)
    assert served.recorded == [b"abcdef", b"xyz"]


def test_read_descriptor(served):
    _, _, chars = _discover(served.peripheral)
    d = served.peripheral.discover_descriptors(None, chars[2])[0]
    assert served.peripheral.read_descriptor(d) == served.svc.characteristics[2].cccd.value


def test_notifications(served):
    p = served.peripheral
    _, _, chars = _discover(p)
    p.discover_descriptors(None, chars[2])
    got = queue.Queue()
    p.set_notify_value(chars[2], lambda c, data: got.put((c, data)))
    c, data = got.get(timeout=2)
    assert c is chars[2]
    assert data == b"Count: 0"
    p.set_notify_value(chars[2], None)


def test_set_notify_without_cccd_raises(served):
    _, _, chars = _discover(served.peripheral)
    with pytest.raises(ValueError):
        served.peripheral.set_notify_value(chars[0], lambda c, d: None)


def test_set_mtu_takes_smaller(served):
    p = served.peripheral
    p.set_mtu(100)
    assert p.mtu == 100


def test_discover_included_services_empty(served):
    services = served.peripheral.discover_services(None)
    assert served.peripheral.discover_included_services(None, services[0]) == []


def test_read_rssi_unavailable(served):
    assert served.peripheral.read_rssi() == -1


def test_invalid_length_raises():
    conn = Scripted([b"\x11\x05" + bytes(5)])
    p = RemotePeripheral(conn, bytes(6), "x")
    t = _start(p)
    with pytest.raises(InvalidLengthError):
        p.discover_services(None)
    p.close()
    t.join(timeout=2)


def test_request_after_close_raises():
    conn = Scripted([])
    p = RemotePeripheral(conn, bytes(6), "x")
    t = _start(p)
    p.close()
    t.join(timeout=2)
    c = Characteristic(uuid16(0x2A00), None, Property.READ, 1, 2)
    with pytest.raises(ConnectionError):
        p.read_characteristic(c)


def test_indication_is_confirmed():
    conn = Scripted([b"\x13"])
    p = RemotePeripheral(conn, bytes(6), "x")
    t = _start(p)
    c = Characteristic(uuid16(0x2A37), None, Property.INDICATE, 0x10, 0x11)
    c.cccd = Descriptor(ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID, 0x12, c)
    got = queue.Queue()
    p.set_indicate_value(c, lambda ch, data: got.put(data))
    assert conn.sent[0] == bytes([0x12, 0x12, 0x00, 0x02, 0x00])
    conn.inbox.put(b"\x1d\x11\x00hi")
    assert got.get(timeout=2) == b"hi"
    deadline = time.monotonic() + 2
    while len(conn.sent) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert conn.sent[-1] == b"\x1e"
    p.close()
    t.join(timeout=2)