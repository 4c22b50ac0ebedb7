import pytest

from patientbeacon.gatt.l2cap import L2capWriter
from patientbeacon.gatt.uuid import parse_uuid, uuid16


@pytest.mark.parametrize(
    "mtu, head, chunk, ok",
    [
        (5, 0, 4, True),
        (5, 0, 5, True),
        (5, 0, 6, False),
        (5, 1, 3, True),
        (5, 1, 4, True),
        (5, 1, 5, False),
    ],
)
def test_chunk(mtu, head, chunk, ok):
    w = L2capWriter(mtu)
    want = bytearray()
    for i in range(head):
        w.write_byte_fit(i)
        want.append(i)
    w.chunk()
    for i in range(chunk):
        w.write_byte_fit(i)
        if ok:
            want.append(i)
    assert w.commit() is ok
    assert w.to_bytes() == bytes(want)


def test_double_chunk_raises():
    w = L2capWriter(5)
    w.chunk()
    with pytest.raises(RuntimeError):
        w.chunk()


def test_commit_before_chunk_raises():
    w = L2capWriter(5)
    with pytest.raises(RuntimeError):
        w.commit()


def test_double_commit_raises():
    w = L2capWriter(5)
    w.chunk()
    w.commit()
    with pytest.raises(RuntimeError):
        w.commit()


def test_bytes_while_chunked_raises():
    w = L2capWriter(5)
    w.chunk()
    with pytest.raises(RuntimeError):
        w.to_bytes()


def test_write_fit_truncates():
    w = L2capWriter(3)
    assert w.write_fit(b"ab") is True
    assert w.write_fit(b"cd") is False
    assert w.to_bytes() == b"abc"
    assert w.write_fit(b"e") is False
    assert w.to_bytes() == b"abc"


def test_commit_fit_truncates_chunk():
    w = L2capWriter(4)
    w.write_byte_fit(0x0B)
    w.chunk()
    w.write_fit(b"hello")
    w.commit_fit()
    assert w.to_bytes() == b"\x0bhel"


def test_uint16_little_endian():
    w = L2capWriter(17)
    w.write_uint16_fit(0x0102)
    assert w.to_bytes() == b"\x02\x01"


def test_write_uuid_uses_wire_order():
    w = L2capWriter(23)
    w.write_uuid_fit(uuid16(0x2800))
    long_uuid = parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b")
    w.write_uuid_fit(long_uuid)
    assert w.to_bytes() == b"\x00\x28" + bytes.fromhex("1bc5d5a502000499e31111c1c095fc09")


def test_chunk_seek():
    w = L2capWriter(23)
    w.write_byte_fit(0x0D)
    w.chunk()
    w.write_fit(b"A really long")
    assert w.chunk_seek(2) is True
    w.commit_fit()
    assert w.to_bytes() == b"\x0dreally long"


def test_chunk_seek_past_end():
    w = L2capWriter(23)
    w.chunk()
    w.write_fit(b"abc")
    assert w.chunk_seek(4) is False
    w.commit_fit()
    assert w.to_bytes() == b""


def test_chunk_seek_without_chunk_raises():
    with pytest.raises(RuntimeError):
        L2capWriter(5).chunk_seek(0)


def test_writeable():
    w = L2capWriter(5)
    w.write_fit(b"ab")
    assert w.writeable(0, b"xyz") == 3
    assert w.writeable(1, b"xyz") == 2
    assert w.writeable(10, b"xyz") == 0
    w.chunk()
    assert w.writeable(10, b"xyz") == 3