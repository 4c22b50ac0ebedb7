import tempfile

import pytest

from patientbeacon.gatt.ioctl import io, io_r, io_rw, io_w, ioctl


def test_io_places_type_and_number():
    op = io(ord("H"), 201)
    assert op & 0xFF == 201
    assert (op >> 8) & 0xFF == ord("H")
    assert op >> 16 == 0


def test_io_w_matches_linux_hcidevup():
    # _IOW('H', 201, int) on Linux
    assert io_w(ord("H"), 201, 4) == 0x400448C9


def test_direction_bits():
    assert io_r(1, 2, 3) >> 30 == 2
    assert io_w(1, 2, 3) >> 30 == 1
    assert io_rw(1, 2, 3) >> 30 == 3
    assert io(1, 2) >> 30 == 0


def test_read_write_is_union():
    assert io_rw(0x42, 7, 16) == io_r(0x42, 7, 16) | io_w(0x42, 7, 16)


def test_size_field():
    assert (io_r(0x42, 7, 16) >> 16) & 0x3FFF == 16


def test_ioctl_failure_raises_oserror():
    with tempfile.TemporaryFile() as f:
        with pytest.raises(OSError):
            ioctl(f.fileno(), io(0x42, 0x99), 0)