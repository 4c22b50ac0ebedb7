"""Encoding of Linux ioctl request numbers and a thin ioctl call."""

from __future__ import annotations

__all__ = ["io", "io_r", "io_w", "io_rw", "ioctl"]

TYPE_BITS = 8
NUMBER_BITS = 8
SIZE_BITS = 14
DIRECTION_BITS = 2

TYPE_MASK = (1 << TYPE_BITS) - 1
NUMBER_MASK = (1 << NUMBER_BITS) - 1
SIZE_MASK = (1 << SIZE_BITS) - 1
DIRECTION_MASK = (1 << DIRECTION_BITS) - 1

DIRECTION_NONE = 0
DIRECTION_WRITE = 1
DIRECTION_READ = 2

NUMBER_SHIFT = 0
TYPE_SHIFT = NUMBER_SHIFT + NUMBER_BITS
SIZE_SHIFT = TYPE_SHIFT + TYPE_BITS
DIRECTION_SHIFT = SIZE_SHIFT + SIZE_BITS


def _ioc(direction: int, t: int, nr: int, size: int) -> int:
    return (
        (direction << DIRECTION_SHIFT)
        | (t << TYPE_SHIFT)
        | (nr << NUMBER_SHIFT)
        | (size << SIZE_SHIFT)
    )


def io(t: int, nr: int) -> int:
    """Request number for an ioctl that carries no data."""
    return _ioc(DIRECTION_NONE, t, nr, 0)


def io_r(t: int, nr: int, size: int) -> int:
    """Request number for an ioctl that reads size bytes from the driver."""
    return _ioc(DIRECTION_READ, t, nr, size)


def io_w(t: int, nr: int, size: int) -> int:
    """Request number for an ioctl that writes size bytes to the driver."""
    return _ioc(DIRECTION_WRITE, t, nr, size)


def io_rw(t: int, nr: int, size: int) -> int:
    """Request number for an ioctl that both writes and reads size bytes."""
    return _ioc(DIRECTION_READ | DIRECTION_WRITE, t, nr, size)


def ioctl(fd: int, op: int, arg: int) -> None:
    """Issue ioctl op on fd with an integer argument; raises OSError on failure."""
    import fcntl  # Unix only

    fcntl.ioctl(fd, op, arg)