"""
Bounded Byte Readers
=====================

Fixed-width integer and NUL-terminated string readers used by the PE
decoder.  Every offset handed to these functions ultimately comes from the
file under analysis, so each read is checked against the end of the
original buffer before :func:`struct.unpack_from` is called.  A failed
check raises :class:`~pekit.errors.OutOfBoundsError`; nothing here returns
a partial value.

:class:`ByteView` is a ``(buffer, offset, length)`` window over the
original buffer.  It never copies; reads through a view are checked against
both the view's length and the underlying buffer.
"""

from __future__ import annotations

import struct
from typing import Union

from pekit.errors import OutOfBoundsError

Buffer = Union[bytes, bytearray, memoryview]

_FORMATS: dict[tuple[int, bool, str], str] = {
    (2, False, "little"): "<H",
    (2, True, "little"): "<h",
    (4, False, "little"): "<I",
    (4, True, "little"): "<i",
    (8, False, "little"): "<Q",
    (8, True, "little"): "<q",
    (2, False, "big"): ">H",
    (2, True, "big"): ">h",
    (4, False, "big"): ">I",
    (4, True, "big"): ">i",
    (8, False, "big"): ">Q",
    (8, True, "big"): ">q",
}


def check_bounds(data: Buffer, offset: int, width: int) -> None:
    """Raise :class:`OutOfBoundsError` unless ``data[offset:offset+width]`` exists."""
    if offset < 0 or width < 0 or offset + width > len(data):
        raise OutOfBoundsError(offset, width, len(data))


def read_int(
    data: Buffer,
    offset: int,
    width: int,
    *,
    signed: bool = False,
    byteorder: str = "little",
) -> int:
    """Read a 16, 32 or 64-bit integer at *offset*.

    Args:
        data: Buffer to read from.
        offset: Absolute offset of the first byte.
        width: Width in bytes (2, 4 or 8).
        signed: Decode as two's complement.
        byteorder: ``"little"`` or ``"big"``.

    Returns:
        The decoded integer.

    Raises:
        OutOfBoundsError: If fewer than *width* bytes remain at *offset*.
        ValueError: If the width / byte order combination is unsupported.
    """
    try:
        fmt = _FORMATS[(width, signed, byteorder)]
    except KeyError:
        raise ValueError(
            f"Unsupported integer layout: width={width} signed={signed} "
            f"byteorder={byteorder!r}"
        ) from None
    check_bounds(data, offset, width)
    return struct.unpack_from(fmt, data, offset)[0]


def read_u16(data: Buffer, offset: int) -> int:
    """Read an unsigned 16-bit little-endian value."""
    return read_int(data, offset, 2)


def read_u32(data: Buffer, offset: int) -> int:
    """Read an unsigned 32-bit little-endian value."""
    return read_int(data, offset, 4)


def read_i32(data: Buffer, offset: int) -> int:
    """Read a signed 32-bit little-endian value."""
    return read_int(data, offset, 4, signed=True)


def read_u64(data: Buffer, offset: int) -> int:
    """Read an unsigned 64-bit little-endian value."""
    return read_int(data, offset, 8)


def read_u32_be(data: Buffer, offset: int) -> int:
    """Read an unsigned 32-bit big-endian value."""
    return read_int(data, offset, 4, byteorder="big")


def read_cstring(data: Buffer, offset: int) -> str:
    """Read a NUL-terminated ASCII string starting at *offset*.

    Non-ASCII bytes are replaced rather than rejected.

    Raises:
        OutOfBoundsError: If *offset* is outside the buffer or no NUL byte
            occurs before the end of the buffer.
    """
    check_bounds(data, offset, 1)
    if isinstance(data, memoryview):
        # memoryview has no find()
        end = offset
        while end < len(data) and data[end] != 0:
            end += 1
        if end == len(data):
            end = -1
    else:
        end = data.find(b"\x00", offset)
    if end == -1:
        raise OutOfBoundsError(offset, len(data) - offset + 1, len(data))
    return bytes(data[offset:end]).decode("ascii", errors="replace")


def is_zero(data: Buffer, offset: int, width: int) -> bool:
    """Return ``True`` if the *width* bytes at *offset* are all zero."""
    check_bounds(data, offset, width)
    return not any(data[offset:offset + width])


# ---------------------------------------------------------------------------
# ByteView
# ---------------------------------------------------------------------------

class ByteView:
    """Read-only ``(buffer, offset, length)`` window over a parent buffer.

    Relative reads are checked against the window, absolute bounds against
    the parent buffer.  Constructing a view that does not fit inside the
    parent raises :class:`OutOfBoundsError`.
    """

    __slots__ = ("_data", "_offset", "_length")

    def __init__(self, data: Buffer, offset: int = 0, length: int | None = None) -> None:
        if length is None:
            length = len(data) - offset
        check_bounds(data, offset, length)
        self._data = data
        self._offset = offset
        self._length = length

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        return f"ByteView(offset=0x{self._offset:x}, length={self._length})"

    @property
    def offset(self) -> int:
        """Absolute offset of the window inside the parent buffer."""
        return self._offset

    @property
    def data(self) -> Buffer:
        """The parent buffer."""
        return self._data

    def _absolute(self, rel: int, width: int) -> int:
        if rel < 0 or rel + width > self._length:
            raise OutOfBoundsError(self._offset + rel, width, self._offset + self._length)
        return self._offset + rel

    def read(self, rel: int, width: int, *, signed: bool = False, byteorder: str = "little") -> int:
        """Read an integer *rel* bytes into the view."""
        return read_int(
            self._data, self._absolute(rel, width), width,
            signed=signed, byteorder=byteorder,
        )

    def u16(self, rel: int) -> int:
        return self.read(rel, 2)

    def u32(self, rel: int) -> int:
        return self.read(rel, 4)

    def u64(self, rel: int) -> int:
        return self.read(rel, 8)

    def is_zero(self) -> bool:
        """Return ``True`` if every byte of the view is zero."""
        return is_zero(self._data, self._offset, self._length)

    def sub(self, rel: int, length: int) -> ByteView:
        """Return a narrower view starting *rel* bytes into this one."""
        return ByteView(self._data, self._absolute(rel, length), length)


class Cursor:
    """Forward-only reader that hands out fixed-size records as views.

    Usage::

        cursor = Cursor(data, start)
        coff = cursor.take(20)
        optional = cursor.take(240)
    """

    __slots__ = ("_data", "_position")

    def __init__(self, data: Buffer, position: int = 0) -> None:
        self._data = data
        self._position = position

    @property
    def position(self) -> int:
        """Absolute offset of the next record."""
        return self._position

    def take(self, size: int) -> ByteView:
        """Return a view over the next *size* bytes and advance past them.

        Raises:
            OutOfBoundsError: If fewer than *size* bytes remain.
        """
        view = ByteView(self._data, self._position, size)
        self._position += size
        return view
