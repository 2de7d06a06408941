"""
Fixed byte-order integer conversion.

The 'snd ' resource is big-endian on disk, the WAV output is little-endian.
Everything goes through struct with an explicit byte order prefix, so the host
byte order never matters.
"""

import struct

BIG = '>'
LITTLE = '<'

_UNSIGNED = {1: 'B', 2: 'H', 4: 'I', 8: 'Q'}
_SIGNED = {1: 'b', 2: 'h', 4: 'i', 8: 'q'}


def _format(width, order, signed):
    codes = _SIGNED if signed else _UNSIGNED
    if width not in codes:
        raise ValueError(f"unsupported integer width: {width}")
    return order + codes[width]


def to_native(data, width, order=BIG, signed=False):
    """Unpack exactly `width` bytes stored in `order` into an int."""
    if len(data) != width:
        raise ValueError(f"expected {width} bytes, got {len(data)}")
    return struct.unpack(_format(width, order, signed), data)[0]


def from_native(value, width, order=LITTLE, signed=False):
    """Pack an int into `width` bytes in `order`."""
    return struct.pack(_format(width, order, signed), value)


def to_native_partial(data, width, order=BIG):
    """Read len(data) < width bytes into the low-order end of a wider unsigned int.

    The unread high-order bytes are zero.
    """
    length = len(data)
    if length > width:
        raise ValueError(f"{length} bytes do not fit in {width}")
    padding = b'\x00' * (width - length)
    if order == BIG:
        return to_native(padding + data, width, order)
    return to_native(data + padding, width, order)


def from_native_partial(value, length, width, order=LITTLE):
    """Write only the low-order `length` bytes of a `width`-byte unsigned int."""
    if length > width:
        raise ValueError(f"{length} bytes do not fit in {width}")
    packed = from_native(value & ((1 << (8 * width)) - 1), width, order)
    if order == BIG:
        return packed[width - length:]
    return packed[:length]
