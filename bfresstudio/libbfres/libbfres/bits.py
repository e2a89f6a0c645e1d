"""libbfres.bits

Bit-field helpers for packed flag words.

Every function works on an unsigned integer of a fixed ``width`` (8 or 32
bits; 16-bit flag words such as animation curve flags use the 32-bit
variant since their fields never cross bit 15).  Bit positions are counted
from the least significant bit.  Out-of-range positions are the caller's
problem: nothing here checks ``first_bit + bits <= width``.
"""

from __future__ import annotations


def _mask(width: int) -> int:
    return (1 << width) - 1


def decode(value: int, first_bit: int, bits: int) -> int:
    """Return the ``bits``-wide field starting at ``first_bit``."""
    return (value >> first_bit) & _mask(bits)


def encode(value: int, field: int, first_bit: int, bits: int, width: int = 32) -> int:
    """Return ``value`` with the field replaced by ``field`` (clear, then OR)."""
    field_mask = _mask(bits) << first_bit
    value &= ~field_mask & _mask(width)
    return value | ((field << first_bit) & field_mask)


def get_bit(value: int, index: int) -> bool:
    return (value >> index) & 1 == 1


def set_bit(value: int, index: int, enable: bool, width: int = 32) -> int:
    return enable_bit(value, index) if enable else disable_bit(value, index, width)


def enable_bit(value: int, index: int) -> int:
    return value | (1 << index)


def disable_bit(value: int, index: int, width: int = 32) -> int:
    return value & ~(1 << index) & _mask(width)


def toggle_bit(value: int, index: int) -> int:
    return value ^ (1 << index)


def rotate_bits(value: int, count: int, width: int = 32) -> int:
    """Rotate left for a positive ``count``, right for a negative one."""
    count %= width
    value &= _mask(width)
    return ((value << count) | (value >> (width - count))) & _mask(width)


# Byte-sized aliases, mirroring the 32-bit helpers above.

def decode8(value: int, first_bit: int, bits: int) -> int:
    return decode(value & 0xFF, first_bit, bits)


def encode8(value: int, field: int, first_bit: int, bits: int) -> int:
    return encode(value, field, first_bit, bits, width=8)


def set_bit8(value: int, index: int, enable: bool) -> int:
    return set_bit(value, index, enable, width=8)


def disable_bit8(value: int, index: int) -> int:
    return disable_bit(value, index, width=8)


def rotate_bits8(value: int, count: int) -> int:
    return rotate_bits(value, count, width=8)
