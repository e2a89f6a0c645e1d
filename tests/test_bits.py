"""Tests for the bit-field codec."""
import pytest

from libbfres import bits


@pytest.mark.parametrize('first_bit,count', [(0, 1), (0, 2), (2, 2), (4, 3), (8, 2), (12, 2), (16, 16), (0, 32), (31, 1)])
def test_encode_decode_round_trip(first_bit, count):
    top = (1 << count) - 1
    for value in {0, 1, top // 2, top}:
        assert bits.decode(bits.encode(0, value, first_bit, count), first_bit, count) == value


def test_encode_leaves_other_bits_alone():
    value = bits.encode(0xFFFFFFFF, 0, 4, 3)
    assert value == 0xFFFFFF8F
    assert bits.encode(value, 5, 4, 3) == 0xFFFFFFDF


def test_encode_masks_oversized_field():
    assert bits.encode(0, 0xFF, 0, 2) == 0x3


def test_single_bits():
    assert bits.get_bit(0b100, 2)
    assert not bits.get_bit(0b100, 1)
    assert bits.set_bit(0, 5, True) == 0x20
    assert bits.set_bit(0xFFFFFFFF, 0, False) == 0xFFFFFFFE
    assert bits.toggle_bit(0b1010, 1) == 0b1000
    assert bits.disable_bit8(0xFF, 7) == 0x7F


def test_rotate():
    assert bits.rotate_bits(0x80000001, 1) == 0x00000003
    assert bits.rotate_bits(0x00000003, -1) == 0x80000001
    assert bits.rotate_bits8(0x81, 4) == 0x18


def test_byte_variants():
    assert bits.decode8(0x1F0, 4, 4) == 0xF
    assert bits.encode8(0xFF, 0, 0, 4) == 0xF0
    assert bits.set_bit8(0x00, 7, True) == 0x80
