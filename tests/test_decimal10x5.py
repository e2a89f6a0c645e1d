"""Tests for the 10.5 fixed-point frame type."""
import pytest

from libbfres.decimal10x5 import Decimal10x5


@pytest.mark.parametrize('value', [0.0, 1.0, 2.5, -3.25, 511.96875, -512.0])
def test_float_round_trip(value):
    assert float(Decimal10x5.from_float(value)) == value


def test_raw_scaling():
    assert Decimal10x5.from_float(1.5).raw == 48
    assert Decimal10x5.from_int(3).raw == 96
    assert int(Decimal10x5(48)) == 2
    assert int(Decimal10x5(40)) == 1


def test_arithmetic():
    a = Decimal10x5.from_float(1.5)
    b = Decimal10x5.from_float(0.5)
    assert float(a + b) == 2.0
    assert float(a - b) == 1.0
    assert float(a * b) == 0.75
    assert float(a / b) == 3.0
    assert float(-a) == -1.5


def test_division_truncates_toward_zero():
    one = Decimal10x5.from_int(1)
    three = Decimal10x5.from_int(3)
    assert (one / three).raw == 10
    assert (-one / three).raw == -10


def test_wraps_to_16_bits():
    assert Decimal10x5.from_int(1024).raw == -32768
