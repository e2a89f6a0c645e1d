"""libbfres.decimal10x5

16-bit fixed-point number with 10 integral and 5 fractional bits, used for
compact animation curve frame values.
"""

from __future__ import annotations

from dataclasses import dataclass

_ONE = 1 << 5


@dataclass(frozen=True)
class Decimal10x5:
    raw: int

    @classmethod
    def from_float(cls, value: float) -> "Decimal10x5":
        return cls(_wrap(round(value * _ONE)))

    @classmethod
    def from_int(cls, value: int) -> "Decimal10x5":
        return cls(_wrap(value << 5))

    def __float__(self) -> float:
        return self.raw / _ONE

    def __int__(self) -> int:
        return (self.raw + 16) >> 5

    def __add__(self, other: "Decimal10x5") -> "Decimal10x5":
        return Decimal10x5(_wrap(self.raw + other.raw))

    def __sub__(self, other: "Decimal10x5") -> "Decimal10x5":
        return Decimal10x5(_wrap(self.raw - other.raw))

    def __mul__(self, other: "Decimal10x5") -> "Decimal10x5":
        return Decimal10x5(_wrap((self.raw * other.raw + 16) >> 5))

    def __truediv__(self, other: "Decimal10x5") -> "Decimal10x5":
        num = self.raw << 5
        # Integer division truncates toward zero.
        quotient = abs(num) // abs(other.raw)
        if (num < 0) != (other.raw < 0):
            quotient = -quotient
        return Decimal10x5(_wrap(quotient))

    def __neg__(self) -> "Decimal10x5":
        return Decimal10x5(_wrap(-self.raw))

    def __str__(self) -> str:
        return str(float(self))


def _wrap(raw: int) -> int:
    # Stored as a signed 16-bit integer.
    raw &= 0xFFFF
    return raw - 0x10000 if raw & 0x8000 else raw
