"""libbfres.userdata

Named, typed value arrays attached to models, bones, materials and
animations.  The payload is one of a closed set of element types chosen by
``UserDataType``; ``value`` always holds a list of that element type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List

from .errors import BfresWriteError
from .resdata import ResData


class UserDataType(IntEnum):
    INT32 = 0
    SINGLE = 1
    STRING = 2
    WSTRING = 3
    BYTE = 4


# struct format of the numeric variants
_NUMERIC = {
    UserDataType.INT32: "i",
    UserDataType.SINGLE: "f",
    UserDataType.BYTE: "B",
}

_ENCODING = {
    UserDataType.STRING: None,
    UserDataType.WSTRING: "utf-16",
}

_ELEMENT_TYPES = {
    UserDataType.INT32: int,
    UserDataType.SINGLE: (int, float),
    UserDataType.BYTE: int,
    UserDataType.STRING: str,
    UserDataType.WSTRING: str,
}


@dataclass(eq=False)
class UserData(ResData):
    name: str = ""
    type: UserDataType = UserDataType.INT32
    value: list = field(default_factory=list)

    @classmethod
    def int32(cls, name: str, values: List[int]) -> "UserData":
        return cls(name, UserDataType.INT32, list(values))

    @classmethod
    def single(cls, name: str, values: List[float]) -> "UserData":
        return cls(name, UserDataType.SINGLE, list(values))

    @classmethod
    def string(cls, name: str, values: List[str], wide: bool = False) -> "UserData":
        return cls(name, UserDataType.WSTRING if wide else UserDataType.STRING, list(values))

    @classmethod
    def byte(cls, name: str, values) -> "UserData":
        return cls(name, UserDataType.BYTE, list(values))

    def validate(self) -> None:
        expected = _ELEMENT_TYPES[self.type]
        for item in self.value:
            if isinstance(item, bool) or not isinstance(item, expected):
                raise BfresWriteError(f"User data '{self.name}' of type {self.type.name} holds {item!r}")

    def load(self, loader) -> None:
        self.name = loader.load_string()
        if loader.platform.is_switch:
            data_offset = loader.read_offset()
            count = loader.u32()
            self.type = loader.read_enum(UserDataType, loader.u8())
            loader.skip(43)
            self.value = loader.load_custom(lambda: self._read_values(loader, count), data_offset) or []
        else:
            count = loader.u16()
            self.type = loader.read_enum(UserDataType, loader.u8())
            loader.skip(1)
            self.value = self._read_values(loader, count)
            loader.align_struct()

    def _read_values(self, loader, count: int) -> list:
        if self.type in _NUMERIC:
            return loader.array(_NUMERIC[self.type], count)
        return loader.load_strings(count, _ENCODING[self.type])

    def save(self, saver) -> None:
        self.validate()
        saver.save_string(self.name)
        if saver.platform.is_switch:
            saver.save_custom(self.value or None, lambda: self._write_values(saver))
            saver.write_u32(len(self.value))
            saver.write_u8(self.type)
            saver.pad(43)
        else:
            saver.write_u16(len(self.value))
            saver.write_u8(self.type)
            saver.pad(1)
            self._write_values(saver)
            saver.align_struct()

    def _write_values(self, saver) -> None:
        if self.type in _NUMERIC:
            saver.write_array(_NUMERIC[self.type], self.value)
        else:
            saver.save_strings(self.value, _ENCODING[self.type])
