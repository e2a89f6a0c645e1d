"""libbfres.stream

Format strategy plus the raw binary reader/writer cores.

BFRES comes in two on-disk flavours that share most of their structure:

- WiiU:   big-endian, 32-bit self-relative offsets, 4-byte entry alignment.
- Switch: little-endian, 64-bit absolute offsets, 8-byte entry alignment,
          plus a relocation table trailer.

Rather than subclassing the loader and saver per flavour, everything that
differs is captured by a ``Platform`` value handed to a single reader and a
single writer.
"""

from __future__ import annotations

import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .errors import BfresWriteError, InvalidSignatureError, UnexpectedEndError


@dataclass(frozen=True)
class Platform:
    name: str
    byte_order: str          # struct prefix, ">" or "<"
    offset_size: int         # 4 (relative) or 8 (absolute)
    relative_offsets: bool
    alignment: int           # alignment of every queued entry
    buffer_alignment: int    # alignment of index/vertex buffer blocks
    string_length_size: int  # width of the length prefix in the string pool
    string_alignment: int
    relocations: bool        # emit the _RLT trailer

    @property
    def is_switch(self) -> bool:
        return not self.relative_offsets

    @property
    def utf16(self) -> str:
        return "utf-16-be" if self.byte_order == ">" else "utf-16-le"


WIIU = Platform(
    name="WiiU",
    byte_order=">",
    offset_size=4,
    relative_offsets=True,
    alignment=4,
    buffer_alignment=0x40,
    string_length_size=4,
    string_alignment=4,
    relocations=False,
)

SWITCH = Platform(
    name="Switch",
    byte_order="<",
    offset_size=8,
    relative_offsets=False,
    alignment=8,
    buffer_alignment=8,
    string_length_size=2,
    string_alignment=2,
    relocations=True,
)

PLATFORMS = {"wiiu": WIIU, "switch": SWITCH}


def align_up(n: int, align: int) -> int:
    return (n + align - 1) & -align


def codec_for(encoding: Optional[str], platform: Platform) -> str:
    # "utf-16" has no byte order of its own in the file, it follows the platform.
    if encoding and encoding.lower().replace("_", "-") in ("utf-16", "utf16"):
        return platform.utf16
    return encoding or "utf-8"


def terminator_for(codec: str) -> bytes:
    return b"\x00\x00" if codec.startswith("utf-16") else b"\x00"


class BinaryReader:
    """Cursor over an in-memory buffer, decoding with the platform byte order."""

    def __init__(self, data: bytes, platform: Platform):
        self.data = data
        self.ofs = 0
        self.platform = platform
        self._order = platform.byte_order

    def __len__(self) -> int:
        return len(self.data)

    def tell(self) -> int:
        return self.ofs

    def seek(self, ofs: int) -> None:
        self.ofs = ofs

    def skip(self, n: int) -> None:
        self.ofs += n

    def align(self, n: int) -> None:
        self.ofs = align_up(self.ofs, n)

    @contextmanager
    def temporary_seek(self, ofs: int) -> Iterator[int]:
        """Jump to ``ofs`` for the duration of the block, always returning."""
        saved = self.ofs
        self.ofs = ofs
        try:
            yield ofs
        finally:
            self.ofs = saved

    def read(self, n: int) -> bytes:
        b = self.data[self.ofs : self.ofs + n]
        if len(b) != n:
            raise UnexpectedEndError(self.ofs, n, len(self.data))
        self.ofs += n
        return bytes(b)

    def _unpack(self, fmt: str, size: int):
        return struct.unpack(self._order + fmt, self.read(size))

    def u8(self) -> int:
        return self._unpack("B", 1)[0]

    def s8(self) -> int:
        return self._unpack("b", 1)[0]

    def u16(self) -> int:
        return self._unpack("H", 2)[0]

    def s16(self) -> int:
        return self._unpack("h", 2)[0]

    def u32(self) -> int:
        return self._unpack("I", 4)[0]

    def s32(self) -> int:
        return self._unpack("i", 4)[0]

    def u64(self) -> int:
        return self._unpack("Q", 8)[0]

    def s64(self) -> int:
        return self._unpack("q", 8)[0]

    def f32(self) -> float:
        return self._unpack("f", 4)[0]

    def array(self, fmt: str, count: int) -> List:
        size = struct.calcsize("<" + fmt)
        return list(self._unpack(f"{count}{fmt}", size * count))

    def signature(self) -> bytes:
        return self.read(4)

    def check_signature(self, tag: str) -> None:
        pos = self.ofs
        found = self.signature()
        if found != tag.encode("ascii"):
            raise InvalidSignatureError(tag, found, pos)

    def zstring(self, codec: str) -> str:
        """Read text up to (and consuming) its zero terminator."""
        term = terminator_for(codec)
        step = len(term)
        end = self.ofs
        while True:
            if end + step > len(self.data):
                raise UnexpectedEndError(end, step, len(self.data))
            if self.data[end : end + step] == term:
                break
            end += step
        text = bytes(self.data[self.ofs : end]).decode(codec)
        self.ofs = end + step
        return text


class BinaryWriter:
    """Growable output buffer with random access for backpatching."""

    def __init__(self, platform: Platform):
        self.buf = bytearray()
        self.pos = 0
        self.platform = platform
        self._order = platform.byte_order

    def tell(self) -> int:
        return self.pos

    def seek(self, pos: int) -> None:
        self.pos = pos

    def getvalue(self) -> bytes:
        return bytes(self.buf)

    @contextmanager
    def temporary_seek(self, pos: int) -> Iterator[int]:
        saved = self.pos
        self.pos = pos
        try:
            yield pos
        finally:
            self.pos = saved

    def write(self, b: bytes) -> None:
        if self.pos > len(self.buf):
            self.buf.extend(bytes(self.pos - len(self.buf)))
        self.buf[self.pos : self.pos + len(b)] = b
        self.pos += len(b)

    def align(self, n: int) -> None:
        """Advance to a multiple of ``n``, zero-filling when past the end."""
        target = align_up(self.pos, n)
        if target > len(self.buf):
            self.buf.extend(bytes(target - len(self.buf)))
        self.pos = target

    def pad(self, n: int) -> None:
        self.write(bytes(n))

    def _pack(self, fmt: str, *values) -> None:
        try:
            packed = struct.pack(self._order + fmt, *values)
        except struct.error as exc:
            raise BfresWriteError(f"Cannot pack {values!r} as '{fmt}' at 0x{self.pos:X}: {exc}") from exc
        self.write(packed)

    def write_u8(self, v: int) -> None:
        self._pack("B", v)

    def write_s8(self, v: int) -> None:
        self._pack("b", v)

    def write_u16(self, v: int) -> None:
        self._pack("H", v)

    def write_s16(self, v: int) -> None:
        self._pack("h", v)

    def write_u32(self, v: int) -> None:
        self._pack("I", v)

    def write_s32(self, v: int) -> None:
        self._pack("i", v)

    def write_u64(self, v: int) -> None:
        self._pack("Q", v)

    def write_f32(self, v: float) -> None:
        self._pack("f", v)

    def write_array(self, fmt: str, values) -> None:
        values = list(values)
        self._pack(f"{len(values)}{fmt}", *values)

    def write_signature(self, tag: str) -> None:
        self.write(tag.encode("ascii"))
