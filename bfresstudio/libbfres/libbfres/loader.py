"""libbfres.loader

Offset-resolution engine: the read half of the codec.

Nearly every field that refers to other data is an offset.  The loader
reads the offset at the current position, jumps to its target inside a
``temporary_seek`` block, decodes, and comes back.  A zero offset means
"absent" and never causes a seek.

WiiU offsets are 32-bit and relative to the field that holds them; Switch
offsets are 64-bit absolute file positions.  Both resolve to an absolute
position here, so entity code never sees the difference.

Two caches live for the duration of one load:

- the object map (absolute position + type -> instance), so that a struct
  referenced from several places becomes one shared Python object;
- the ``StringCache`` (absolute position -> text).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeVar

from .errors import InvalidEnumValueError
from .resdict import ResDict
from .stream import BinaryReader, Platform, codec_for

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


class StringCache:
    """Strings resolved during one load, keyed by absolute offset.

    Callers may pre-seed a cache and pass it to several loads when files
    share string storage; by default every load gets a fresh one.
    """

    def __init__(self, strings: Optional[Dict[int, str]] = None):
        self._strings: Dict[int, str] = dict(strings or {})

    def __len__(self) -> int:
        return len(self._strings)

    def __contains__(self, offset: int) -> bool:
        return offset in self._strings

    def get(self, offset: int) -> Optional[str]:
        return self._strings.get(offset)

    def put(self, offset: int, text: str) -> None:
        self._strings[offset] = text


class ResFileLoader(BinaryReader):
    def __init__(self, res_file, data: bytes, platform: Platform, string_cache: Optional[StringCache] = None):
        super().__init__(data, platform)
        self.res_file = res_file
        self.string_cache = string_cache if string_cache is not None else StringCache()
        self._data_map: Dict[Tuple[int, type], object] = {}
        self._blocks: Dict[Tuple[int, int], bytes] = {}

    # ---- primitives --------------------------------------------------------

    def read_offset(self) -> int:
        """Read one offset field and return the absolute target (0 = none)."""
        if self.platform.relative_offsets:
            pos = self.ofs
            value = self.u32()
            # Backward references are stored as negative 32-bit values.
            return 0 if value == 0 else (pos + value) & 0xFFFFFFFF
        return self.u64()

    def read_offsets(self, count: int) -> List[int]:
        return [self.read_offset() for _ in range(count)]

    def read_size(self) -> int:
        return self.u64() if self.platform.is_switch else self.u32()

    def read_enum(self, enum_type: Type[E], value: int) -> E:
        try:
            return enum_type(value)
        except ValueError:
            raise InvalidEnumValueError(enum_type.__name__, value) from None

    def read_block_signature(self, tag: str) -> None:
        """Entity signature; Switch follows it with 4 reserved bytes."""
        self.check_signature(tag)
        if self.platform.is_switch:
            self.skip(4)

    def align_struct(self) -> None:
        self.align(self.platform.alignment)

    # ---- referenced data ---------------------------------------------------

    def load(self, res_type: Type[T], offset: Optional[int] = None) -> Optional[T]:
        if offset is None:
            offset = self.read_offset()
        if offset == 0:
            return None
        with self.temporary_seek(offset):
            return self._read_res_data(res_type)

    def _read_res_data(self, res_type: Type[T]) -> T:
        pos = self.ofs
        instance = res_type()
        instance.load(self)
        # Always decode so the cursor advances, but hand out the first instance.
        return self._data_map.setdefault((pos, res_type), instance)

    def load_custom(self, callback: Callable[[], T], offset: Optional[int] = None) -> Optional[T]:
        if offset is None:
            offset = self.read_offset()
        if offset == 0:
            return None
        with self.temporary_seek(offset):
            return callback()

    def load_block(self, size: int, offset: Optional[int] = None) -> bytes:
        """Raw data block; blocks shared by several structs load as one object."""
        if offset is None:
            offset = self.read_offset()
        if offset == 0:
            return b""
        block = self._blocks.get((offset, size))
        if block is None:
            with self.temporary_seek(offset):
                block = self.read(size)
            self._blocks[(offset, size)] = block
        return block

    def load_list(self, res_type: Type[T], count: int, offset: Optional[int] = None) -> List[T]:
        if offset is None:
            offset = self.read_offset()
        if offset == 0 or count == 0:
            return []
        with self.temporary_seek(offset):
            return [self._read_res_data(res_type) for _ in range(count)]

    def load_dict(self, res_type: Optional[Type[T]], offset: Optional[int] = None) -> ResDict:
        """Dictionary whose nodes carry their values inline (WiiU)."""
        if offset is None:
            offset = self.read_offset()
        res_dict: ResDict = ResDict()
        if offset == 0:
            return res_dict
        with self.temporary_seek(offset):
            res_dict.load(self, res_type)
        return res_dict

    def load_dict_values(self, res_type: Type[T]) -> ResDict:
        """Value array offset followed by a key-only dictionary offset (Switch)."""
        values_offset = self.read_offset()
        res_dict = self.load_dict(None)
        values = self.load_list(res_type, len(res_dict), values_offset)
        res_dict.load_values(values)
        return res_dict

    def load_res_dict(self, res_type: Type[T]) -> ResDict:
        if self.platform.is_switch:
            return self.load_dict_values(res_type)
        return self.load_dict(res_type)

    # ---- strings -----------------------------------------------------------

    def load_string(self, encoding: Optional[str] = None) -> Optional[str]:
        return self._resolve_string(self.read_offset(), encoding)

    def load_strings(self, count: int, encoding: Optional[str] = None) -> List[Optional[str]]:
        offsets = self.read_offsets(count)
        return [self._resolve_string(offset, encoding) for offset in offsets]

    def _resolve_string(self, offset: int, encoding: Optional[str]) -> Optional[str]:
        if offset == 0:
            return None
        cached = self.string_cache.get(offset)
        if cached is not None:
            return cached
        # Some shipped Switch files point strings outside the file; they read as empty.
        if self.platform.is_switch and offset >= len(self.data):
            _LOGGER.debug("String offset 0x%X outside of 0x%X byte file", offset, len(self.data))
            return ""
        with self.temporary_seek(offset):
            text = self.read_string(encoding)
        self.string_cache.put(offset, text)
        return text

    def read_string(self, encoding: Optional[str] = None) -> str:
        codec = codec_for(encoding or self.res_file.text_encoding, self.platform)
        if self.platform.is_switch:
            self.u16()  # byte length, the terminator is authoritative
        return self.zstring(codec)
