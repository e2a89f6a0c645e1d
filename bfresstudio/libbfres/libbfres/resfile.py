"""libbfres.resfile

ResFile: the root of a BFRES file, plus the read/write entry points.

The platform is detected from the header: Switch files carry four spaces
(0x20202020) right after the ``FRES`` signature, WiiU files a big-endian
version number.  Everything below the header is decoded by the entity
classes through the shared loader/saver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Union

from .anim import SkeletalAnim
from .errors import BfresWriteError, InvalidSignatureError, UnexpectedEndError
from .externalfile import ExternalFile
from .loader import ResFileLoader, StringCache
from .model import Model
from .relocation import RelocationSection, read_relocation_table
from .resdata import ResData
from .resdict import ResDict
from .saver import ANCHOR_STRING_POOL, ResFileSaver
from .stream import PLATFORMS, SWITCH, WIIU, BinaryReader, Platform

_LOGGER = logging.getLogger(__name__)

SWITCH_MAGIC = 0x20202020
WIIU_HEADER_SIZE = 0x10

DEFAULT_VERSIONS = {WIIU: 0x03040002, SWITCH: 0x00050003}
DEFAULT_ALIGNMENTS = {WIIU: 0x2000, SWITCH: 0x1000}

_BOM = {WIIU: b"\xFE\xFF", SWITCH: b"\xFF\xFE"}


def detect_platform(data: bytes) -> Platform:
    """WiiU or Switch, judged by the word following the signature."""
    if len(data) < 8:
        raise UnexpectedEndError(len(data), 8 - len(data), len(data))
    if data[:4] != b"FRES":
        raise InvalidSignatureError("FRES", bytes(data[:4]), 0)
    if int.from_bytes(data[4:8], "little") == SWITCH_MAGIC:
        return SWITCH
    return WIIU


@dataclass(eq=False)
class ResFile(ResData):
    name: str = ""
    platform: Platform = SWITCH
    version: Optional[int] = None
    alignment: Optional[int] = None
    flags: int = 0
    text_encoding: str = "utf-8"
    models: ResDict = field(default_factory=ResDict)
    skeletal_anims: ResDict = field(default_factory=ResDict)
    external_files: ResDict = field(default_factory=ResDict)
    # Encoded _STR entries of the loaded Switch file, in file order.
    string_table: List[bytes] = field(default_factory=list)

    def __post_init__(self):
        if self.version is None:
            self.version = DEFAULT_VERSIONS[self.platform]
        if self.alignment is None:
            self.alignment = DEFAULT_ALIGNMENTS[self.platform]

    # ---- version -----------------------------------------------------------

    @property
    def version_major(self) -> int:
        return self.version >> 24

    @property
    def version_major2(self) -> int:
        return (self.version >> 16) & 0xFF

    @property
    def version_minor(self) -> int:
        return (self.version >> 8) & 0xFF

    @property
    def version_minor2(self) -> int:
        return self.version & 0xFF

    @property
    def version_string(self) -> str:
        return f"{self.version_major}.{self.version_major2}.{self.version_minor}.{self.version_minor2}"

    # ---- entry points ------------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes, string_cache: Optional[StringCache] = None) -> "ResFile":
        platform = detect_platform(data)
        res_file = cls(platform=platform)
        loader = ResFileLoader(res_file, data, platform, string_cache)
        _LOGGER.debug("Loading %d byte %s file", len(data), platform.name)
        res_file.load(loader)
        return res_file

    @classmethod
    def from_file(cls, source: Union[str, BinaryIO]) -> "ResFile":
        if hasattr(source, "read"):
            return cls.from_bytes(source.read())
        with open(source, "rb") as f:
            return cls.from_bytes(f.read())

    def to_bytes(self, platform: Optional[Platform] = None) -> bytes:
        return ResFileSaver(self, platform or self.platform).execute()

    def to_file(self, out_path: str, platform: Optional[Platform] = None) -> None:
        with open(out_path, "wb") as f:
            f.write(self.to_bytes(platform))

    def convert(self, platform: Union[str, Platform]) -> None:
        """Retarget the file, resetting the platform-specific header values."""
        if isinstance(platform, str):
            platform = PLATFORMS[platform.lower()]
        if platform is self.platform:
            return
        self.platform = platform
        self.version = DEFAULT_VERSIONS[platform]
        self.alignment = DEFAULT_ALIGNMENTS[platform]
        self.string_table = []

    # ---- ResData -----------------------------------------------------------

    def load(self, loader) -> None:
        loader.check_signature("FRES")
        if loader.platform.is_switch:
            self._load_switch(loader)
        else:
            self._load_wiiu(loader)
        _LOGGER.debug("Loaded %s v%s: %d models, %d skeletal anims, %d external files",
                      self.name, self.version_string, len(self.models),
                      len(self.skeletal_anims), len(self.external_files))

    def _load_wiiu(self, loader) -> None:
        self.version = loader.u32()
        _check_bom(loader)
        loader.u16()  # header size
        loader.u32()  # file size
        self.alignment = loader.u32()
        self.name = loader.load_string()
        loader.u32()  # string pool size
        loader.read_offset()  # string pool
        self.models = loader.load_dict(Model)
        self.skeletal_anims = loader.load_dict(SkeletalAnim)
        self.external_files = loader.load_dict(ExternalFile)

    def _load_switch(self, loader) -> None:
        loader.u32()  # magic
        self.version = loader.u32()
        _check_bom(loader)
        self.alignment = 1 << loader.u8()
        loader.u8()  # address size
        loader.u32()  # file name offset
        self.flags = loader.u16()
        loader.u16()  # first block offset
        loader.u32()  # relocation table offset
        loader.u32()  # file size
        self.name = loader.load_string()
        self.models = loader.load_dict_values(Model)
        self.skeletal_anims = loader.load_dict_values(SkeletalAnim)
        loader.read_offset()  # memory pool
        loader.read_offset()  # buffer info
        self.external_files = loader.load_dict_values(ExternalFile)
        loader.u64()  # user pointer
        string_table_offset = loader.read_offset()
        self.string_table = _read_string_table(loader, string_table_offset)

    def save(self, saver) -> None:
        if saver.platform.is_switch:
            self._save_switch(saver)
        else:
            self._save_wiiu(saver)

    def _save_wiiu(self, saver) -> None:
        saver.write_signature("FRES")
        saver.write_u32(self.version)
        saver.write(_BOM[WIIU])
        saver.write_u16(WIIU_HEADER_SIZE)
        saver.reserve_field("file_size")
        saver.write_u32(self.alignment)
        saver.save_string(self.name)
        saver.reserve_field("string_pool_size")
        saver.save_anchor(ANCHOR_STRING_POOL)
        saver.save_dict(self.models)
        saver.save_dict(self.skeletal_anims)
        saver.save_dict(self.external_files)
        self._write_counts(saver)
        saver.write_u32(0)  # user pointer

    def _save_switch(self, saver) -> None:
        if self.alignment <= 0 or self.alignment & (self.alignment - 1):
            raise BfresWriteError(f"Switch alignment must be a power of two, got {self.alignment:#x}")
        saver.write_signature("FRES")
        saver.write_u32(SWITCH_MAGIC)
        saver.write_u32(self.version)
        saver.write(_BOM[SWITCH])
        saver.write_u8(self.alignment.bit_length() - 1)
        saver.write_u8(0)
        saver.save_file_name(self.name or "")
        saver.write_u16(self.flags)
        saver.reserve_field("first_block", "H")
        saver.reserve_field("relocation_table")
        saver.reserve_field("file_size")
        saver.save_string(self.name)
        saver.save_res_dict(self.models)
        saver.save_res_dict(self.skeletal_anims)
        if self.models:
            saver.save_memory_pool()
            saver.save_buffer_info()
        else:
            saver.write_null_offset()
            saver.write_null_offset()
        saver.save_res_dict(self.external_files)
        saver.write_u64(0)  # user pointer
        saver.save_anchor(ANCHOR_STRING_POOL)
        saver.reserve_field("string_table_size")
        self._write_counts(saver)
        saver.align_struct()

    def _write_counts(self, saver) -> None:
        saver.write_u16(len(self.models))
        saver.write_u16(len(self.skeletal_anims))
        saver.write_u16(len(self.external_files))
        saver.pad(2)


def _check_bom(loader) -> None:
    bom = loader.read(2)
    if bom != _BOM[loader.platform]:
        _LOGGER.warning("Byte order mark %s does not match a %s file", bom.hex(), loader.platform.name)


def _read_string_table(loader, offset: int) -> List[bytes]:
    """Raw entries of a Switch ``_STR`` block in file order, the leading "" included."""
    if offset == 0:
        return []
    entries = []
    with loader.temporary_seek(offset):
        loader.check_signature("_STR")
        loader.skip(12)
        count = loader.u32() + 1
        for _ in range(count):
            size = loader.u16()
            entries.append(loader.read(size))
            loader.skip(1)
            loader.align(2)
    return entries


def read_bfres(path: str, string_cache: Optional[StringCache] = None) -> ResFile:
    with open(path, "rb") as f:
        return ResFile.from_bytes(f.read(), string_cache)


def write_bfres(res_file: ResFile, out_path: str, platform: Optional[Platform] = None) -> None:
    res_file.to_file(out_path, platform)


def read_relocations(data: bytes) -> List[RelocationSection]:
    """Relocation sections of a Switch file; empty for WiiU files."""
    if detect_platform(data) is not SWITCH:
        return []
    reader = BinaryReader(data, SWITCH)
    reader.seek(0x18)
    offset = reader.u32()
    if offset == 0:
        return []
    return read_relocation_table(reader, offset)
