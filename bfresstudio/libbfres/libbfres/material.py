"""libbfres.material

FMAT sections and what hangs off them: render infos, texture samplers and
shader parameters.

Shader parameters do not own their values.  Every material carries one
packed blob and each ``ShaderParam`` names a type and a byte offset into
it.  On load the values are decoded out of the blob; on save they are
written back into a copy of it, so bytes between parameters survive
unchanged.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Tuple, Union

from .errors import BfresWriteError
from .resdata import ResData
from .resdict import ResDict
from .userdata import UserData


class RenderInfoType(IntEnum):
    INT32 = 0
    SINGLE = 1
    STRING = 2


@dataclass(eq=False)
class RenderInfo(ResData):
    name: str = ""
    type: RenderInfoType = RenderInfoType.INT32
    value: list = field(default_factory=list)

    def load(self, loader) -> None:
        self.name = loader.load_string()
        data_offset = loader.read_offset()
        count = loader.u16()
        self.type = loader.read_enum(RenderInfoType, loader.u8())
        loader.skip(1)
        loader.align_struct()
        self.value = loader.load_custom(lambda: self._read_values(loader, count), data_offset) or []

    def _read_values(self, loader, count: int) -> list:
        if self.type is RenderInfoType.INT32:
            return loader.array("i", count)
        if self.type is RenderInfoType.SINGLE:
            return loader.array("f", count)
        return loader.load_strings(count)

    def save(self, saver) -> None:
        saver.save_string(self.name)
        saver.save_custom(self.value or None, lambda: self._write_values(saver))
        saver.write_u16(len(self.value))
        saver.write_u8(self.type)
        saver.pad(1)
        saver.align_struct()

    def _write_values(self, saver) -> None:
        if self.type is RenderInfoType.INT32:
            saver.write_array("i", self.value)
        elif self.type is RenderInfoType.SINGLE:
            saver.write_array("f", self.value)
        else:
            saver.save_strings(self.value)


@dataclass(eq=False)
class Sampler(ResData):
    """Texture sampler; the three GX2 sampler words are kept raw."""

    name: str = ""
    words: Tuple[int, int, int] = (0, 0, 0)

    def load(self, loader) -> None:
        self.name = loader.load_string()
        self.words = tuple(loader.array("I", 3))
        loader.align_struct()

    def save(self, saver) -> None:
        saver.save_string(self.name)
        saver.write_array("I", self.words)
        saver.align_struct()


class ShaderParamType(IntEnum):
    BOOL = 0
    BOOL2 = 1
    BOOL3 = 2
    BOOL4 = 3
    INT = 4
    INT2 = 5
    INT3 = 6
    INT4 = 7
    UINT = 8
    UINT2 = 9
    UINT3 = 10
    UINT4 = 11
    FLOAT = 12
    FLOAT2 = 13
    FLOAT3 = 14
    FLOAT4 = 15
    RESERVED2 = 16
    FLOAT2X2 = 17
    FLOAT2X3 = 18
    FLOAT2X4 = 19
    RESERVED3 = 20
    FLOAT3X2 = 21
    FLOAT3X3 = 22
    FLOAT3X4 = 23
    RESERVED4 = 24
    FLOAT4X2 = 25
    FLOAT4X3 = 26
    FLOAT4X4 = 27
    SRT2D = 28
    SRT3D = 29
    TEX_SRT = 30
    TEX_SRT_EX = 31


class TexSrtMode(IntEnum):
    MAYA = 0
    MAX3D = 1
    SOFTIMAGE = 2


@dataclass
class Srt2D:
    scaling: Tuple[float, float] = (1.0, 1.0)
    rotation: float = 0.0
    translation: Tuple[float, float] = (0.0, 0.0)


@dataclass
class Srt3D:
    scaling: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    rotation: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    translation: Tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class TexSrt:
    mode: TexSrtMode = TexSrtMode.MAYA
    scaling: Tuple[float, float] = (1.0, 1.0)
    rotation: float = 0.0
    translation: Tuple[float, float] = (0.0, 0.0)


@dataclass
class TexSrtEx(TexSrt):
    matrix_pointer: int = 0


ShaderParamValue = Union[tuple, Srt2D, Srt3D, TexSrt, TexSrtEx]

_FIXED_SIZES = {
    ShaderParamType.SRT2D: 20,
    ShaderParamType.SRT3D: 36,
    ShaderParamType.TEX_SRT: 24,
    ShaderParamType.TEX_SRT_EX: 28,
}


def param_size(param_type: ShaderParamType) -> int:
    """Byte size of one value of ``param_type`` inside the data blob."""
    t = int(param_type)
    if t <= ShaderParamType.FLOAT4:
        return 4 * ((t & 3) + 1)
    if t <= ShaderParamType.FLOAT4X4:
        cols = (t & 3) + 1
        rows = ((t - ShaderParamType.RESERVED2) >> 2) + 2
        return 4 * cols * rows
    return _FIXED_SIZES[ShaderParamType(t)]


def _element_format(param_type: ShaderParamType) -> str:
    if param_type <= ShaderParamType.BOOL4 or ShaderParamType.UINT <= param_type <= ShaderParamType.UINT4:
        return "I"
    if param_type <= ShaderParamType.INT4:
        return "i"
    return "f"


def _tex_mode(mode: int):
    # Unknown modes stay plain ints so they survive a re-save.
    try:
        return TexSrtMode(mode)
    except ValueError:
        return mode


def decode_param(param_type: ShaderParamType, data: bytes, byte_order: str) -> ShaderParamValue:
    if param_type is ShaderParamType.SRT2D:
        sx, sy, rot, tx, ty = struct.unpack(byte_order + "5f", data)
        return Srt2D((sx, sy), rot, (tx, ty))
    if param_type is ShaderParamType.SRT3D:
        v = struct.unpack(byte_order + "9f", data)
        return Srt3D(v[0:3], v[3:6], v[6:9])
    if param_type is ShaderParamType.TEX_SRT:
        mode, sx, sy, rot, tx, ty = struct.unpack(byte_order + "I5f", data)
        return TexSrt(_tex_mode(mode), (sx, sy), rot, (tx, ty))
    if param_type is ShaderParamType.TEX_SRT_EX:
        mode, sx, sy, rot, tx, ty, ptr = struct.unpack(byte_order + "I5fI", data)
        return TexSrtEx(_tex_mode(mode), (sx, sy), rot, (tx, ty), ptr)
    count = len(data) // 4
    return struct.unpack(f"{byte_order}{count}{_element_format(param_type)}", data)


def encode_param(param_type: ShaderParamType, value: ShaderParamValue, byte_order: str) -> bytes:
    try:
        if param_type is ShaderParamType.SRT2D:
            return struct.pack(byte_order + "5f", *value.scaling, value.rotation, *value.translation)
        if param_type is ShaderParamType.SRT3D:
            return struct.pack(byte_order + "9f", *value.scaling, *value.rotation, *value.translation)
        if param_type is ShaderParamType.TEX_SRT:
            return struct.pack(byte_order + "I5f", value.mode, *value.scaling, value.rotation, *value.translation)
        if param_type is ShaderParamType.TEX_SRT_EX:
            return struct.pack(byte_order + "I5fI", value.mode, *value.scaling, value.rotation,
                               *value.translation, value.matrix_pointer)
        count = param_size(param_type) // 4
        return struct.pack(f"{byte_order}{count}{_element_format(param_type)}", *value)
    except (struct.error, AttributeError, TypeError) as exc:
        raise BfresWriteError(f"Bad {param_type.name} shader parameter value {value!r}: {exc}") from exc


@dataclass(eq=False)
class ShaderParam(ResData):
    name: str = ""
    type: ShaderParamType = ShaderParamType.FLOAT
    data_offset: int = 0
    uniform_offset: int = -1
    depended_index: int = 0
    depend_index: int = 0
    value: ShaderParamValue = (0.0,)

    @property
    def data_size(self) -> int:
        return param_size(self.type)

    def load(self, loader) -> None:
        if loader.platform.is_switch:
            loader.u64()  # runtime callback pointer
        self.name = loader.load_string()
        self.type = loader.read_enum(ShaderParamType, loader.u8())
        loader.u8()
        self.data_offset = loader.u16()
        self.uniform_offset = loader.s32()
        self.depended_index = loader.u16()
        self.depend_index = loader.u16()
        loader.align_struct()

    def save(self, saver) -> None:
        if saver.platform.is_switch:
            saver.write_u64(0)
        saver.save_string(self.name)
        saver.write_u8(self.type)
        saver.write_u8(self.data_size)
        saver.write_u16(self.data_offset)
        saver.write_s32(self.uniform_offset)
        saver.write_u16(self.depended_index)
        saver.write_u16(self.depend_index)
        saver.align_struct()


@dataclass(eq=False)
class Material(ResData):
    name: str = ""
    flags: int = 1
    index: int = 0
    render_infos: ResDict = field(default_factory=ResDict)
    samplers: ResDict = field(default_factory=ResDict)
    shader_params: ResDict = field(default_factory=ResDict)
    user_data: ResDict = field(default_factory=ResDict)
    texture_refs: List[str] = field(default_factory=list)
    shader_param_data: bytes = b""

    def load(self, loader) -> None:
        loader.read_block_signature("FMAT")
        self.name = loader.load_string()
        self.render_infos = loader.load_res_dict(RenderInfo)
        self.samplers = loader.load_res_dict(Sampler)
        self.shader_params = loader.load_res_dict(ShaderParam)
        self.user_data = loader.load_res_dict(UserData)
        texture_refs_offset = loader.read_offset()
        data_offset = loader.read_offset()
        self.flags = loader.u32()
        self.index = loader.u16()
        loader.u16()  # render info count
        loader.u8()  # sampler count
        texture_ref_count = loader.u8()
        loader.u16()  # shader param count
        loader.u16()  # user data count
        loader.u16()
        data_size = loader.u32()
        loader.align_struct()

        self.texture_refs = loader.load_custom(lambda: loader.load_strings(texture_ref_count),
                                               texture_refs_offset) or []
        self.shader_param_data = loader.load_custom(lambda: loader.read(data_size), data_offset) or b""
        order = loader.platform.byte_order
        for param in self.shader_params.values():
            end = param.data_offset + param.data_size
            if end <= len(self.shader_param_data):
                param.value = decode_param(param.type, self.shader_param_data[param.data_offset:end], order)

    def pack_shader_params(self, byte_order: str) -> bytes:
        """The data blob with every parameter value written at its offset."""
        blob = bytearray(self.shader_param_data)
        for param in self.shader_params.values():
            end = param.data_offset + param.data_size
            if end > len(blob):
                blob.extend(bytes(end - len(blob)))
            blob[param.data_offset:end] = encode_param(param.type, param.value, byte_order)
        return bytes(blob)

    def save(self, saver) -> None:
        blob = self.pack_shader_params(saver.platform.byte_order)
        saver.write_block_signature("FMAT")
        saver.save_string(self.name)
        saver.save_res_dict(self.render_infos)
        saver.save_res_dict(self.samplers)
        saver.save_res_dict(self.shader_params)
        saver.save_res_dict(self.user_data)
        saver.save_custom(self.texture_refs or None, lambda: saver.save_strings(self.texture_refs))
        saver.save_custom(blob or None, lambda: saver.write(blob))
        saver.write_u32(self.flags)
        saver.write_u16(self.index)
        saver.write_u16(len(self.render_infos))
        saver.write_u8(len(self.samplers))
        saver.write_u8(len(self.texture_refs))
        saver.write_u16(len(self.shader_params))
        saver.write_u16(len(self.user_data))
        saver.write_u16(0)
        saver.write_u32(len(blob))
        saver.align_struct()
