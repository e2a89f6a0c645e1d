"""libbfres.anim

FSKA skeletal animations.

A ``SkeletalAnim`` holds one ``BoneAnim`` per animated bone, and each bone
animation holds ``AnimCurve`` tracks.  Curves pack their storage formats
and wrap modes into a 16-bit flag word; frames and keys are quantised to
the chosen storage type on save (``float`` frames may be stored as
Decimal10x5 or as bytes).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List

from . import bits
from .decimal10x5 import Decimal10x5
from .errors import BfresWriteError
from .resdata import ResData
from .resdict import ResDict
from .userdata import UserData

# Curves gained a delta field in this WiiU file version.
DELTA_VERSION = 0x03040000


class AnimCurveFrameType(IntEnum):
    SINGLE = 0
    DECIMAL10X5 = 1
    BYTE = 2


class AnimCurveKeyType(IntEnum):
    SINGLE = 0
    INT16 = 1
    SBYTE = 2


class AnimCurveType(IntEnum):
    CUBIC = 0
    LINEAR = 1
    BAKED_FLOAT = 2
    STEP_INT = 4
    BAKED_INT = 5
    STEP_BOOL = 6
    BAKED_BOOL = 7


class WrapMode(IntEnum):
    CLAMP = 0
    REPEAT = 1
    MIRROR = 2


# (first bit, bit count) of each field in the curve flag word
_FRAME_TYPE = (0, 2)
_KEY_TYPE = (2, 2)
_CURVE_TYPE = (4, 3)
_PRE_WRAP = (8, 2)
_POST_WRAP = (12, 2)

_FRAME_FORMATS = {
    AnimCurveFrameType.SINGLE: "f",
    AnimCurveFrameType.DECIMAL10X5: "h",
    AnimCurveFrameType.BYTE: "B",
}

_KEY_FORMATS = {
    AnimCurveKeyType.SINGLE: "f",
    AnimCurveKeyType.INT16: "h",
    AnimCurveKeyType.SBYTE: "b",
}


def elements_per_key(curve_type: AnimCurveType) -> int:
    if curve_type is AnimCurveType.CUBIC:
        return 4
    if curve_type is AnimCurveType.LINEAR:
        return 2
    return 1


@dataclass(eq=False)
class AnimCurve(ResData):
    """One animated track.

    ``keys`` holds one list per frame: 4 coefficients for cubic curves, 2
    for linear ones, a single value otherwise.  Step-bool curves store
    ``bool`` keys packed 32 to a word.
    """

    flags: int = 0
    anim_data_offset: int = 0
    start_frame: float = 0.0
    end_frame: float = 0.0
    scale: float = 1.0
    offset: float = 0.0
    delta: float = 0.0
    frames: List[float] = field(default_factory=list)
    keys: List[list] = field(default_factory=list)

    # ---- flag fields -------------------------------------------------------

    def _get(self, enum_type, position):
        return enum_type(bits.decode(self.flags, *position))

    def _set(self, value, position) -> None:
        self.flags = bits.encode(self.flags, int(value), *position, width=16)

    @property
    def frame_type(self) -> AnimCurveFrameType:
        return self._get(AnimCurveFrameType, _FRAME_TYPE)

    @frame_type.setter
    def frame_type(self, value: AnimCurveFrameType) -> None:
        self._set(value, _FRAME_TYPE)

    @property
    def key_type(self) -> AnimCurveKeyType:
        return self._get(AnimCurveKeyType, _KEY_TYPE)

    @key_type.setter
    def key_type(self, value: AnimCurveKeyType) -> None:
        self._set(value, _KEY_TYPE)

    @property
    def curve_type(self) -> AnimCurveType:
        return self._get(AnimCurveType, _CURVE_TYPE)

    @curve_type.setter
    def curve_type(self, value: AnimCurveType) -> None:
        self._set(value, _CURVE_TYPE)

    @property
    def pre_wrap(self) -> WrapMode:
        return self._get(WrapMode, _PRE_WRAP)

    @pre_wrap.setter
    def pre_wrap(self, value: WrapMode) -> None:
        self._set(value, _PRE_WRAP)

    @property
    def post_wrap(self) -> WrapMode:
        return self._get(WrapMode, _POST_WRAP)

    @post_wrap.setter
    def post_wrap(self, value: WrapMode) -> None:
        self._set(value, _POST_WRAP)

    @property
    def is_step_bool(self) -> bool:
        return self.curve_type is AnimCurveType.STEP_BOOL

    def _key_format(self) -> str:
        if self.key_type is AnimCurveKeyType.SINGLE and self.curve_type in (
                AnimCurveType.STEP_INT, AnimCurveType.STEP_BOOL):
            return "I"
        return _KEY_FORMATS[self.key_type]

    @staticmethod
    def _has_delta(io) -> bool:
        return io.platform.is_switch or io.res_file.version >= DELTA_VERSION

    # ---- load / save -------------------------------------------------------

    def load(self, loader) -> None:
        frames_offset = loader.read_offset()
        keys_offset = loader.read_offset()
        self.flags = loader.u16()
        for enum_type, position in ((AnimCurveFrameType, _FRAME_TYPE), (AnimCurveKeyType, _KEY_TYPE),
                                    (AnimCurveType, _CURVE_TYPE), (WrapMode, _PRE_WRAP),
                                    (WrapMode, _POST_WRAP)):
            loader.read_enum(enum_type, bits.decode(self.flags, *position))
        count = loader.u16()
        self.anim_data_offset = loader.u32()
        self.start_frame = loader.f32()
        self.end_frame = loader.f32()
        self.scale = loader.f32()
        self.offset = loader.f32()
        if self._has_delta(loader):
            self.delta = loader.f32()
        loader.align_struct()

        self.frames = loader.load_custom(lambda: self._read_frames(loader, count), frames_offset) or []
        self.keys = loader.load_custom(lambda: self._read_keys(loader, count), keys_offset) or []

    def _read_frames(self, loader, count: int) -> List[float]:
        raw = loader.array(_FRAME_FORMATS[self.frame_type], count)
        if self.frame_type is AnimCurveFrameType.DECIMAL10X5:
            return [float(Decimal10x5(v)) for v in raw]
        return [float(v) for v in raw]

    def _read_keys(self, loader, count: int) -> List[list]:
        if self.is_step_bool:
            words = loader.array("I", math.ceil(count / 32))
            return [[bits.get_bit(words[i // 32], i % 32)] for i in range(count)]
        per_key = elements_per_key(self.curve_type)
        flat = loader.array(self._key_format(), count * per_key)
        return [flat[i:i + per_key] for i in range(0, len(flat), per_key)]

    def save(self, saver) -> None:
        if self.keys and len(self.keys) != len(self.frames):
            raise BfresWriteError(f"Curve has {len(self.frames)} frames but {len(self.keys)} keys")
        saver.save_custom(self.frames or None, lambda: self._write_frames(saver))
        saver.save_custom(self.keys or None, lambda: self._write_keys(saver))
        saver.write_u16(self.flags)
        saver.write_u16(len(self.frames))
        saver.write_u32(self.anim_data_offset)
        saver.write_f32(self.start_frame)
        saver.write_f32(self.end_frame)
        saver.write_f32(self.scale)
        saver.write_f32(self.offset)
        if self._has_delta(saver):
            saver.write_f32(self.delta)
        saver.align_struct()

    def _write_frames(self, saver) -> None:
        if self.frame_type is AnimCurveFrameType.DECIMAL10X5:
            values = [Decimal10x5.from_float(f).raw for f in self.frames]
        elif self.frame_type is AnimCurveFrameType.BYTE:
            values = [int(f) for f in self.frames]
        else:
            values = self.frames
        saver.write_array(_FRAME_FORMATS[self.frame_type], values)

    def _write_keys(self, saver) -> None:
        if self.is_step_bool:
            words = [0] * math.ceil(len(self.keys) / 32)
            for i, key in enumerate(self.keys):
                words[i // 32] = bits.set_bit(words[i // 32], i % 32, bool(key[0]))
            saver.write_array("I", words)
            return
        per_key = elements_per_key(self.curve_type)
        fmt = self._key_format()
        flat = []
        for key in self.keys:
            if len(key) != per_key:
                raise BfresWriteError(f"{self.curve_type.name} keys need {per_key} elements, got {len(key)}")
            flat.extend(key if fmt == "f" else (int(k) for k in key))
        saver.write_array(fmt, flat)


@dataclass(eq=False)
class BoneAnim(ResData):
    name: str = ""
    flags: int = 0
    begin_rotate: int = 0
    begin_translate: int = 0
    begin_curve: int = 0
    base_values: List[float] = field(default_factory=list)
    curves: List[AnimCurve] = field(default_factory=list)

    def load(self, loader) -> None:
        self.name = loader.load_string()
        curves_offset = loader.read_offset()
        base_offset = loader.read_offset()
        self.flags = loader.u32()
        curve_count = loader.u8()
        base_count = loader.u8()
        self.begin_rotate = loader.u8()
        self.begin_translate = loader.u8()
        self.begin_curve = loader.u16()
        loader.skip(2)
        loader.align_struct()
        self.curves = loader.load_list(AnimCurve, curve_count, curves_offset)
        self.base_values = loader.load_custom(lambda: loader.array("f", base_count), base_offset) or []

    def save(self, saver) -> None:
        saver.save_string(self.name)
        saver.save_list(self.curves)
        saver.save_custom(self.base_values or None, lambda: saver.write_array("f", self.base_values))
        saver.write_u32(self.flags)
        saver.write_u8(len(self.curves))
        saver.write_u8(len(self.base_values))
        saver.write_u8(self.begin_rotate)
        saver.write_u8(self.begin_translate)
        saver.write_u16(self.begin_curve)
        saver.pad(2)
        saver.align_struct()


@dataclass(eq=False)
class SkeletalAnim(ResData):
    name: str = ""
    path: str = ""
    flags: int = 0
    frame_count: int = 0
    baked_size: int = 0
    bone_anims: List[BoneAnim] = field(default_factory=list)
    bind_indices: List[int] = field(default_factory=list)
    user_data: ResDict = field(default_factory=ResDict)

    def load(self, loader) -> None:
        loader.read_block_signature("FSKA")
        self.name = loader.load_string()
        self.path = loader.load_string()
        bone_anims_offset = loader.read_offset()
        bind_offset = loader.read_offset()
        self.user_data = loader.load_res_dict(UserData)
        self.flags = loader.u32()
        self.frame_count = loader.s32()
        self.baked_size = loader.u32()
        count = loader.u16()
        loader.u16()  # user data count
        loader.align_struct()
        self.bone_anims = loader.load_list(BoneAnim, count, bone_anims_offset)
        self.bind_indices = loader.load_custom(lambda: loader.array("H", count), bind_offset) or []

    def save(self, saver) -> None:
        begin = 0
        for bone_anim in self.bone_anims:
            bone_anim.begin_curve = begin
            begin += len(bone_anim.curves)
        if self.bind_indices and len(self.bind_indices) != len(self.bone_anims):
            raise BfresWriteError(f"Animation {self.name} has {len(self.bone_anims)} bone animations "
                                  f"but {len(self.bind_indices)} bind indices")
        saver.write_block_signature("FSKA")
        saver.save_string(self.name)
        saver.save_string(self.path)
        saver.save_list(self.bone_anims)
        saver.save_custom(self.bind_indices or None, lambda: saver.write_array("H", self.bind_indices))
        saver.save_res_dict(self.user_data)
        saver.write_u32(self.flags)
        saver.write_s32(self.frame_count)
        saver.write_u32(self.baked_size)
        saver.write_u16(len(self.bone_anims))
        saver.write_u16(len(self.user_data))
        saver.align_struct()
