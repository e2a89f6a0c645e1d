"""libbfres.model

FMDL sections: skeleton, vertex buffers, shapes with their meshes, and
materials.

Shapes do not own their vertex buffer.  ``Shape.vertex_buffer`` is the
same object found in ``Model.vertex_buffers``; the loader hands out one
instance per file position and the saver writes one struct per instance,
so the sharing survives a load/save cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple

from .material import Material
from .relocation import Section
from .resdata import ResData
from .resdict import ResDict
from .userdata import UserData

_LOGGER = logging.getLogger(__name__)


class PrimitiveType(IntEnum):
    POINTS = 0
    LINES = 1
    LINE_STRIP = 2
    TRIANGLES = 3
    TRIANGLE_STRIP = 4


class IndexFormat(IntEnum):
    UINT8 = 0
    UINT16 = 1
    UINT32 = 2


class GX2AttribFormat(IntEnum):
    """Vertex attribute storage.  The low byte picks the component layout,
    0x100 and 0x300 mark unsigned and signed integers, 0x200 signed
    normalized, 0x800 and 0xA00 integers or floats read as floats."""

    FORMAT_8_UNORM = 0x000
    FORMAT_8_UINT = 0x100
    FORMAT_8_SNORM = 0x200
    FORMAT_8_SINT = 0x300
    FORMAT_8_UINT_TO_SINGLE = 0x800
    FORMAT_8_SINT_TO_SINGLE = 0xA00
    FORMAT_4_4_UNORM = 0x001
    FORMAT_16_UNORM = 0x002
    FORMAT_16_UINT = 0x102
    FORMAT_16_SNORM = 0x202
    FORMAT_16_SINT = 0x302
    FORMAT_16_SINGLE = 0x803
    FORMAT_16_UINT_TO_SINGLE = 0x802
    FORMAT_16_SINT_TO_SINGLE = 0xA02
    FORMAT_8_8_UNORM = 0x004
    FORMAT_8_8_UINT = 0x104
    FORMAT_8_8_SNORM = 0x204
    FORMAT_8_8_SINT = 0x304
    FORMAT_8_8_UINT_TO_SINGLE = 0x804
    FORMAT_8_8_SINT_TO_SINGLE = 0xA04
    FORMAT_32_UINT = 0x105
    FORMAT_32_SINT = 0x305
    FORMAT_32_SINGLE = 0x806
    FORMAT_16_16_UNORM = 0x007
    FORMAT_16_16_UINT = 0x107
    FORMAT_16_16_SNORM = 0x207
    FORMAT_16_16_SINT = 0x307
    FORMAT_16_16_SINGLE = 0x808
    FORMAT_16_16_UINT_TO_SINGLE = 0x807
    FORMAT_16_16_SINT_TO_SINGLE = 0xA07
    FORMAT_10_11_11_SINGLE = 0x809
    FORMAT_8_8_8_8_UNORM = 0x00A
    FORMAT_8_8_8_8_UINT = 0x10A
    FORMAT_8_8_8_8_SNORM = 0x20A
    FORMAT_8_8_8_8_SINT = 0x30A
    FORMAT_8_8_8_8_UINT_TO_SINGLE = 0x80A
    FORMAT_8_8_8_8_SINT_TO_SINGLE = 0xA0A
    FORMAT_10_10_10_2_UNORM = 0x00B
    FORMAT_10_10_10_2_UINT = 0x10B
    FORMAT_10_10_10_2_SNORM = 0x20B
    FORMAT_10_10_10_2_SINT = 0x30B
    FORMAT_32_32_UINT = 0x10C
    FORMAT_32_32_SINT = 0x30C
    FORMAT_32_32_SINGLE = 0x80D
    FORMAT_16_16_16_16_UNORM = 0x00E
    FORMAT_16_16_16_16_UINT = 0x10E
    FORMAT_16_16_16_16_SNORM = 0x20E
    FORMAT_16_16_16_16_SINT = 0x30E
    FORMAT_16_16_16_16_SINGLE = 0x80F
    FORMAT_16_16_16_16_UINT_TO_SINGLE = 0x80E
    FORMAT_16_16_16_16_SINT_TO_SINGLE = 0xA0E
    FORMAT_32_32_32_UINT = 0x110
    FORMAT_32_32_32_SINT = 0x310
    FORMAT_32_32_32_SINGLE = 0x811
    FORMAT_32_32_32_32_UINT = 0x112
    FORMAT_32_32_32_32_SINT = 0x312
    FORMAT_32_32_32_32_SINGLE = 0x813


# ---- skeleton ---------------------------------------------------------------


@dataclass(eq=False)
class Bone(ResData):
    name: str = ""
    index: int = 0
    parent_index: int = -1
    smooth_matrix_index: int = -1
    rigid_matrix_index: int = -1
    billboard_index: int = 0xFFFF
    flags: int = 0
    scale: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    rotation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    user_data: ResDict = field(default_factory=ResDict)

    def load(self, loader) -> None:
        self.name = loader.load_string()
        self.user_data = loader.load_res_dict(UserData)
        self.index = loader.u16()
        self.parent_index = loader.s16()
        self.smooth_matrix_index = loader.s16()
        self.rigid_matrix_index = loader.s16()
        self.billboard_index = loader.u16()
        loader.u16()  # user data count
        self.flags = loader.u32()
        self.scale = tuple(loader.array("f", 3))
        self.rotation = tuple(loader.array("f", 4))
        self.position = tuple(loader.array("f", 3))
        loader.align_struct()

    def save(self, saver) -> None:
        saver.save_string(self.name)
        saver.save_res_dict(self.user_data)
        saver.write_u16(self.index)
        saver.write_s16(self.parent_index)
        saver.write_s16(self.smooth_matrix_index)
        saver.write_s16(self.rigid_matrix_index)
        saver.write_u16(self.billboard_index)
        saver.write_u16(len(self.user_data))
        saver.write_u32(self.flags)
        saver.write_array("f", self.scale)
        saver.write_array("f", self.rotation)
        saver.write_array("f", self.position)
        saver.align_struct()


@dataclass(eq=False)
class Skeleton(ResData):
    """Bone hierarchy.  ``matrix_to_bone_list`` lists the smooth-skinning
    matrices first, then the rigid ones."""

    flags: int = 0
    bones: ResDict = field(default_factory=ResDict)
    matrix_to_bone_list: List[int] = field(default_factory=list)
    smooth_matrix_count: int = 0

    @property
    def rigid_matrix_count(self) -> int:
        return len(self.matrix_to_bone_list) - self.smooth_matrix_count

    def load(self, loader) -> None:
        loader.read_block_signature("FSKL")
        self.bones = loader.load_res_dict(Bone)
        matrix_offset = loader.read_offset()
        self.flags = loader.u32()
        loader.u16()  # bone count
        self.smooth_matrix_count = loader.u16()
        rigid_count = loader.u16()
        loader.align_struct()
        count = self.smooth_matrix_count + rigid_count
        self.matrix_to_bone_list = loader.load_custom(lambda: loader.array("H", count), matrix_offset) or []

    def save(self, saver) -> None:
        for i, bone in enumerate(self.bones.values()):
            bone.index = i
        saver.write_block_signature("FSKL")
        saver.save_res_dict(self.bones)
        saver.save_custom(self.matrix_to_bone_list or None,
                          lambda: saver.write_array("H", self.matrix_to_bone_list))
        saver.write_u32(self.flags)
        saver.write_u16(len(self.bones))
        saver.write_u16(self.smooth_matrix_count)
        saver.write_u16(self.rigid_matrix_count)
        saver.align_struct()


# ---- vertex data ------------------------------------------------------------


@dataclass(eq=False)
class VertexAttrib(ResData):
    name: str = ""
    format: GX2AttribFormat = GX2AttribFormat.FORMAT_32_32_32_32_SINGLE
    offset: int = 0
    buffer_index: int = 0

    def load(self, loader) -> None:
        self.name = loader.load_string()
        self.format = loader.read_enum(GX2AttribFormat, loader.u32())
        self.offset = loader.u16()
        self.buffer_index = loader.u8()
        loader.skip(1)
        loader.align_struct()

    def save(self, saver) -> None:
        saver.save_string(self.name)
        saver.write_u32(self.format)
        saver.write_u16(self.offset)
        saver.write_u8(self.buffer_index)
        saver.pad(1)
        saver.align_struct()


@dataclass(eq=False)
class Buffer(ResData):
    stride: int = 0
    data: bytes = b""

    def load(self, loader) -> None:
        data_offset = loader.read_offset()
        self.stride = loader.u32()
        size = loader.u32()
        loader.align_struct()
        self.data = loader.load_block(size, data_offset)

    def save(self, saver) -> None:
        saver.save_block(self.data, saver.platform.buffer_alignment, Section.VERTEX_BUFFER)
        saver.write_u32(self.stride)
        saver.write_u32(len(self.data))
        saver.align_struct()


@dataclass(eq=False)
class VertexBuffer(ResData):
    index: int = 0
    vertex_count: int = 0
    vertex_skin_count: int = 0
    attributes: ResDict = field(default_factory=ResDict)
    buffers: List[Buffer] = field(default_factory=list)

    def load(self, loader) -> None:
        loader.read_block_signature("FVTX")
        self.attributes = loader.load_res_dict(VertexAttrib)
        buffers_offset = loader.read_offset()
        if loader.platform.is_switch:
            loader.read_offset()  # memory pool
        self.vertex_count = loader.u32()
        loader.u8()  # attribute count
        buffer_count = loader.u8()
        self.vertex_skin_count = loader.u8()
        loader.skip(1)
        self.index = loader.u16()
        loader.skip(2)
        loader.align_struct()
        self.buffers = loader.load_list(Buffer, buffer_count, buffers_offset)

    def save(self, saver) -> None:
        saver.write_block_signature("FVTX")
        saver.save_res_dict(self.attributes)
        saver.save_list(self.buffers)
        if saver.platform.is_switch:
            saver.save_memory_pool()
        saver.write_u32(self.vertex_count)
        saver.write_u8(len(self.attributes))
        saver.write_u8(len(self.buffers))
        saver.write_u8(self.vertex_skin_count)
        saver.pad(1)
        saver.write_u16(self.index)
        saver.pad(2)
        saver.align_struct()


# ---- shapes -----------------------------------------------------------------


@dataclass(eq=False)
class Mesh(ResData):
    primitive_type: PrimitiveType = PrimitiveType.TRIANGLES
    index_format: IndexFormat = IndexFormat.UINT16
    index_count: int = 0
    first_vertex: int = 0
    data: bytes = b""

    def load(self, loader) -> None:
        if loader.platform.is_switch:
            loader.read_offset()  # memory pool
        data_offset = loader.read_offset()
        self.primitive_type = loader.read_enum(PrimitiveType, loader.u32())
        self.index_format = loader.read_enum(IndexFormat, loader.u32())
        self.index_count = loader.u32()
        self.first_vertex = loader.u32()
        size = loader.u32()
        loader.align_struct()
        self.data = loader.load_block(size, data_offset)

    def save(self, saver) -> None:
        if saver.platform.is_switch:
            saver.save_memory_pool()
        saver.save_block(self.data, saver.platform.buffer_alignment, Section.INDEX_BUFFER)
        saver.write_u32(self.primitive_type)
        saver.write_u32(self.index_format)
        saver.write_u32(self.index_count)
        saver.write_u32(self.first_vertex)
        saver.write_u32(len(self.data))
        saver.align_struct()


@dataclass(eq=False)
class Shape(ResData):
    name: str = ""
    flags: int = 0
    index: int = 0
    material_index: int = 0
    bone_index: int = 0
    vertex_buffer_index: int = 0
    vertex_skin_count: int = 0
    vertex_buffer: Optional[VertexBuffer] = None
    meshes: List[Mesh] = field(default_factory=list)
    skin_bone_indices: List[int] = field(default_factory=list)

    def load(self, loader) -> None:
        loader.read_block_signature("FSHP")
        self.name = loader.load_string()
        self.vertex_buffer = loader.load(VertexBuffer)
        meshes_offset = loader.read_offset()
        skin_offset = loader.read_offset()
        self.flags = loader.u32()
        self.index = loader.u16()
        self.material_index = loader.u16()
        self.bone_index = loader.u16()
        self.vertex_buffer_index = loader.u16()
        skin_count = loader.u16()
        self.vertex_skin_count = loader.u8()
        mesh_count = loader.u8()
        loader.align_struct()
        self.meshes = loader.load_list(Mesh, mesh_count, meshes_offset)
        self.skin_bone_indices = loader.load_custom(lambda: loader.array("H", skin_count), skin_offset) or []

    def save(self, saver) -> None:
        saver.write_block_signature("FSHP")
        saver.save_string(self.name)
        saver.save(self.vertex_buffer)
        saver.save_list(self.meshes)
        saver.save_custom(self.skin_bone_indices or None,
                          lambda: saver.write_array("H", self.skin_bone_indices))
        saver.write_u32(self.flags)
        saver.write_u16(self.index)
        saver.write_u16(self.material_index)
        saver.write_u16(self.bone_index)
        saver.write_u16(self.vertex_buffer_index)
        saver.write_u16(len(self.skin_bone_indices))
        saver.write_u8(self.vertex_skin_count)
        saver.write_u8(len(self.meshes))
        saver.align_struct()


# ---- model ------------------------------------------------------------------


@dataclass(eq=False)
class Model(ResData):
    name: str = ""
    path: str = ""
    skeleton: Optional[Skeleton] = None
    vertex_buffers: List[VertexBuffer] = field(default_factory=list)
    shapes: ResDict = field(default_factory=ResDict)
    materials: ResDict = field(default_factory=ResDict)
    user_data: ResDict = field(default_factory=ResDict)

    @property
    def total_vertex_count(self) -> int:
        return sum(vb.vertex_count for vb in self.vertex_buffers)

    def load(self, loader) -> None:
        loader.read_block_signature("FMDL")
        self.name = loader.load_string()
        self.path = loader.load_string()
        self.skeleton = loader.load(Skeleton)
        buffers_offset = loader.read_offset()
        self.shapes = loader.load_res_dict(Shape)
        self.materials = loader.load_res_dict(Material)
        self.user_data = loader.load_res_dict(UserData)
        buffer_count = loader.u16()
        loader.u16()  # shape count
        loader.u16()  # material count
        loader.u16()  # user data count
        loader.u32()  # total vertex count
        loader.align_struct()
        self.vertex_buffers = loader.load_list(VertexBuffer, buffer_count, buffers_offset)
        _LOGGER.debug("Model %s: %d shapes, %d materials", self.name, len(self.shapes), len(self.materials))

    def refresh_indices(self) -> None:
        """Rewrite the positional index fields from the current collections."""
        for i, vertex_buffer in enumerate(self.vertex_buffers):
            vertex_buffer.index = i
        for i, material in enumerate(self.materials.values()):
            material.index = i
        for i, shape in enumerate(self.shapes.values()):
            shape.index = i
            for j, vertex_buffer in enumerate(self.vertex_buffers):
                if vertex_buffer is shape.vertex_buffer:
                    shape.vertex_buffer_index = j
                    break

    def save(self, saver) -> None:
        self.refresh_indices()
        saver.write_block_signature("FMDL")
        saver.save_string(self.name)
        saver.save_string(self.path)
        saver.save(self.skeleton)
        saver.save_list(self.vertex_buffers)
        saver.save_res_dict(self.shapes)
        saver.save_res_dict(self.materials)
        saver.save_res_dict(self.user_data)
        saver.write_u16(len(self.vertex_buffers))
        saver.write_u16(len(self.shapes))
        saver.write_u16(len(self.materials))
        saver.write_u16(len(self.user_data))
        saver.write_u32(self.total_vertex_count)
        saver.align_struct()
