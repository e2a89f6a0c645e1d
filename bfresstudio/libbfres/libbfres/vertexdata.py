"""libbfres.vertexdata

Per-vertex access to the interleaved bytes of a ``VertexBuffer``.

``unpack_attrib`` decodes one attribute into a list of tuples, one per
vertex, and ``pack_attrib`` writes such a list back into the owning
``Buffer``.  Normalized formats come out as floats in [0, 1] or [-1, 1].
The ``*_TO_SINGLE`` formats come out as floats holding the stored integer
and the plain integer formats as ints.  Buffer bytes use the platform's
byte order.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from . import bits
from .errors import BfresWriteError, UnsupportedFormatError
from .model import Buffer, GX2AttribFormat, VertexAttrib, VertexBuffer
from .stream import Platform

UNORM = "unorm"
SNORM = "snorm"
INT = "int"
TO_SINGLE = "to_single"
SINGLE = "single"

# (bit width, signed) of the integer struct codes
_WIDTHS = {
    "B": (8, False), "b": (8, True),
    "H": (16, False), "h": (16, True),
    "I": (32, False), "i": (32, True),
}


@dataclass(frozen=True)
class AttribLayout:
    codes: str
    kind: str
    # bit fields of a packed word, low bits first
    fields: Tuple[Tuple[int, bool], ...] = ()

    @property
    def size(self) -> int:
        return struct.calcsize("=" + self.codes)

    @property
    def components(self) -> Tuple[Optional[Tuple[int, bool]], ...]:
        return self.fields or tuple(_WIDTHS.get(code) for code in self.codes)


_LAYOUTS = {}

for _prefix, _count, _unsigned, _signed in (
        ("8", 1, "B", "b"), ("8_8", 2, "B", "b"), ("8_8_8_8", 4, "B", "b"),
        ("16", 1, "H", "h"), ("16_16", 2, "H", "h"), ("16_16_16_16", 4, "H", "h")):
    for _suffix, _code, _kind in (
            ("UNORM", _unsigned, UNORM), ("UINT", _unsigned, INT),
            ("SNORM", _signed, SNORM), ("SINT", _signed, INT),
            ("UINT_TO_SINGLE", _unsigned, TO_SINGLE), ("SINT_TO_SINGLE", _signed, TO_SINGLE)):
        _LAYOUTS[GX2AttribFormat[f"FORMAT_{_prefix}_{_suffix}"]] = AttribLayout(_code * _count, _kind)

for _prefix, _count in (("32", 1), ("32_32", 2), ("32_32_32", 3), ("32_32_32_32", 4)):
    _LAYOUTS[GX2AttribFormat[f"FORMAT_{_prefix}_UINT"]] = AttribLayout("I" * _count, INT)
    _LAYOUTS[GX2AttribFormat[f"FORMAT_{_prefix}_SINT"]] = AttribLayout("i" * _count, INT)
    _LAYOUTS[GX2AttribFormat[f"FORMAT_{_prefix}_SINGLE"]] = AttribLayout("f" * _count, SINGLE)

for _prefix, _count in (("16", 1), ("16_16", 2), ("16_16_16_16", 4)):
    _LAYOUTS[GX2AttribFormat[f"FORMAT_{_prefix}_SINGLE"]] = AttribLayout("e" * _count, SINGLE)

_LAYOUTS[GX2AttribFormat.FORMAT_4_4_UNORM] = AttribLayout("B", UNORM, ((4, False), (4, False)))
_LAYOUTS[GX2AttribFormat.FORMAT_10_10_10_2_UNORM] = AttribLayout(
    "I", UNORM, ((10, False), (10, False), (10, False), (2, False)))
_LAYOUTS[GX2AttribFormat.FORMAT_10_10_10_2_UINT] = AttribLayout(
    "I", INT, ((10, False), (10, False), (10, False), (2, False)))
# the top two bits stay unsigned
_LAYOUTS[GX2AttribFormat.FORMAT_10_10_10_2_SNORM] = AttribLayout(
    "I", SNORM, ((10, True), (10, True), (10, True), (2, False)))
_LAYOUTS[GX2AttribFormat.FORMAT_10_10_10_2_SINT] = AttribLayout(
    "I", INT, ((10, True), (10, True), (10, True), (2, True)))


def layout_for(attrib_format: GX2AttribFormat) -> AttribLayout:
    try:
        return _LAYOUTS[attrib_format]
    except KeyError:
        raise UnsupportedFormatError(attrib_format) from None


def attrib_size(attrib_format: GX2AttribFormat) -> int:
    """Bytes one vertex takes for this format."""
    return layout_for(attrib_format).size


def _limit(width: int, signed: bool) -> int:
    return (1 << (width - 1)) - 1 if signed else (1 << width) - 1


def _sign_extend(value: int, width: int) -> int:
    return value - (1 << width) if value >> (width - 1) else value


def _split(layout: AttribLayout, word: int) -> List[int]:
    values, first_bit = [], 0
    for width, signed in layout.fields:
        value = bits.decode(word, first_bit, width)
        values.append(_sign_extend(value, width) if signed else value)
        first_bit += width
    return values


def _join(layout: AttribLayout, values: Sequence[int]) -> int:
    word, first_bit = 0, 0
    for (width, _signed), value in zip(layout.fields, values):
        word = bits.encode(word, value, first_bit, width)
        first_bit += width
    return word


def _to_values(layout: AttribLayout, raw: Sequence) -> tuple:
    if layout.kind == SINGLE:
        return tuple(float(v) for v in raw)
    if layout.kind == INT:
        return tuple(raw)
    if layout.kind == TO_SINGLE:
        return tuple(float(v) for v in raw)
    out = []
    for (width, signed), value in zip(layout.components, raw):
        out.append(max(value / _limit(width, signed), -1.0))
    return tuple(out)


def _to_raw(layout: AttribLayout, values: Sequence) -> List:
    if layout.kind == SINGLE:
        return [float(v) for v in values]
    if layout.kind in (INT, TO_SINGLE):
        return [int(round(v)) for v in values]
    raw = []
    for (width, signed), value in zip(layout.components, values):
        low = -1.0 if signed else 0.0
        raw.append(int(round(min(max(value, low), 1.0) * _limit(width, signed))))
    return raw


def _buffer_for(vertex_buffer: VertexBuffer, attrib: VertexAttrib) -> Buffer:
    if attrib.buffer_index >= len(vertex_buffer.buffers):
        raise BfresWriteError(
            f"Attribute {attrib.name!r} uses buffer {attrib.buffer_index} of {len(vertex_buffer.buffers)}")
    return vertex_buffer.buffers[attrib.buffer_index]


def unpack_attrib(vertex_buffer: VertexBuffer, name: str, platform: Platform) -> List[tuple]:
    attrib = vertex_buffer.attributes[name]
    layout = layout_for(attrib.format)
    buffer = _buffer_for(vertex_buffer, attrib)
    stride = buffer.stride or layout.size
    fmt = platform.byte_order + layout.codes
    out = []
    for i in range(vertex_buffer.vertex_count):
        raw = struct.unpack_from(fmt, buffer.data, i * stride + attrib.offset)
        if layout.fields:
            raw = _split(layout, raw[0])
        out.append(_to_values(layout, raw))
    return out


def pack_attrib(vertex_buffer: VertexBuffer, name: str, values: Sequence[Sequence], platform: Platform) -> None:
    """Write ``values`` into the attribute's slot of every vertex.

    Bytes belonging to other attributes are kept.  The buffer grows with
    zeros when it is too short for ``vertex_count`` vertices.
    """
    attrib = vertex_buffer.attributes[name]
    layout = layout_for(attrib.format)
    if len(values) != vertex_buffer.vertex_count:
        raise BfresWriteError(
            f"Attribute {name!r} needs {vertex_buffer.vertex_count} values, got {len(values)}")
    buffer = _buffer_for(vertex_buffer, attrib)
    stride = buffer.stride or layout.size
    fmt = platform.byte_order + layout.codes
    data = bytearray(buffer.data)
    needed = (vertex_buffer.vertex_count - 1) * stride + attrib.offset + layout.size if values else 0
    if len(data) < needed:
        data.extend(bytes(needed - len(data)))
    for i, value in enumerate(values):
        if len(value) != len(layout.components):
            raise BfresWriteError(f"{attrib.format.name} takes {len(layout.components)} components, got {len(value)}")
        raw = _to_raw(layout, value)
        if layout.fields:
            raw = [_join(layout, raw)]
        struct.pack_into(fmt, data, i * stride + attrib.offset, *raw)
    buffer.data = bytes(data)
