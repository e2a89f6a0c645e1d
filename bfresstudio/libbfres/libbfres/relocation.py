"""libbfres.relocation

Switch relocation table (``_RLT``).

A Switch BFRES is memory-mapped by the console and every absolute pointer
inside it is rebased in place.  The table tells the runtime where those
pointers are, grouped into five sections by the memory region the pointers
lead into:

  0  file        header structs and the string pool
  1  index       index buffer data
  2  vertex      vertex buffer data
  3  memory pool runtime-filled pool trailer
  4  external    embedded external files

Each entry covers ``struct_count`` repetitions of ``offset_count``
consecutive pointers followed by ``padding_count`` words that are left
alone.  The saver reports every pointer it satisfies through
``add_pointer``; ``build`` turns those into sections and entries once
every region position is final.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import RelocationError

MAX_OFFSET_COUNT = 255
MAX_STRUCT_COUNT = 0xFFFF
MAX_PADDING_COUNT = 255


class Section(IntEnum):
    FILE = 0
    INDEX_BUFFER = 1
    VERTEX_BUFFER = 2
    MEMORY_POOL = 3
    EXTERNAL_FILE = 4


@dataclass
class RelocationEntry:
    position: int
    offset_count: int
    struct_count: int
    padding_count: int
    section: Section = Section.FILE

    def pointer_positions(self, pointer_size: int = 8) -> List[int]:
        stride = (self.offset_count + self.padding_count) * pointer_size
        return [
            self.position + s * stride + o * pointer_size
            for s in range(self.struct_count)
            for o in range(self.offset_count)
        ]


@dataclass
class RelocationSection:
    position: int
    size: int
    entry_index: int = 0
    entries: List[RelocationEntry] = field(default_factory=list)


# Region bounds as (start, size); size 0 marks an unused region.
Regions = Dict[Section, Tuple[int, int]]


def split_entry(position: int, offset_count: int, struct_count: int, padding_count: int,
                section: Section, pointer_size: int = 8) -> List[RelocationEntry]:
    """Describe a run of pointers, chaining entries every 255 offsets."""
    if struct_count <= 0:
        raise RelocationError(f"Relocation entry at 0x{position:X} must cover at least one struct, got {struct_count}")
    entries = []
    while offset_count > MAX_OFFSET_COUNT:
        entries.append(RelocationEntry(position, MAX_OFFSET_COUNT, struct_count, padding_count, section))
        position += MAX_OFFSET_COUNT * pointer_size
        offset_count -= MAX_OFFSET_COUNT
    if offset_count > 0:
        entries.append(RelocationEntry(position, offset_count, struct_count, padding_count, section))
    return entries


class RelocationTable:
    def __init__(self, pointer_size: int = 8):
        self.pointer_size = pointer_size
        self.entries: List[RelocationEntry] = []
        self._pointers: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._pointers)

    def add_pointer(self, position: int, target: int) -> None:
        self._pointers[position] = target

    def add_entry(self, position: int, offset_count: int, struct_count: int = 1,
                  padding_count: int = 0, section: Section = Section.FILE) -> None:
        self.entries.extend(split_entry(position, offset_count, struct_count, padding_count,
                                        section, self.pointer_size))

    def build(self, regions: Regions) -> List[RelocationSection]:
        covered = {p for e in self.entries for p in e.pointer_positions(self.pointer_size)}
        grouped: Dict[Section, List[int]] = {s: [] for s in Section}
        for position, target in sorted(self._pointers.items()):
            if position in covered:
                continue
            grouped[classify(target, regions)].append(position)

        entries: Dict[Section, List[RelocationEntry]] = {s: [] for s in Section}
        for entry in self.entries:
            entries[entry.section].append(entry)
        for section, positions in grouped.items():
            entries[section].extend(self._fold(_runs(positions, self.pointer_size), section))

        sections = []
        entry_index = 0
        previous = 0
        for section in Section:
            start, size = regions.get(section, (0, 0))
            if size == 0:
                start = previous
            else:
                previous = start
            found = sorted(entries[section], key=lambda e: e.position)
            sections.append(RelocationSection(start, size, entry_index, found))
            entry_index += len(found)
        return sections

    def _fold(self, runs: List[Tuple[int, int]], section: Section) -> List[RelocationEntry]:
        """Merge equally sized runs at a constant stride into struct repeats."""
        ps = self.pointer_size
        result: List[RelocationEntry] = []
        i = 0
        while i < len(runs):
            start, count = runs[i]
            struct_count = 1
            padding = 0
            if count <= MAX_OFFSET_COUNT and i + 1 < len(runs):
                next_start, next_count = runs[i + 1]
                gap = next_start - start
                padding = gap // ps - count
                if next_count == count and gap % ps == 0 and 0 < padding <= MAX_PADDING_COUNT:
                    struct_count = 2
                    while (i + struct_count < len(runs)
                           and struct_count < MAX_STRUCT_COUNT
                           and runs[i + struct_count] == (start + struct_count * gap, count)):
                        struct_count += 1
                else:
                    padding = 0
            result.extend(split_entry(start, count, struct_count, padding, section, ps))
            i += struct_count
        return result

    def write(self, writer, sections: List[RelocationSection]) -> int:
        """Emit the table at the writer position and return that position."""
        table_pos = writer.tell()
        writer.write_signature("_RLT")
        writer.write_u32(table_pos)
        writer.write_s32(len(sections))
        writer.write_u32(0)
        for section in sections:
            writer.write_u64(0)
            writer.write_u32(section.position)
            writer.write_u32(section.size)
            writer.write_s32(section.entry_index)
            writer.write_s32(len(section.entries))
        for section in sections:
            for entry in section.entries:
                writer.write_u32(entry.position)
                writer.write_u16(entry.struct_count)
                writer.write_u8(entry.offset_count)
                writer.write_u8(entry.padding_count)
        return table_pos


def classify(target: int, regions: Regions) -> Section:
    """Section of the region containing ``target``."""
    fallback: Optional[Section] = None
    for section in Section:
        start, size = regions.get(section, (0, 0))
        if size == 0:
            continue
        if start <= target < start + size:
            return section
        if start <= target:
            fallback = section
    return fallback if fallback is not None else Section.FILE


def _runs(positions: Iterable[int], pointer_size: int) -> List[Tuple[int, int]]:
    runs: List[Tuple[int, int]] = []
    for position in positions:
        if runs and runs[-1][0] + runs[-1][1] * pointer_size == position:
            runs[-1] = (runs[-1][0], runs[-1][1] + 1)
        else:
            runs.append((position, 1))
    return runs


def read_relocation_table(reader, offset: int) -> List[RelocationSection]:
    """Parse a table written by ``RelocationTable.write``."""
    sections = []
    with reader.temporary_seek(offset):
        reader.check_signature("_RLT")
        reader.u32()
        count = reader.s32()
        reader.u32()
        counts = []
        for _ in range(count):
            reader.u64()
            position = reader.u32()
            size = reader.u32()
            entry_index = reader.s32()
            counts.append(reader.s32())
            sections.append(RelocationSection(position, size, entry_index))
        for index, (section, entry_count) in enumerate(zip(sections, counts)):
            for _ in range(entry_count):
                position = reader.u32()
                struct_count = reader.u16()
                offset_count = reader.u8()
                padding_count = reader.u8()
                section.entries.append(RelocationEntry(position, offset_count, struct_count, padding_count, Section(index)))
    return sections
