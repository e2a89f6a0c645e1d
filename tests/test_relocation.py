"""Tests for the Switch relocation table builder."""
import pytest

from libbfres.errors import RelocationError
from libbfres.relocation import (
    RelocationEntry,
    RelocationTable,
    Section,
    classify,
    read_relocation_table,
    split_entry,
)
from libbfres.stream import SWITCH, BinaryReader, BinaryWriter


def test_split_at_255_offsets():
    table = RelocationTable(8)
    table.add_entry(0x100, 300)
    first, second = table.entries
    assert (first.position, first.offset_count) == (0x100, 255)
    assert (second.position, second.offset_count) == (0x100 + 255 * 8, 45)


def test_split_exact_multiple():
    entries = split_entry(0, 510, 1, 0, Section.FILE)
    assert [e.offset_count for e in entries] == [255, 255]


@pytest.mark.parametrize('struct_count', [0, -1])
def test_rejects_empty_struct_count(struct_count):
    with pytest.raises(RelocationError):
        RelocationTable().add_entry(0, 1, struct_count)


def test_pointer_positions_with_padding():
    entry = RelocationEntry(0x40, offset_count=2, struct_count=3, padding_count=1)
    assert entry.pointer_positions(8) == [0x40, 0x48, 0x58, 0x60, 0x70, 0x78]


def test_consecutive_pointers_form_one_run():
    table = RelocationTable(8)
    for pos in (0x10, 0x18, 0x20, 0x40):
        table.add_pointer(pos, 0x80)
    sections = table.build({Section.FILE: (0, 0x100)})
    entries = sections[Section.FILE].entries
    assert [(e.position, e.offset_count) for e in entries] == [(0x10, 3), (0x40, 1)]


def test_equal_runs_fold_into_structs():
    table = RelocationTable(8)
    for base in (0x00, 0x20, 0x40):
        table.add_pointer(base, 0x80)
        table.add_pointer(base + 8, 0x80)
    sections = table.build({Section.FILE: (0, 0x100)})
    (entry,) = sections[Section.FILE].entries
    assert (entry.offset_count, entry.struct_count, entry.padding_count) == (2, 3, 2)
    assert entry.pointer_positions(8) == [0x00, 0x08, 0x20, 0x28, 0x40, 0x48]


def test_pointers_grouped_by_target_region():
    regions = {
        Section.FILE: (0, 0x100),
        Section.INDEX_BUFFER: (0x100, 0x20),
        Section.VERTEX_BUFFER: (0x120, 0x40),
    }
    table = RelocationTable(8)
    table.add_pointer(0x00, 0x50)
    table.add_pointer(0x08, 0x110)
    table.add_pointer(0x10, 0x130)
    sections = table.build(regions)
    assert [len(s.entries) for s in sections] == [1, 1, 1, 0, 0]
    assert sections[Section.VERTEX_BUFFER].entries[0].section is Section.VERTEX_BUFFER
    assert [s.entry_index for s in sections] == [0, 1, 2, 3, 3]


def test_unused_regions_take_prior_position():
    regions = {Section.FILE: (0, 0x100), Section.VERTEX_BUFFER: (0x200, 0x40)}
    sections = RelocationTable(8).build(regions)
    assert [(s.position, s.size) for s in sections] == [
        (0, 0x100), (0, 0), (0x200, 0x40), (0x200, 0), (0x200, 0)]


def test_explicit_entries_are_not_duplicated():
    table = RelocationTable(8)
    table.add_entry(0x00, 2)
    table.add_pointer(0x00, 0x80)
    table.add_pointer(0x08, 0x80)
    table.add_pointer(0x30, 0x80)
    entries = table.build({Section.FILE: (0, 0x100)})[Section.FILE].entries
    assert [(e.position, e.offset_count) for e in entries] == [(0x00, 2), (0x30, 1)]


def test_classify_falls_back_to_preceding_region():
    regions = {Section.FILE: (0, 0x100), Section.EXTERNAL_FILE: (0x400, 0x10)}
    assert classify(0x50, regions) is Section.FILE
    assert classify(0x404, regions) is Section.EXTERNAL_FILE
    assert classify(0x200, regions) is Section.FILE


def test_write_then_read():
    table = RelocationTable(8)
    for pos in range(0, 0x30, 8):
        table.add_pointer(pos, 0x60)
    sections = table.build({Section.FILE: (0, 0x80)})
    writer = BinaryWriter(SWITCH)
    writer.pad(0x80)
    table_pos = table.write(writer, sections)
    data = writer.getvalue()
    assert data[table_pos:table_pos + 4] == b'_RLT'
    assert len(data) == table_pos + 0x10 + 5 * 0x18 + 8

    parsed = read_relocation_table(BinaryReader(data, SWITCH), table_pos)
    assert parsed == sections
