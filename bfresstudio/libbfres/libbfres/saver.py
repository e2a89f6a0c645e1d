"""libbfres.saver

Backpatch/emission engine: the write half of the codec.

Saving is two-pass.  While an entity writes its own struct, everything it
points at is only *reserved*: a zero placeholder of the platform's offset
width goes into the stream and its position is remembered.  The referenced
data is queued and written later, after which every placeholder is
overwritten with the final address.

Queued work is an explicit list of ``PendingItem`` records tagged by
``PendingKind``.  Draining the queue writes items that may queue more
items, so the drain walks the list by index until it stops growing.
Items are keyed by the identity of their data object: saving the same
instance from several places emits it once and points every referrer at
that single copy.

After the queue:

1. every item placeholder is satisfied,
2. the string pool is written (deduplicated by content),
3. data blocks are written region by region (index buffers, vertex
   buffers, memory pool, external files),
4. on Switch, the relocation table is built from every satisfied pointer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .errors import BfresWriteError
from .relocation import RelocationTable, Regions, Section
from .stream import BinaryWriter, Platform, codec_for, terminator_for

_LOGGER = logging.getLogger(__name__)

MEMORY_POOL_SIZE = 0x120
RELOCATION_TABLE_ALIGNMENT = 0x100

# Anchors are positions known only after a whole phase has run.
ANCHOR_STRING_POOL = "string_pool"
ANCHOR_BUFFER = "buffer"
ANCHOR_MEMORY_POOL = "memory_pool"


class PendingKind(Enum):
    LIST = "list"
    DICT = "dict"
    RES_DATA = "res_data"
    CUSTOM = "custom"


@dataclass(eq=False)
class PendingItem:
    data: object
    kind: PendingKind
    offsets: List[int] = field(default_factory=list)
    callback: Optional[Callable[[], None]] = None
    target: Optional[int] = None
    end: Optional[int] = None


@dataclass(eq=False)
class _Block:
    data: object
    alignment: int
    region: Section
    callback: Optional[Callable[[], None]]
    offsets: List[int] = field(default_factory=list)
    target: Optional[int] = None


class _BufferInfo:
    """Marker object for the single buffer info struct of a Switch file."""


class ResFileSaver(BinaryWriter):
    def __init__(self, res_file, platform: Platform):
        super().__init__(platform)
        self.res_file = res_file
        self.relocation_table: Optional[RelocationTable] = (
            RelocationTable(platform.offset_size) if platform.relocations else None
        )
        self.regions: Regions = {}

        self._items: List[PendingItem] = []
        self._item_lookup: Dict[Tuple[int, PendingKind], PendingItem] = {}
        self._strings: Dict[Tuple[str, str], List[int]] = {}
        self._blocks: List[_Block] = []
        self._block_lookup: Dict[int, _Block] = {}
        self._anchors: Dict[str, List[int]] = {}
        self._fields: Dict[str, Tuple[int, str]] = {}
        self._file_name: Optional[Tuple[str, str]] = None
        self._buffer_info = _BufferInfo()

    # ---- top level ---------------------------------------------------------

    def execute(self) -> bytes:
        _LOGGER.debug("Saving %s as %s", self.res_file.name, self.platform.name)
        self.res_file.save(self)
        self.save_entries()
        self.write_offsets()
        self.write_strings()
        self.write_blocks()
        if self.relocation_table is not None:
            self.write_relocation_table()
        self.patch_field("file_size", len(self.buf))
        return self.getvalue()

    # ---- offsets -----------------------------------------------------------

    def save_offset(self) -> int:
        """Write a zero placeholder and return its position."""
        pos = self.pos
        self.write_null_offset()
        return pos

    def write_null_offset(self) -> None:
        self.pad(self.platform.offset_size)

    def write_offset(self, reserved: int) -> None:
        """Point the placeholder at ``reserved`` to the current position."""
        self._satisfy(reserved, self.pos)

    def _satisfy(self, position: int, target: int) -> None:
        with self.temporary_seek(position):
            if self.platform.relative_offsets:
                self.write_s32(target - position)
            else:
                self.write_u64(target)
        if self.relocation_table is not None:
            self.relocation_table.add_pointer(position, target)

    def align_struct(self) -> None:
        self.align(self.platform.alignment)

    def write_block_signature(self, tag: str) -> None:
        """Entity signature; Switch follows it with 4 reserved bytes."""
        self.write_signature(tag)
        if self.platform.is_switch:
            self.pad(4)

    def reserve_field(self, name: str, fmt: str = "I") -> None:
        """Reserve a plain (non-offset) header field patched at the end."""
        self._fields[name] = (self.pos, fmt)
        self._pack(fmt, 0)

    def patch_field(self, name: str, value: int) -> None:
        if name not in self._fields:
            return
        pos, fmt = self._fields[name]
        with self.temporary_seek(pos):
            self._pack(fmt, value)

    def save_anchor(self, anchor: str) -> None:
        """Reserve an offset to a position only known after a later phase."""
        self._anchors.setdefault(anchor, []).append(self.save_offset())

    def _resolve_anchor(self, anchor: str, target: int) -> None:
        for position in self._anchors.pop(anchor, []):
            self._satisfy(position, target)

    # ---- queued data -------------------------------------------------------

    def _lookup(self, data, kind: PendingKind) -> Optional[PendingItem]:
        return self._item_lookup.get((id(data), kind))

    def _enqueue(self, data, kind: PendingKind,
                 callback: Optional[Callable[[], None]] = None) -> PendingItem:
        item = PendingItem(data, kind, callback=callback)
        self._items.append(item)
        self._item_lookup[(id(data), kind)] = item
        return item

    def _reference(self, data, kind: PendingKind,
                   callback: Optional[Callable[[], None]] = None) -> None:
        item = self._lookup(data, kind)
        if item is None:
            item = self._enqueue(data, kind, callback)
        item.offsets.append(self.save_offset())

    def save(self, res_data) -> None:
        if res_data is None:
            self.write_null_offset()
            return
        self._reference(res_data, PendingKind.RES_DATA)

    def save_list(self, items) -> None:
        if not items:
            self.write_null_offset()
            return
        self._reference(items, PendingKind.LIST)

    def save_dict(self, res_dict) -> None:
        # Empty dictionaries are still written: a header with only the root node.
        if res_dict is None:
            self.write_null_offset()
            return
        self._reference(res_dict, PendingKind.DICT)

    def save_res_dict(self, res_dict) -> None:
        """Dictionary in the platform's layout: inline values (WiiU) or value
        array plus key dictionary (Switch)."""
        if self.platform.is_switch:
            self.save_list(res_dict.values())
        self.save_dict(res_dict)

    def save_custom(self, data, callback: Callable[[], None]) -> None:
        if data is None:
            self.write_null_offset()
            return
        self._reference(data, PendingKind.CUSTOM, callback=callback)

    def save_entries(self) -> None:
        i = 0
        while i < len(self._items):
            item = self._items[i]
            i += 1
            if item.target is not None:
                continue
            if item.kind is PendingKind.LIST:
                self._emit_list(item)
                continue
            self.align(self.platform.alignment)
            item.target = self.pos
            if item.kind is PendingKind.CUSTOM:
                item.callback()
            else:
                item.data.save(self)
            item.end = self.pos
        _LOGGER.debug("Emitted %d queued items", len(self._items))

    def _emit_list(self, item: PendingItem) -> None:
        elements = item.data
        written = [self._lookup(element, PendingKind.RES_DATA) for element in elements]
        if _back_to_back(written):
            # Already emitted as one array, e.g. as the values of a dictionary.
            item.target = written[0].target
            return
        self.align(self.platform.alignment)
        item.target = self.pos
        for element in elements:
            entry = self._lookup(element, PendingKind.RES_DATA)
            if entry is None:
                entry = self._enqueue(element, PendingKind.RES_DATA)
            fresh = entry.target is None
            if fresh:
                entry.target = self.pos
            # Elements written elsewhere are copied so the array stays contiguous.
            element.save(self)
            if fresh:
                entry.end = self.pos

    def write_offsets(self) -> None:
        for item in self._items:
            if item.offsets and item.target is None:
                raise BfresWriteError(f"{item.kind.value} item {type(item.data).__name__} was never written")
            for position in item.offsets:
                self._satisfy(position, item.target)

    # ---- strings -----------------------------------------------------------

    def save_string(self, text: Optional[str], encoding: Optional[str] = None) -> None:
        if text is None:
            self.write_null_offset()
            return
        key = (text, codec_for(encoding or self.res_file.text_encoding, self.platform))
        self._strings.setdefault(key, []).append(self.save_offset())

    def save_strings(self, strings, encoding: Optional[str] = None) -> None:
        for text in strings:
            self.save_string(text, encoding)

    def save_file_name(self, name: str) -> None:
        """Switch header field holding the absolute position of the name text."""
        key = (name, codec_for(self.res_file.text_encoding, self.platform))
        self._strings.setdefault(key, [])
        self._file_name = key
        self.reserve_field("file_name", "I")

    def write_strings(self) -> None:
        if self.platform.is_switch:
            self._write_string_table()
        else:
            self._write_string_pool()
        _LOGGER.debug("Wrote %d pooled strings", len(self._strings))

    def _write_string_pool(self) -> None:
        # WiiU: u32 length, text, terminator, 4-byte aligned; offsets hit the text.
        self.align(4)
        start = self.pos
        self._resolve_anchor(ANCHOR_STRING_POOL, start)
        for (text, codec), positions in sorted(self._strings.items(), key=_pool_order):
            encoded = text.encode(codec)
            self.write_u32(len(encoded))
            for position in positions:
                self._satisfy(position, self.pos)
            self.write(encoded + terminator_for(codec))
            self.align(self.platform.string_alignment)
        self.patch_field("string_pool_size", self.pos - start)

    def _write_string_table(self) -> None:
        # Switch: "_STR" block; offsets hit the u16 length prefix.
        default = (
            "",
            codec_for(self.res_file.text_encoding, self.platform),
        )
        self._strings.setdefault(default, [])

        self.align(self.platform.alignment)
        start = self.pos
        self._resolve_anchor(ANCHOR_STRING_POOL, start)
        if start <= 0xFFFF:
            self.patch_field("first_block", start)
        self.write_signature("_STR")
        self.write_u32(0)
        size_pos = self.pos
        self.write_u32(0)
        self.write_u32(0)
        self.write_u32(len(self._strings) - 1)

        # Entries of the loaded file keep their order, new ones follow.
        known = {raw: i for i, raw in enumerate(self.res_file.string_table)}
        rest = sorted(key for key in self._strings if key != default)
        rest.sort(key=lambda key: _table_order(key, known))
        for key in [default] + rest:
            text, codec = key
            entry = self.pos
            for position in self._strings[key]:
                self._satisfy(position, entry)
            if key == self._file_name:
                self.patch_field("file_name", entry + 2)
            encoded = text.encode(codec)
            self.write_u16(len(encoded))
            self.write(encoded + terminator_for(codec))
            self.align(self.platform.string_alignment)

        self.align(self.platform.alignment)
        with self.temporary_seek(size_pos):
            self.write_u32(self.pos - start)
        self.patch_field("string_table_size", self.pos - start)
        self.regions[Section.FILE] = (0, self.pos)

    # ---- blocks ------------------------------------------------------------

    def save_block(self, data, alignment: int, region: Section,
                   callback: Optional[Callable[[], None]] = None) -> None:
        """Reserve an offset to raw data written after the string pool."""
        if data is None:
            self.write_null_offset()
            return
        block = self._block_lookup.get(id(data))
        if block is None:
            block = _Block(data, alignment, region, callback)
            self._blocks.append(block)
            self._block_lookup[id(data)] = block
        block.offsets.append(self.save_offset())

    def save_memory_pool(self) -> None:
        self.save_anchor(ANCHOR_MEMORY_POOL)

    def save_buffer_info(self) -> None:
        self.save_custom(self._buffer_info, self._write_buffer_info)

    def _write_buffer_info(self) -> None:
        self.write_u32(0)
        self.reserve_field("buffer_size", "I")
        self.save_anchor(ANCHOR_BUFFER)
        self.pad(16)

    def write_blocks(self) -> None:
        buffer_start = None
        for region in (Section.INDEX_BUFFER, Section.VERTEX_BUFFER):
            bounds = self._write_region(region)
            if bounds and buffer_start is None:
                buffer_start = bounds[0]
        buffer_end = self.pos
        if buffer_start is None:
            buffer_start = buffer_end
        self._resolve_anchor(ANCHOR_BUFFER, buffer_start)
        self.patch_field("buffer_size", buffer_end - buffer_start)

        if ANCHOR_MEMORY_POOL in self._anchors:
            self.align(self.platform.alignment)
            pool = self.pos
            self.pad(MEMORY_POOL_SIZE)
            self._resolve_anchor(ANCHOR_MEMORY_POOL, pool)
            self.regions[Section.MEMORY_POOL] = (pool, MEMORY_POOL_SIZE)

        self._write_region(Section.EXTERNAL_FILE)

    def _write_region(self, region: Section) -> Optional[Tuple[int, int]]:
        blocks = [b for b in self._blocks if b.region is region]
        start = None
        for block in blocks:
            if block.target is None:
                self.align(block.alignment)
                block.target = self.pos
                if start is None:
                    start = block.target
                if block.callback is not None:
                    block.callback()
                else:
                    self.write(block.data)
            for position in block.offsets:
                self._satisfy(position, block.target)
        if start is None:
            return None
        self.regions[region] = (start, self.pos - start)
        return self.regions[region]

    # ---- relocation table --------------------------------------------------

    def write_relocation_table(self) -> None:
        self.align(RELOCATION_TABLE_ALIGNMENT)
        sections = self.relocation_table.build(self.regions)
        table_pos = self.relocation_table.write(self, sections)
        self.patch_field("relocation_table", table_pos)
        _LOGGER.debug("Relocation table at 0x%X with %d entries",
                      table_pos, sum(len(s.entries) for s in sections))


def _table_order(key, known) -> tuple:
    raw = key[0].encode(key[1])
    return (0, known[raw]) if raw in known else (1,)


def _pool_order(item) -> tuple:
    # Ordinal order, empty strings last.
    (text, codec), _ = item
    return (text == "", text, codec)


def _back_to_back(entries: List[Optional[PendingItem]]) -> bool:
    """True when every entry is written and each starts where the previous ended."""
    if any(entry is None or entry.target is None for entry in entries):
        return False
    return all(cur.target == prev.end for prev, cur in zip(entries, entries[1:]))
