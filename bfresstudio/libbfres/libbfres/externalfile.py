"""libbfres.externalfile

Opaque files embedded in a BFRES (shader archives, texture containers and
the like), kept as raw bytes.
"""

from __future__ import annotations

from dataclasses import dataclass

from .relocation import Section
from .resdata import ResData

# Tiny payloads are still placed on a 512-byte boundary.
SMALL_FILE_ALIGNMENT = 0x200


@dataclass(eq=False)
class ExternalFile(ResData):
    data: bytes = b""

    def load(self, loader) -> None:
        data_offset = loader.read_offset()
        size = loader.read_size()
        self.data = loader.load_block(size, data_offset)
        loader.align_struct()

    def save(self, saver) -> None:
        alignment = SMALL_FILE_ALIGNMENT if len(self.data) <= 3 else saver.res_file.alignment
        saver.save_block(self.data, alignment, Section.EXTERNAL_FILE)
        if saver.platform.is_switch:
            saver.write_u64(len(self.data))
        else:
            saver.write_u32(len(self.data))
        saver.align_struct()
