"""libbfres.errors

Exception types raised while loading or saving BFRES data.

Format violations and API misuse both derive from ``BfresError`` so callers
can catch one type at the top level.  Nothing in the library retries or
returns partial results: the first fault aborts the whole load or save.
"""

from __future__ import annotations


class BfresError(RuntimeError):
    pass


class BfresReadError(BfresError):
    pass


class UnexpectedEndError(BfresReadError):
    def __init__(self, offset: int, need: int, size: int):
        super().__init__(f"Unexpected EOF at 0x{offset:X}, need {need} bytes (stream size 0x{size:X})")
        self.offset = offset


class InvalidSignatureError(BfresReadError):
    def __init__(self, expected: str, found: bytes, offset: int):
        shown = found.decode("ascii", errors="replace")
        super().__init__(f"Invalid signature at 0x{offset:X}, expected '{expected}' but got '{shown}'")
        self.expected = expected
        self.found = found


class InvalidEnumValueError(BfresReadError):
    def __init__(self, enum_name: str, value: int):
        super().__init__(f"Invalid {enum_name} value {value} (0x{value:X})")
        self.enum_name = enum_name
        self.value = value


class BfresWriteError(BfresError):
    pass


class DuplicateKeyError(BfresError):
    def __init__(self, key):
        super().__init__(f"Duplicate dictionary key {key!r}")
        self.key = key


class KeyNotFoundError(BfresError, KeyError):
    def __init__(self, key):
        super().__init__(f"Dictionary key {key!r} not found")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class LookupMismatchError(BfresError):
    def __init__(self, name: str, found):
        super().__init__(f"Trie lookup for {name!r} ended at {found!r}")
        self.name = name
        self.found = found


class RelocationError(BfresError, ValueError):
    pass


class UnsupportedFormatError(BfresError):
    def __init__(self, attrib_format):
        super().__init__(f"Vertex attribute format {attrib_format!r} cannot be decoded")
        self.attrib_format = attrib_format
