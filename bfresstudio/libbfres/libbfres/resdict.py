"""libbfres.resdict

ResDict: the named-collection type used everywhere in BFRES.

On disk a ResDict is a flat array of Patricia trie nodes.  Node 0 is a
synthetic root without key or value; every other node carries one key and
(WiiU) an inline pointer to its value.  Switch files store the values in a
separate array that parallels the nodes.

The trie topology is not maintained while editing.  Adding, renaming or
removing entries only touches the flat node list; ``rebuild`` recomputes
every reference bit and child index from the final keys right before the
dictionary is written.
"""

from __future__ import annotations

from typing import Generic, Iterator, List, Optional, Tuple, Type, TypeVar, Union

from .errors import BfresWriteError, DuplicateKeyError, KeyNotFoundError, LookupMismatchError

T = TypeVar("T")

NODE_SIZE = 16
ROOT_REFERENCE = 0xFFFFFFFF


class _Node:
    __slots__ = ("reference", "idx_left", "idx_right", "key", "value")

    def __init__(self, key: Optional[str] = None, value=None):
        self.reference = ROOT_REFERENCE
        self.idx_left = 0
        self.idx_right = 0
        self.key = key
        self.value = value

    def __repr__(self) -> str:
        return f"_Node(ref={self.reference:#x}, left={self.idx_left}, right={self.idx_right}, key={self.key!r})"


def get_direction(name: str, reference: int) -> int:
    """Bit ``reference & 7`` of character ``reference >> 3``; 0 past the end."""
    index = reference >> 3
    if index >= len(name):
        return 0
    return (ord(name[index]) >> (reference & 7)) & 1


class ResDict(Generic[T]):
    """Ordered, uniquely keyed collection backed by a Patricia trie node array."""

    def __init__(self, items=None):
        self._nodes: List[_Node] = [_Node()]
        if items:
            pairs = items.items() if hasattr(items, "items") else items
            for key, value in pairs:
                self.add(key, value)

    # ---- collection protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes) - 1

    def __iter__(self) -> Iterator[Tuple[str, T]]:
        for node in self._nodes[1:]:
            yield node.key, node.value

    def __contains__(self, key: str) -> bool:
        return self._find_key(key) is not None

    def __getitem__(self, item: Union[str, int]) -> T:
        return self._node(item).value

    def __setitem__(self, item: Union[str, int], value: T) -> None:
        self._node(item).value = value

    def __delitem__(self, item: Union[str, int]) -> None:
        node = self._node(item)
        self._nodes.remove(node)

    def __repr__(self) -> str:
        return f"ResDict({self.keys()!r})"

    def keys(self) -> List[str]:
        return [node.key for node in self._nodes[1:]]

    def values(self) -> List[T]:
        return [node.value for node in self._nodes[1:]]

    def items(self) -> List[Tuple[str, T]]:
        return list(self)

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        index = self._find_key(key)
        return default if index is None else self._nodes[index + 1].value

    def index_of(self, key: str) -> int:
        index = self._find_key(key)
        return -1 if index is None else index

    def add(self, key: str, value: T) -> None:
        if self._find_key(key) is not None:
            raise DuplicateKeyError(key)
        self._nodes.append(_Node(key, value))

    def rename(self, old: str, new: str) -> None:
        if old == new:
            return
        if self._find_key(new) is not None:
            raise DuplicateKeyError(new)
        self._node(old).key = new

    def remove(self, item: Union[str, int, T]) -> None:
        """Remove by key, by index, or by value identity."""
        if isinstance(item, (str, int)):
            del self[item]
            return
        for node in self._nodes[1:]:
            if node.value is item:
                self._nodes.remove(node)
                return
        raise KeyNotFoundError(item)

    def clear(self) -> None:
        del self._nodes[1:]

    def _find_key(self, key: str) -> Optional[int]:
        for i, node in enumerate(self._nodes[1:]):
            if node.key == key:
                return i
        return None

    def _node(self, item: Union[str, int]) -> _Node:
        if isinstance(item, int):
            if not 0 <= item < len(self):
                raise IndexError(f"{item} out of bounds in dictionary of {len(self)} entries")
            return self._nodes[item + 1]
        index = self._find_key(item)
        if index is None:
            raise KeyNotFoundError(item)
        return self._nodes[index + 1]

    # ---- trie ----------------------------------------------------------------

    def node_table(self) -> List[Tuple[int, int, int, Optional[str]]]:
        return [(n.reference, n.idx_left, n.idx_right, n.key) for n in self._nodes]

    def rebuild(self) -> None:
        """Recompute reference bits and child indices from the current keys."""
        nodes = self._nodes
        root = _Node("")
        root.value = nodes[0].value
        nodes[0] = root

        for i in range(1, len(nodes)):
            current = nodes[i]
            key = current.key
            if key is None:
                raise BfresWriteError(f"Dictionary node {i} has no key")

            parent = root
            child = nodes[parent.idx_left]
            while parent.reference > child.reference:
                parent = child
                child = nodes[child.idx_right] if get_direction(key, child.reference) else nodes[child.idx_left]

            reference = max(len(key), len(child.key)) * 8
            while get_direction(child.key, reference) == get_direction(key, reference):
                if reference == 0:
                    raise DuplicateKeyError(key)
                reference -= 1
            current.reference = reference

            parent = root
            child = nodes[parent.idx_left]
            while parent.reference > child.reference and child.reference > reference:
                parent = child
                child = nodes[child.idx_right] if get_direction(key, child.reference) else nodes[child.idx_left]

            child_index = _index_of(nodes, child)
            if get_direction(key, reference):
                current.idx_left = child_index
                current.idx_right = i
            else:
                current.idx_left = i
                current.idx_right = child_index

            if get_direction(key, parent.reference):
                parent.idx_right = i
            else:
                parent.idx_left = i

        root.key = None

    def traverse(self, name: str) -> T:
        """Look ``name`` up by walking the trie instead of scanning the nodes."""
        nodes = self._nodes
        parent = nodes[0]
        child = nodes[parent.idx_left]
        while parent.reference > child.reference:
            parent = child
            child = nodes[child.idx_right] if get_direction(name, child.reference) else nodes[child.idx_left]
        if child.key != name:
            raise LookupMismatchError(name, child.key)
        return child.value

    # ---- binary --------------------------------------------------------------

    def load(self, loader, value_type: Optional[Type[T]]) -> None:
        """Read the header and all nodes at the loader's position.

        ``value_type`` is None when the values live in a separate array
        (Switch); ``load_values`` fills them in afterwards.
        """
        loader.u32()  # WiiU: byte size; Switch: signature slot
        count = loader.s32()
        nodes = []
        for i in range(count + 1):
            node = _Node()
            node.reference = loader.u32()
            node.idx_left = loader.u16()
            node.idx_right = loader.u16()
            node.key = loader.load_string()
            if value_type is not None:
                node.value = loader.load(value_type)
            nodes.append(node)
        nodes[0].key = None
        nodes[0].value = None
        self._nodes = nodes

    def load_values(self, values: List[T]) -> None:
        for node, value in zip(self._nodes[1:], values):
            node.value = value

    def save(self, saver) -> None:
        self.rebuild()
        switch = saver.platform.is_switch

        saver.write_u32(0 if switch else 8 + len(self._nodes) * NODE_SIZE)
        saver.write_s32(len(self))
        for i, node in enumerate(self._nodes):
            saver.write_u32(node.reference)
            saver.write_u16(node.idx_left)
            saver.write_u16(node.idx_right)
            if switch:
                saver.save_string("" if i == 0 else node.key)
            else:
                saver.save_string(node.key)
                if i == 0:
                    saver.write_null_offset()
                else:
                    saver.save(node.value)


def _index_of(nodes: List[_Node], node: _Node) -> int:
    for i, n in enumerate(nodes):
        if n is node:
            return i
    raise ValueError(node)
