"""Tests for the ResDict Patricia trie collection."""
import struct

import pytest

from libbfres.errors import BfresWriteError, DuplicateKeyError, KeyNotFoundError, LookupMismatchError
from libbfres.loader import ResFileLoader
from libbfres.resdict import ROOT_REFERENCE, ResDict, get_direction
from libbfres.resfile import ResFile
from libbfres.stream import WIIU

KEYS = ['Mt_Body', 'Mt_Eye', 'Mt_Eye_L', 'Mt_Hair', 'a', 'ab', 'b', 'Skl_Root', 'Z']


def _filled(keys=KEYS):
    return ResDict([(k, f'value-{k}') for k in keys])


class TestCollection:
    def test_iterates_in_insertion_order(self):
        d = _filled(['b', 'a', 'c'])
        assert list(d) == [('b', 'value-b'), ('a', 'value-a'), ('c', 'value-c')]
        assert d.keys() == ['b', 'a', 'c']
        assert len(d) == 3

    def test_get_by_key_and_index(self):
        d = _filled(['x', 'y'])
        assert d['y'] == 'value-y'
        assert d[0] == 'value-x'
        d[1] = 'other'
        assert d['y'] == 'other'
        assert d.index_of('y') == 1
        assert d.index_of('missing') == -1
        assert d.get('missing') is None
        assert 'x' in d and 'z' not in d

    def test_missing_key_and_index(self):
        d = _filled(['x'])
        with pytest.raises(KeyNotFoundError):
            d['nope']
        with pytest.raises(KeyError):
            d['nope']
        with pytest.raises(IndexError):
            d[1]
        with pytest.raises(IndexError):
            d[-1]

    def test_duplicate_add(self):
        d = _filled(['x'])
        with pytest.raises(DuplicateKeyError):
            d.add('x', 1)

    def test_rename(self):
        d = _filled(['x', 'y'])
        d.rename('x', 'w')
        assert d.keys() == ['w', 'y']
        assert d['w'] == 'value-x'
        with pytest.raises(DuplicateKeyError):
            d.rename('w', 'y')
        with pytest.raises(KeyNotFoundError):
            d.rename('gone', 'q')

    def test_remove_by_key_index_and_value(self):
        value = object()
        d = ResDict([('a', 1), ('b', value), ('c', 3), ('d', 4)])
        d.remove('a')
        d.remove(value)
        d.remove(1)
        assert d.keys() == ['c']
        with pytest.raises(KeyNotFoundError):
            d.remove(object())
        d.clear()
        assert len(d) == 0 and not d


class TestTrie:
    def test_direction(self):
        # 'a' is 0x61: bits 0, 5 and 6 set
        assert get_direction('a', 0) == 1
        assert get_direction('a', 1) == 0
        assert get_direction('a', 6) == 1
        assert get_direction('a', 8) == 0

    def test_empty_dictionary_has_only_root(self):
        d = ResDict()
        d.rebuild()
        assert d.node_table() == [(ROOT_REFERENCE, 0, 0, None)]

    def test_single_key_layout(self):
        d = _filled(['a'])
        d.rebuild()
        assert d.node_table() == [(ROOT_REFERENCE, 1, 0, None), (6, 0, 1, 'a')]

    def test_prefix_keys_layout(self):
        # 'a' and 'b' first differ at bit 1, 'a' and 'ab' at bit 14
        d = _filled(['a', 'ab', 'b'])
        d.rebuild()
        assert d.node_table() == [
            (ROOT_REFERENCE, 2, 0, None),
            (6, 0, 3, 'a'),
            (14, 1, 2, 'ab'),
            (1, 1, 3, 'b'),
        ]

    def test_missing_key_is_reported(self):
        node = struct.pack('>IHHII', 0, 0, 0, 0, 0)
        data = bytes(4) + struct.pack('>Ii', 40, 1) + struct.pack('>IHHII', ROOT_REFERENCE, 0, 0, 0, 0) + node
        d = ResFileLoader(ResFile(platform=WIIU), data, WIIU).load_dict(None, 4)
        with pytest.raises(BfresWriteError, match='node 1'):
            d.rebuild()

    def test_rebuild_is_deterministic(self):
        a = _filled()
        b = _filled()
        a.rebuild()
        b.rebuild()
        a.rebuild()
        assert a.node_table() == b.node_table()

    def test_traverse_finds_every_key(self):
        d = _filled()
        d.rebuild()
        for key in KEYS:
            assert d.traverse(key) == f'value-{key}'

    def test_prefix_keys(self):
        d = ResDict([('a', 1), ('ab', 2), ('b', 3)])
        d.rebuild()
        assert d.traverse('ab') == 2
        assert d.traverse('a') == 1
        assert d.traverse('b') == 3

    def test_traverse_unknown_key(self):
        d = _filled(['abc', 'abd'])
        d.rebuild()
        with pytest.raises(LookupMismatchError):
            d.traverse('zzz')

    def test_root_key_cleared_after_rebuild(self):
        d = _filled(['one'])
        d.rebuild()
        assert d.node_table()[0][3] is None
        assert d.node_table()[0][0] == ROOT_REFERENCE

    @pytest.mark.parametrize('count', [1, 2, 17, 100])
    def test_many_keys(self, count):
        keys = [f'bone_{i:03d}' for i in range(count)]
        d = _filled(keys)
        d.rebuild()
        for key in keys:
            assert d.traverse(key) == f'value-{key}'
