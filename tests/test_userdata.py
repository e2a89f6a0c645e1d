"""Tests for typed user data arrays."""
import pytest

from libbfres.errors import BfresWriteError, InvalidEnumValueError
from libbfres.loader import ResFileLoader
from libbfres.resfile import ResFile
from libbfres.saver import ResFileSaver
from libbfres.stream import SWITCH
from libbfres.userdata import UserData, UserDataType


def _save(user_data, platform):
    res = ResFile(platform=platform)
    saver = ResFileSaver(res, platform)
    saver.save(user_data)
    saver.save_entries()
    saver.write_offsets()
    saver.write_strings()
    return res, saver.getvalue()


def _roundtrip(user_data, platform):
    res, data = _save(user_data, platform)
    return ResFileLoader(res, data, platform).load(UserData)


@pytest.mark.parametrize('user_data', [
    UserData.int32('ints', [1, -2, 3]),
    UserData.single('floats', [0.5, 1.25]),
    UserData.byte('bytes', [0, 255]),
    UserData.string('names', ['a', 'bc']),
    UserData.string('wide', ['ü', 'wide'], wide=True),
], ids=lambda ud: ud.type.name)
def test_roundtrip(user_data, platform):
    loaded = _roundtrip(user_data, platform)
    assert loaded.name == user_data.name
    assert loaded.type is user_data.type
    assert loaded.value == user_data.value


def test_empty_value(platform):
    loaded = _roundtrip(UserData.int32('none', []), platform)
    assert loaded.value == []


@pytest.mark.parametrize('user_data', [
    UserData('bad', UserDataType.INT32, [1.5]),
    UserData('bad', UserDataType.BYTE, [True]),
    UserData('bad', UserDataType.STRING, [3]),
])
def test_mismatched_elements_are_rejected(user_data):
    with pytest.raises(BfresWriteError):
        _save(user_data, SWITCH)


def test_unknown_type_fails_to_load():
    res, data = _save(UserData.int32('x', [1]), SWITCH)
    data = bytearray(data)
    # pointer, then name and value offsets, then the u32 count
    type_pos = 8 + 16 + 4
    assert data[type_pos] == UserDataType.INT32
    data[type_pos] = 9
    with pytest.raises(InvalidEnumValueError):
        ResFileLoader(res, bytes(data), SWITCH).load(UserData)
