"""Tests for the JSON export/import of materials, animations and user data."""
import json

import pytest

from conftest import build_material, build_model, build_skeletal_anim
from libbfres.anim import AnimCurveType, SkeletalAnim
from libbfres.material import Material, TexSrt, TexSrtMode
from libbfres.resfile import ResFile
from libbfres.stream import SWITCH
from libbfres.textconvert import from_json, to_json
from libbfres.userdata import UserData, UserDataType


def test_material_json_is_readable():
    d = json.loads(to_json(build_material()))
    assert d['kind'] == 'material'
    assert d['render_infos'][0] == {'name': 'gsys_render_state_mode', 'type': 'STRING', 'value': ['opaque']}
    tex = d['shader_params'][1]
    assert tex['type'] == 'TEX_SRT'
    assert tex['value']['mode'] == 'MAYA'
    assert tex['value']['scaling'] == [1.0, 2.0]


def test_material_roundtrip():
    original = build_material()
    restored = from_json(to_json(original))
    assert isinstance(restored, Material)
    assert restored.samplers.keys() == ['_a0']
    assert restored.samplers['_a0'].words == (0x10, 0x20, 0x30)
    assert restored.shader_params['tex_mtx0'].value == TexSrt(TexSrtMode.MAYA, (1.0, 2.0), 0.5, (0.25, 0.0))
    assert restored.shader_params['albedo_color'].value == (1.0, 0.5, 0.25, 1.0)
    assert restored.user_data['label'].type is UserDataType.WSTRING
    assert restored.pack_shader_params('<') == original.pack_shader_params('<')


def test_loaded_material_roundtrip_keeps_blob():
    res = ResFile(name='m', platform=SWITCH)
    res.models.add('body', build_model())
    loaded = ResFile.from_bytes(res.to_bytes())
    material = loaded.models['body'].materials['mat0']
    restored = from_json(to_json(material))
    assert restored.shader_param_data == material.shader_param_data


def test_skeletal_anim_roundtrip():
    restored = from_json(to_json(build_skeletal_anim()))
    assert isinstance(restored, SkeletalAnim)
    assert restored.bind_indices == [0, 1]
    linear = restored.bone_anims[0].curves[1]
    assert linear.curve_type is AnimCurveType.LINEAR
    assert linear.scale == 0.5
    assert linear.keys == [[1, 2], [3, 4], [5, 6]]
    assert restored.user_data['loop'].value == [1]


def test_user_data_roundtrip():
    restored = from_json(to_json(UserData.single('s', [0.5])))
    assert restored.type is UserDataType.SINGLE
    assert restored.value == [0.5]


def test_unsupported_objects():
    with pytest.raises(TypeError):
        to_json(object())
    with pytest.raises(ValueError):
        from_json('{"kind": "texture"}')
