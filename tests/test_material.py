"""Tests for shader parameter sizes and the parameter data codec."""
import struct

import pytest

from conftest import build_material
from libbfres.errors import BfresWriteError
from libbfres.material import (
    ShaderParam,
    ShaderParamType,
    Srt3D,
    TexSrt,
    TexSrtEx,
    TexSrtMode,
    decode_param,
    encode_param,
    param_size,
)


@pytest.mark.parametrize('param_type, size', [
    (ShaderParamType.BOOL, 4),
    (ShaderParamType.INT3, 12),
    (ShaderParamType.UINT4, 16),
    (ShaderParamType.FLOAT4, 16),
    (ShaderParamType.FLOAT2X2, 16),
    (ShaderParamType.FLOAT2X3, 24),
    (ShaderParamType.FLOAT3X4, 48),
    (ShaderParamType.FLOAT4X4, 64),
    (ShaderParamType.SRT2D, 20),
    (ShaderParamType.SRT3D, 36),
    (ShaderParamType.TEX_SRT, 24),
    (ShaderParamType.TEX_SRT_EX, 28),
])
def test_param_size(param_type, size):
    assert param_size(param_type) == size


def test_element_types_follow_the_param_type():
    data = struct.pack('<i', -5)
    assert decode_param(ShaderParamType.INT, data, '<') == (-5,)
    assert decode_param(ShaderParamType.UINT, data, '<') == (0xFFFFFFFB,)
    assert decode_param(ShaderParamType.BOOL2, struct.pack('>2I', 1, 0), '>') == (1, 0)
    assert decode_param(ShaderParamType.FLOAT, struct.pack('>f', 0.5), '>') == (0.5,)


def test_srt_values():
    value = Srt3D((1.0, 2.0, 3.0), (0.0, 0.5, 0.0), (4.0, 5.0, 6.0))
    data = encode_param(ShaderParamType.SRT3D, value, '>')
    assert data == struct.pack('>9f', 1, 2, 3, 0, 0.5, 0, 4, 5, 6)
    assert decode_param(ShaderParamType.SRT3D, data, '>') == value


def test_tex_srt_ex_keeps_matrix_pointer():
    value = TexSrtEx(TexSrtMode.MAX3D, (1.0, 1.0), 0.25, (0.0, 0.5), 0xCAFE)
    data = encode_param(ShaderParamType.TEX_SRT_EX, value, '<')
    assert data[:4] == struct.pack('<I', 1)
    assert data[-4:] == struct.pack('<I', 0xCAFE)
    assert decode_param(ShaderParamType.TEX_SRT_EX, data, '<') == value


def test_unknown_tex_srt_mode_is_kept():
    data = struct.pack('<I5f', 7, 1, 1, 0, 0, 0)
    value = decode_param(ShaderParamType.TEX_SRT, data, '<')
    assert value.mode == 7
    assert encode_param(ShaderParamType.TEX_SRT, value, '<') == data


@pytest.mark.parametrize('param_type, value', [
    (ShaderParamType.FLOAT3, (1.0, 2.0)),
    (ShaderParamType.SRT2D, (1.0, 2.0)),
    (ShaderParamType.INT, ('x',)),
])
def test_bad_values_raise(param_type, value):
    with pytest.raises(BfresWriteError):
        encode_param(param_type, value, '<')


class TestPackShaderParams:
    def test_values_land_at_their_offsets(self):
        blob = build_material().pack_shader_params('<')
        assert len(blob) == 64
        assert blob[0:16] == struct.pack('<4f', 1.0, 0.5, 0.25, 1.0)
        assert blob[16:40] == struct.pack('<I5f', 0, 1.0, 2.0, 0.5, 0.25, 0.0)
        assert blob[60:64] == struct.pack('<I', 1)

    def test_bytes_between_params_are_preserved(self):
        mat = build_material()
        mat.shader_param_data = bytes([0xAA]) * 72
        blob = mat.pack_shader_params('>')
        assert len(blob) == 72
        assert blob[64:] == bytes([0xAA]) * 8
        assert blob[0:4] == struct.pack('>f', 1.0)

    def test_blob_grows_for_new_params(self):
        mat = build_material()
        mat.shader_params.add('late', ShaderParam('late', ShaderParamType.FLOAT2, data_offset=80,
                                                  value=(3.0, 4.0)))
        blob = mat.pack_shader_params('<')
        assert len(blob) == 88
        assert blob[64:80] == bytes(16)
        assert blob[80:] == struct.pack('<2f', 3.0, 4.0)

    def test_tex_srt_roundtrip_value(self):
        mat = build_material()
        param = mat.shader_params['tex_mtx0']
        blob = mat.pack_shader_params('>')
        assert decode_param(param.type, blob[16:40], '>') == TexSrt(TexSrtMode.MAYA, (1.0, 2.0), 0.5, (0.25, 0.0))
