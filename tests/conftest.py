"""Shared builders for small but complete BFRES trees."""
import struct

import pytest

from libbfres.anim import (
    AnimCurve,
    AnimCurveFrameType,
    AnimCurveKeyType,
    AnimCurveType,
    BoneAnim,
    SkeletalAnim,
    WrapMode,
)
from libbfres.externalfile import ExternalFile
from libbfres.material import (
    Material,
    RenderInfo,
    RenderInfoType,
    Sampler,
    ShaderParam,
    ShaderParamType,
    Srt2D,
    TexSrt,
    TexSrtMode,
)
from libbfres.model import (
    Bone,
    Buffer,
    GX2AttribFormat,
    IndexFormat,
    Mesh,
    Model,
    PrimitiveType,
    Shape,
    Skeleton,
    VertexAttrib,
    VertexBuffer,
)
from libbfres.resfile import ResFile
from libbfres.stream import SWITCH, WIIU
from libbfres.userdata import UserData


def build_material(name='mat0', texture='tex_albedo'):
    mat = Material(name=name)
    mat.render_infos.add('gsys_render_state_mode', RenderInfo(
        'gsys_render_state_mode', RenderInfoType.STRING, ['opaque']))
    mat.render_infos.add('gsys_alpha_test_value', RenderInfo(
        'gsys_alpha_test_value', RenderInfoType.SINGLE, [0.5]))
    mat.render_infos.add('gsys_priority', RenderInfo(
        'gsys_priority', RenderInfoType.INT32, [0, 1]))
    mat.samplers.add('_a0', Sampler('_a0', (0x10, 0x20, 0x30)))
    mat.shader_params.add('albedo_color', ShaderParam(
        'albedo_color', ShaderParamType.FLOAT4, data_offset=0, value=(1.0, 0.5, 0.25, 1.0)))
    mat.shader_params.add('tex_mtx0', ShaderParam(
        'tex_mtx0', ShaderParamType.TEX_SRT, data_offset=16,
        value=TexSrt(TexSrtMode.MAYA, (1.0, 2.0), 0.5, (0.25, 0.0))))
    mat.shader_params.add('uv_srt', ShaderParam(
        'uv_srt', ShaderParamType.SRT2D, data_offset=40,
        value=Srt2D((1.0, 1.0), 0.0, (0.5, 0.5))))
    mat.shader_params.add('enable_fog', ShaderParam(
        'enable_fog', ShaderParamType.BOOL, data_offset=60, value=(1,)))
    mat.texture_refs = [texture]
    mat.user_data.add('ids', UserData.int32('ids', [1, 2, 3]))
    mat.user_data.add('label', UserData.string('label', ['héllo'], wide=True))
    return mat


def build_model(name='body'):
    skeleton = Skeleton(flags=0x1100, matrix_to_bone_list=[0, 1], smooth_matrix_count=1)
    root = Bone('root', smooth_matrix_index=0, position=(0.0, 1.0, 0.0))
    root.user_data.add('kind', UserData.string('kind', ['root']))
    skeleton.bones.add('root', root)
    skeleton.bones.add('arm', Bone('arm', parent_index=0, rigid_matrix_index=1,
                                   rotation=(0.0, 0.5, 0.0, 1.0)))

    vb = VertexBuffer(vertex_count=3, vertex_skin_count=1)
    vb.attributes.add('_p0', VertexAttrib('_p0', format=GX2AttribFormat.FORMAT_32_32_32_SINGLE, offset=0))
    vb.attributes.add('_u0', VertexAttrib('_u0', format=GX2AttribFormat.FORMAT_8_8_8_8_SNORM, offset=12))
    vb.buffers.append(Buffer(stride=20, data=struct.pack('<15f', *range(15))))

    mesh = Mesh(PrimitiveType.TRIANGLES, IndexFormat.UINT16, index_count=3,
                data=struct.pack('<3H', 0, 1, 2))
    shape = Shape(name=name + '_shape', vertex_buffer=vb, meshes=[mesh],
                  skin_bone_indices=[0, 1], vertex_skin_count=1)

    model = Model(name=name, path='', skeleton=skeleton, vertex_buffers=[vb])
    model.shapes.add(shape.name, shape)
    model.materials.add('mat0', build_material())
    model.user_data.add('scale', UserData.single('scale', [1.5]))
    return model


def build_skeletal_anim(name='walk'):
    cubic = AnimCurve(start_frame=0.0, end_frame=10.0, frames=[0.0, 10.0],
                      keys=[[0.0, 1.0, 0.5, 0.25], [1.0, 0.0, 0.0, 0.0]])
    linear = AnimCurve(end_frame=5.0, scale=0.5, frames=[0.0, 2.5, 5.0],
                       keys=[[1, 2], [3, 4], [5, 6]])
    linear.frame_type = AnimCurveFrameType.DECIMAL10X5
    linear.key_type = AnimCurveKeyType.INT16
    linear.curve_type = AnimCurveType.LINEAR
    linear.post_wrap = WrapMode.REPEAT
    step = AnimCurve(end_frame=39.0, frames=[float(i) for i in range(40)],
                     keys=[[i % 3 == 0] for i in range(40)])
    step.frame_type = AnimCurveFrameType.BYTE
    step.curve_type = AnimCurveType.STEP_BOOL

    anim = SkeletalAnim(name=name, path='', frame_count=40, bind_indices=[0, 1])
    anim.bone_anims.append(BoneAnim('root', flags=0x3, base_values=[1.0, 1.0, 1.0, 0.0],
                                    curves=[cubic, linear]))
    anim.bone_anims.append(BoneAnim('arm', curves=[step]))
    anim.user_data.add('loop', UserData.byte('loop', [1]))
    return anim


def build_res_file(platform=SWITCH):
    res = ResFile(name='sample', platform=platform)
    res.models.add('body', build_model('body'))
    res.models.add('head', build_model('head'))
    res.skeletal_anims.add('walk', build_skeletal_anim())
    res.external_files.add('shader.bfsha', ExternalFile(bytes(range(64))))
    res.external_files.add('tiny.bin', ExternalFile(bytes([7, 8])))
    return res


@pytest.fixture(params=[WIIU, SWITCH], ids=['wiiu', 'switch'])
def platform(request):
    return request.param
