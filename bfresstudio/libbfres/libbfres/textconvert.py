"""libbfres.textconvert

JSON export/import for materials, skeletal animations and user data, for
hand edits and diffs.  Enums are written by name; the shader parameter
block travels as hex next to the decoded values so an import restores it
byte for byte.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, List

from .anim import AnimCurve, BoneAnim, SkeletalAnim
from .material import (
    Material,
    RenderInfo,
    RenderInfoType,
    Sampler,
    ShaderParam,
    ShaderParamType,
    Srt2D,
    Srt3D,
    TexSrt,
    TexSrtEx,
    TexSrtMode,
)
from .resdict import ResDict
from .userdata import UserData, UserDataType

_STRUCT_VALUES = {
    ShaderParamType.SRT2D: Srt2D,
    ShaderParamType.SRT3D: Srt3D,
    ShaderParamType.TEX_SRT: TexSrt,
    ShaderParamType.TEX_SRT_EX: TexSrtEx,
}


def _enum_name(value) -> Any:
    return value.name if hasattr(value, "name") else value


def _dict_from(items: List[dict], convert) -> ResDict:
    return ResDict([(item["name"], convert(item)) for item in items])


# ---- user data ----------------------------------------------------------------


def user_data_to_dict(user_data: UserData) -> Dict[str, Any]:
    return {"name": user_data.name, "type": user_data.type.name, "value": list(user_data.value)}


def user_data_from_dict(d: Dict[str, Any]) -> UserData:
    return UserData(d["name"], UserDataType[d["type"]], list(d["value"]))


# ---- material -----------------------------------------------------------------


def _param_value_to_json(param: ShaderParam) -> Any:
    if dataclasses.is_dataclass(param.value):
        out = dataclasses.asdict(param.value)
        if "mode" in out:
            out["mode"] = _enum_name(param.value.mode)
        return out
    return list(param.value)


def _param_value_from_json(param_type: ShaderParamType, value: Any):
    cls = _STRUCT_VALUES.get(param_type)
    if cls is None:
        return tuple(value)
    fields = {k: tuple(v) if isinstance(v, list) else v for k, v in value.items()}
    if "mode" in fields and isinstance(fields["mode"], str):
        fields["mode"] = TexSrtMode[fields["mode"]]
    return cls(**fields)


def material_to_dict(material: Material) -> Dict[str, Any]:
    return {
        "name": material.name,
        "flags": material.flags,
        "texture_refs": list(material.texture_refs),
        "render_infos": [
            {"name": ri.name, "type": ri.type.name, "value": list(ri.value)}
            for ri in material.render_infos.values()
        ],
        "samplers": [{"name": s.name, "words": list(s.words)} for s in material.samplers.values()],
        "shader_params": [
            {
                "name": p.name,
                "type": p.type.name,
                "data_offset": p.data_offset,
                "uniform_offset": p.uniform_offset,
                "depended_index": p.depended_index,
                "depend_index": p.depend_index,
                "value": _param_value_to_json(p),
            }
            for p in material.shader_params.values()
        ],
        "shader_param_data": material.shader_param_data.hex(),
        "user_data": [user_data_to_dict(ud) for ud in material.user_data.values()],
    }


def material_from_dict(d: Dict[str, Any]) -> Material:
    def render_info(item):
        return RenderInfo(item["name"], RenderInfoType[item["type"]], list(item["value"]))

    def sampler(item):
        return Sampler(item["name"], tuple(item["words"]))

    def shader_param(item):
        param_type = ShaderParamType[item["type"]]
        return ShaderParam(
            name=item["name"],
            type=param_type,
            data_offset=item["data_offset"],
            uniform_offset=item.get("uniform_offset", -1),
            depended_index=item.get("depended_index", 0),
            depend_index=item.get("depend_index", 0),
            value=_param_value_from_json(param_type, item["value"]),
        )

    return Material(
        name=d["name"],
        flags=d.get("flags", 1),
        render_infos=_dict_from(d.get("render_infos", []), render_info),
        samplers=_dict_from(d.get("samplers", []), sampler),
        shader_params=_dict_from(d.get("shader_params", []), shader_param),
        user_data=_dict_from(d.get("user_data", []), user_data_from_dict),
        texture_refs=list(d.get("texture_refs", [])),
        shader_param_data=bytes.fromhex(d.get("shader_param_data", "")),
    )


# ---- skeletal animation -------------------------------------------------------


_CURVE_FIELDS = ("flags", "anim_data_offset", "start_frame", "end_frame", "scale", "offset", "delta")


def _curve_to_dict(curve: AnimCurve) -> Dict[str, Any]:
    out = {name: getattr(curve, name) for name in _CURVE_FIELDS}
    out["frames"] = list(curve.frames)
    out["keys"] = [list(key) for key in curve.keys]
    return out


def _curve_from_dict(d: Dict[str, Any]) -> AnimCurve:
    curve = AnimCurve(**{name: d[name] for name in _CURVE_FIELDS if name in d})
    curve.frames = list(d.get("frames", []))
    curve.keys = [list(key) for key in d.get("keys", [])]
    return curve


def skeletal_anim_to_dict(anim: SkeletalAnim) -> Dict[str, Any]:
    return {
        "name": anim.name,
        "path": anim.path,
        "flags": anim.flags,
        "frame_count": anim.frame_count,
        "baked_size": anim.baked_size,
        "bind_indices": list(anim.bind_indices),
        "bone_anims": [
            {
                "name": ba.name,
                "flags": ba.flags,
                "begin_rotate": ba.begin_rotate,
                "begin_translate": ba.begin_translate,
                "base_values": list(ba.base_values),
                "curves": [_curve_to_dict(c) for c in ba.curves],
            }
            for ba in anim.bone_anims
        ],
        "user_data": [user_data_to_dict(ud) for ud in anim.user_data.values()],
    }


def skeletal_anim_from_dict(d: Dict[str, Any]) -> SkeletalAnim:
    bone_anims = [
        BoneAnim(
            name=item["name"],
            flags=item.get("flags", 0),
            begin_rotate=item.get("begin_rotate", 0),
            begin_translate=item.get("begin_translate", 0),
            base_values=list(item.get("base_values", [])),
            curves=[_curve_from_dict(c) for c in item.get("curves", [])],
        )
        for item in d.get("bone_anims", [])
    ]
    return SkeletalAnim(
        name=d["name"],
        path=d.get("path", ""),
        flags=d.get("flags", 0),
        frame_count=d.get("frame_count", 0),
        baked_size=d.get("baked_size", 0),
        bone_anims=bone_anims,
        bind_indices=list(d.get("bind_indices", [])),
        user_data=_dict_from(d.get("user_data", []), user_data_from_dict),
    )


# ---- text -------------------------------------------------------------------

_TO_DICT = {
    Material: ("material", material_to_dict),
    SkeletalAnim: ("skeletal_anim", skeletal_anim_to_dict),
    UserData: ("user_data", user_data_to_dict),
}

_FROM_DICT = {
    "material": material_from_dict,
    "skeletal_anim": skeletal_anim_from_dict,
    "user_data": user_data_from_dict,
}


def to_json(obj, indent: int = 2) -> str:
    """Serialise a Material, SkeletalAnim or UserData."""
    try:
        kind, convert = _TO_DICT[type(obj)]
    except KeyError:
        raise TypeError(f"Cannot convert {type(obj).__name__} to JSON") from None
    return json.dumps({"kind": kind, **convert(obj)}, indent=indent)


def from_json(text: str):
    d = json.loads(text)
    kind = d.pop("kind", None)
    if kind not in _FROM_DICT:
        raise ValueError(f"Unknown JSON object kind {kind!r}")
    return _FROM_DICT[kind](d)
