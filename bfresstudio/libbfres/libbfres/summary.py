"""libbfres.summary

Flat, stable DTOs describing a BFRES file, for the CLI and scripts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

from .resfile import ResFile, read_relocations


# -----------------------------
# High-level DTOs used by summarize_bfres
# -----------------------------

@dataclass
class BfresMaterialInfo:
    model: str
    name: str
    samplers: int
    shader_params: int
    render_infos: int
    texture_refs: List[str]


@dataclass
class BfresShapeInfo:
    model: str
    name: str
    material: str
    meshes: int
    vertex_count: int


@dataclass
class BfresModelInfo:
    name: str
    bones: int
    shapes: int
    materials: int
    vertex_buffers: int
    total_vertices: int


@dataclass
class BfresAnimInfo:
    name: str
    frame_count: int
    bone_anims: int
    curves: int


@dataclass
class BfresSummary:
    path: str
    file_size: int
    platform: str
    name: str
    version: str
    alignment: int
    models: List[BfresModelInfo]
    shapes: List[BfresShapeInfo]
    materials: List[BfresMaterialInfo]
    skeletal_anims: List[BfresAnimInfo]
    external_files: List[str]
    relocation_entries: int


def summarize(res_file: ResFile, path: str = "", data: bytes = b"") -> BfresSummary:
    models, shapes, materials = [], [], []
    for model in res_file.models.values():
        bones = len(model.skeleton.bones) if model.skeleton else 0
        models.append(BfresModelInfo(model.name, bones, len(model.shapes), len(model.materials),
                                     len(model.vertex_buffers), model.total_vertex_count))
        material_names = model.materials.keys()
        for shape in model.shapes.values():
            material = (material_names[shape.material_index]
                        if shape.material_index < len(material_names) else "?")
            vertices = shape.vertex_buffer.vertex_count if shape.vertex_buffer else 0
            shapes.append(BfresShapeInfo(model.name, shape.name, material, len(shape.meshes), vertices))
        for material in model.materials.values():
            materials.append(BfresMaterialInfo(model.name, material.name, len(material.samplers),
                                               len(material.shader_params), len(material.render_infos),
                                               list(material.texture_refs)))

    anims = [
        BfresAnimInfo(anim.name, anim.frame_count, len(anim.bone_anims),
                      sum(len(ba.curves) for ba in anim.bone_anims))
        for anim in res_file.skeletal_anims.values()
    ]
    relocation_entries = sum(len(s.entries) for s in read_relocations(data)) if data else 0

    return BfresSummary(
        path=path,
        file_size=len(data),
        platform=res_file.platform.name,
        name=res_file.name or "",
        version=res_file.version_string,
        alignment=res_file.alignment,
        models=models,
        shapes=shapes,
        materials=materials,
        skeletal_anims=anims,
        external_files=res_file.external_files.keys(),
        relocation_entries=relocation_entries,
    )


def summarize_bfres(path: str) -> BfresSummary:
    with open(path, "rb") as f:
        data = f.read()
    return summarize(ResFile.from_bytes(data), os.path.abspath(path), data)
