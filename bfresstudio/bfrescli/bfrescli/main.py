from __future__ import annotations
import argparse
import hashlib
import logging
import os
import sys
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

# Import libbfres via relative path add (works without installing the repo)
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
REPO_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
LIBBFRES_ROOT = os.path.join(REPO_ROOT, "libbfres")
if LIBBFRES_ROOT not in sys.path:
    sys.path.insert(0, LIBBFRES_ROOT)

from libbfres.errors import BfresError
from libbfres.resfile import ResFile, read_relocations
from libbfres.stream import PLATFORMS
from libbfres.summary import summarize_bfres
from libbfres.textconvert import to_json

console = Console()

def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()

def cmd_summary(args: argparse.Namespace) -> int:
    s = summarize_bfres(args.bfres)
    console.print(f"[bold]File:[/bold] {s.path}")
    console.print(f"[bold]Size:[/bold] {s.file_size} bytes")
    console.print(f"[bold]Name:[/bold] {s.name}   [bold]Platform:[/bold] {s.platform}")
    console.print(f"[bold]Version:[/bold] {s.version}   [bold]Alignment:[/bold] 0x{s.alignment:X}")
    if s.platform == "Switch":
        console.print(f"[bold]Relocation entries:[/bold] {s.relocation_entries}")

    mt = Table(title="Models")
    mt.add_column("Name", overflow="fold")
    mt.add_column("Bones", justify="right")
    mt.add_column("Shapes", justify="right")
    mt.add_column("Materials", justify="right")
    mt.add_column("Vertex buffers", justify="right")
    mt.add_column("Vertices", justify="right")
    if s.models:
        for m in s.models:
            mt.add_row(m.name, str(m.bones), str(m.shapes), str(m.materials), str(m.vertex_buffers), str(m.total_vertices))
    else:
        mt.add_row("(none)", "-", "-", "-", "-", "-")
    console.print(mt)

    st = Table(title="Shapes")
    st.add_column("Model", overflow="fold")
    st.add_column("Name", overflow="fold")
    st.add_column("Material", overflow="fold")
    st.add_column("Meshes", justify="right")
    st.add_column("Vertices", justify="right")
    for sh in s.shapes:
        st.add_row(sh.model, sh.name, sh.material, str(sh.meshes), str(sh.vertex_count))
    if s.shapes:
        console.print(st)

    t = Table(title="Materials")
    t.add_column("Model", overflow="fold")
    t.add_column("Name", overflow="fold")
    t.add_column("Samplers", justify="right")
    t.add_column("Params", justify="right")
    t.add_column("Render infos", justify="right")
    t.add_column("Textures", overflow="fold")
    for m in s.materials:
        t.add_row(m.model, m.name, str(m.samplers), str(m.shader_params), str(m.render_infos), ", ".join(m.texture_refs))
    if s.materials:
        console.print(t)

    at = Table(title="Skeletal animations")
    at.add_column("Name", overflow="fold")
    at.add_column("Frames", justify="right")
    at.add_column("Bone anims", justify="right")
    at.add_column("Curves", justify="right")
    for a in s.skeletal_anims:
        at.add_row(a.name, str(a.frame_count), str(a.bone_anims), str(a.curves))
    if s.skeletal_anims:
        console.print(at)

    if s.external_files:
        console.print(f"[bold]External files:[/bold] {', '.join(s.external_files)}")
    return 0

def _dict_table(title: str, res_dict) -> Table:
    t = Table(title=title)
    t.add_column("#", justify="right")
    t.add_column("Reference", justify="right")
    t.add_column("Left", justify="right")
    t.add_column("Right", justify="right")
    t.add_column("Key", overflow="fold")
    res_dict.rebuild()
    for i, (ref, left, right, key) in enumerate(res_dict.node_table()):
        t.add_row(str(i), f"0x{ref:X}", str(left), str(right), "(root)" if i == 0 else key)
    return t

def cmd_dump_dict(args: argparse.Namespace) -> int:
    res = ResFile.from_bytes(_read(args.bfres))
    console.print(_dict_table("Models", res.models))
    for model in res.models.values():
        console.print(_dict_table(f"{model.name}: materials", model.materials))
        console.print(_dict_table(f"{model.name}: shapes", model.shapes))
    if res.skeletal_anims:
        console.print(_dict_table("Skeletal animations", res.skeletal_anims))
    return 0

def cmd_relocations(args: argparse.Namespace) -> int:
    sections = read_relocations(_read(args.bfres))
    if not sections:
        console.print("[yellow]No relocation table (WiiU file or empty table).[/yellow]")
        return 0
    names = ["File", "Index buffer", "Vertex buffer", "Memory pool", "External files"]
    st = Table(title="Relocation sections")
    st.add_column("Section")
    st.add_column("Position", justify="right")
    st.add_column("Size", justify="right")
    st.add_column("First entry", justify="right")
    st.add_column("Entries", justify="right")
    for i, sec in enumerate(sections):
        st.add_row(names[i] if i < len(names) else str(i), f"0x{sec.position:X}", f"0x{sec.size:X}", str(sec.entry_index), str(len(sec.entries)))
    console.print(st)

    if args.entries:
        et = Table(title="Relocation entries")
        et.add_column("Section")
        et.add_column("Position", justify="right")
        et.add_column("Offsets", justify="right")
        et.add_column("Structs", justify="right")
        et.add_column("Padding", justify="right")
        for sec in sections:
            for e in sec.entries:
                et.add_row(e.section.name, f"0x{e.position:X}", str(e.offset_count), str(e.struct_count), str(e.padding_count))
        console.print(et)
    return 0

def cmd_verify_roundtrip(args: argparse.Namespace) -> int:
    data = _read(args.bfres)
    out = ResFile.from_bytes(data).to_bytes()
    if args.out:
        with open(args.out, "wb") as f:
            f.write(out)
    a = hashlib.sha256(data).hexdigest()
    b = hashlib.sha256(out).hexdigest()
    console.print(f"IN : sha256={a} ({len(data)} bytes)")
    console.print(f"OUT: sha256={b} ({len(out)} bytes)")
    if a == b:
        console.print("[green]IDENTICAL[/green]")
        return 0
    first = next((i for i, (x, y) in enumerate(zip(data, out)) if x != y), min(len(data), len(out)))
    console.print(f"[red]DIFF[/red] (first difference at 0x{first:X})")
    return 1

def cmd_convert(args: argparse.Namespace) -> int:
    res = ResFile.from_bytes(_read(args.bfres))
    source = res.platform.name
    if args.platform:
        res.convert(args.platform)
    res.to_file(args.out)
    console.print(f"[green]Done.[/green] {source} -> {res.platform.name}: {args.out}")
    return 0

def cmd_export_json(args: argparse.Namespace) -> int:
    res = ResFile.from_bytes(_read(args.bfres))
    model = res.models.get(args.model)
    if model is None:
        console.print(f"[red]No model named {args.model!r}[/red]")
        return 1
    material = model.materials.get(args.material)
    if material is None:
        console.print(f"[red]No material named {args.material!r} in {args.model}[/red]")
        return 1
    text = to_json(material)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(text)
        console.print(f"[green]Wrote[/green] {args.out}")
    else:
        console.print_json(text)
    return 0

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bfrescli")
    p.add_argument("-v", "--verbose", action="store_true", help="Log codec progress")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("summary", help="Print info about a BFRES file")
    s.add_argument("bfres")
    s.set_defaults(fn=cmd_summary)

    d = sub.add_parser("dump-dict", help="Print the ResDict trie nodes of models, materials and shapes")
    d.add_argument("bfres")
    d.set_defaults(fn=cmd_dump_dict)

    r = sub.add_parser("relocations", help="Print the Switch relocation table")
    r.add_argument("bfres")
    r.add_argument("--entries", action="store_true", help="List every entry too")
    r.set_defaults(fn=cmd_relocations)

    v = sub.add_parser("verify-roundtrip", help="Load->save in memory and compare hashes")
    v.add_argument("bfres")
    v.add_argument("--out", help="Also write the re-saved file here")
    v.set_defaults(fn=cmd_verify_roundtrip)

    c = sub.add_parser("convert", help="Re-save a BFRES file, optionally for the other platform")
    c.add_argument("bfres")
    c.add_argument("--out", required=True)
    c.add_argument("--platform", choices=sorted(PLATFORMS))
    c.set_defaults(fn=cmd_convert)

    j = sub.add_parser("export-json", help="Export a material as JSON")
    j.add_argument("bfres")
    j.add_argument("model")
    j.add_argument("material")
    j.add_argument("--out")
    j.set_defaults(fn=cmd_export_json)

    return p

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    try:
        return int(args.fn(args))
    except BfresError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        return 1

if __name__ == "__main__":
    raise SystemExit(main())
