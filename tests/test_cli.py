"""Tests for the bfrescli commands."""
import json
from pathlib import Path

import pytest

from bfrescli.main import build_parser, main
from conftest import build_res_file
from libbfres.resfile import ResFile, detect_platform
from libbfres.stream import SWITCH, WIIU


@pytest.fixture
def bfres_path(tmp_path, platform):
    path = tmp_path / 'sample.bfres'
    path.write_bytes(build_res_file(platform).to_bytes())
    return str(path)


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_summary(bfres_path, capsys):
    assert main(['summary', bfres_path]) == 0
    out = capsys.readouterr().out
    assert 'sample' in out
    assert 'mat0' in out
    assert 'walk' in out
    assert 'tiny.bin' in out


def test_dump_dict(bfres_path, capsys):
    assert main(['dump-dict', bfres_path]) == 0
    out = capsys.readouterr().out
    assert '(root)' in out
    assert 'body' in out


def test_relocations(bfres_path, platform, capsys):
    assert main(['relocations', bfres_path, '--entries']) == 0
    out = capsys.readouterr().out
    if platform is SWITCH:
        assert 'Relocation sections' in out
        assert 'Relocation entries' in out
    else:
        assert 'No relocation table' in out


def test_verify_roundtrip(bfres_path, capsys):
    assert main(['verify-roundtrip', bfres_path]) == 0
    assert 'IDENTICAL' in capsys.readouterr().out


def test_verify_roundtrip_reports_diff(tmp_path, capsys):
    data = bytearray(build_res_file(SWITCH).to_bytes())
    # the string table size field is recomputed on save
    data[0x78] ^= 0x10
    path = tmp_path / 'edited.bfres'
    path.write_bytes(bytes(data))
    assert main(['verify-roundtrip', str(path)]) == 1
    assert 'first difference at 0x78' in capsys.readouterr().out


@pytest.mark.parametrize('target', ['wiiu', 'switch'])
def test_convert(bfres_path, tmp_path, target):
    out = tmp_path / 'out.bfres'
    assert main(['convert', bfres_path, '--out', str(out), '--platform', target]) == 0
    data = out.read_bytes()
    assert detect_platform(data) is {'wiiu': WIIU, 'switch': SWITCH}[target]
    assert ResFile.from_bytes(data).models.keys() == ['body', 'head']


def test_export_json(bfres_path, tmp_path):
    out = tmp_path / 'mat0.json'
    assert main(['export-json', bfres_path, 'head', 'mat0', '--out', str(out)]) == 0
    d = json.loads(out.read_text(encoding='utf-8'))
    assert d['name'] == 'mat0'
    assert d['texture_refs'] == ['tex_albedo']


def test_export_json_unknown_material(bfres_path, capsys):
    assert main(['export-json', bfres_path, 'head', 'nope']) == 1
    assert 'nope' in capsys.readouterr().out


def test_bad_file_is_reported(tmp_path, capsys):
    path = tmp_path / 'junk.bfres'
    path.write_bytes(b'JUNK' + bytes(60))
    assert main(['summary', str(path)]) == 1
    assert 'InvalidSignatureError' in capsys.readouterr().out


def test_verify_roundtrip_writes_output(bfres_path, tmp_path, capsys):
    out = tmp_path / 'resaved.bfres'
    assert main(['verify-roundtrip', bfres_path, '--out', str(out)]) == 0
    assert out.read_bytes() == Path(bfres_path).read_bytes()
    assert 'IDENTICAL' in capsys.readouterr().out
