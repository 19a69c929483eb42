import json
from types import SimpleNamespace

import pytest

import ggb2tikz.__main__ as cli

SCENE = """<geogebra>
  <construction>
    <element type="point" label="A"><coords x="1" y="2" z="1"/></element>
  </construction>
</geogebra>
"""


def test_main_writes_tikz_and_semantics(tmp_path):
    scene_path = tmp_path / "scene.xml"
    scene_path.write_text(SCENE, encoding="utf-8")
    tikz_path = tmp_path / "out" / "scene.tex"
    semantics_path = tmp_path / "out" / "scene.json"

    cli.main([str(scene_path), "--output", str(tikz_path), "--semantics", str(semantics_path), "--mode", "tikz"])

    tikz = tikz_path.read_text(encoding="utf-8")
    assert tikz.startswith(r"\begin{tikzpicture}")
    assert r"\coordinate (A) at (1.00,2.00);" in tikz
    report = json.loads(semantics_path.read_text(encoding="utf-8"))
    assert report["pointRelations"][0]["label"] == "A"


def test_main_builds_options_from_flags(tmp_path, monkeypatch, capsys):
    seen = []

    def _translate_file(path, options):
        seen.append((path, options))
        return SimpleNamespace(tikz="tikz document\n", semantics={})

    monkeypatch.setattr(cli, "translate_file", _translate_file)

    cli.main(
        [
            "scene.ggb",
            "--mode",
            "figure",
            "--no-smart-bounds",
            "--xmin",
            "-3",
            "--no-axis",
            "--grid",
            "--source-style",
            "--refine-labels",
            "--fit-scale",
        ]
    )

    assert capsys.readouterr().out == "tikz document\n"
    path, options = seen[0]
    assert path == "scene.ggb"
    assert options.output_mode == "figure"
    assert not options.smart_bounds
    assert options.xmin == -3.0
    assert options.bounds_overrides == frozenset({"xmin"})
    assert not options.show_axis
    assert options.show_grid
    assert options.use_source_style
    assert options.refine_labels and options.fit_scale


def test_main_exits_on_malformed_document(tmp_path):
    scene_path = tmp_path / "broken.xml"
    scene_path.write_text("<geogebra><construction>", encoding="utf-8")

    with pytest.raises(SystemExit) as info:
        cli.main([str(scene_path)])
    assert info.value.code == 1


def test_main_exits_on_invalid_bounds(tmp_path):
    scene_path = tmp_path / "scene.xml"
    scene_path.write_text(SCENE, encoding="utf-8")

    with pytest.raises(SystemExit) as info:
        cli.main([str(scene_path), "--xmin", "5", "--xmax", "1"])
    assert info.value.code == 1


def test_main_exits_on_missing_file(tmp_path):
    with pytest.raises(SystemExit) as info:
        cli.main([str(tmp_path / "missing.ggb")])
    assert info.value.code == 1
