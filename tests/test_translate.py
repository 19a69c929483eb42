import logging
import zipfile

import pytest

from ggb2tikz import (
    DocumentError,
    OptionsError,
    TranslateOptions,
    read_construction,
    translate,
    translate_document,
    translate_file,
    translate_from_query,
)

TRIANGLE = """<?xml version="1.0" encoding="utf-8"?>
<geogebra format="5.0">
  <construction>
    <element type="point" label="A"><coords x="0" y="0" z="1"/></element>
    <element type="point" label="B"><coords x="4" y="0" z="1"/></element>
    <element type="point" label="C"><coords x="0" y="3" z="1"/></element>
    <command name="Polygon"><input a0="A" a1="B" a2="C"/><output a0="poly1" a1="c" a2="a" a3="b"/></command>
    <element type="polygon" label="poly1"/>
    <element type="segment" label="c"/>
    <element type="segment" label="a"/>
    <element type="segment" label="b"/>
  </construction>
</geogebra>
"""


class LiveQuery:
    def __init__(self, xml=None, objects=None):
        self._xml = xml
        self._objects = objects or {}

    def get_xml(self):
        return self._xml

    def get_all_object_names(self):
        return list(self._objects)

    def get_object_type(self, name):
        return self._objects[name]


def test_translate_standalone_document():
    result = translate(TRIANGLE)

    assert result.tikz.startswith("% TikZ code generated from a GeoGebra construction")
    assert result.tikz.endswith("\\end{document}\n")
    assert r"(A) -- (B) -- (C) -- cycle; % poly1" in result.tikz
    assert not result.degraded
    # smart bounds around the visible points
    assert result.bounds.as_tuple() == pytest.approx((-0.8, 4.8, -0.8, 3.8))
    assert result.semantics["stats"]["total"] == 7


def test_explicit_bounds_override_smart_bounds():
    result = translate(TRIANGLE, TranslateOptions().with_bounds(xmin=-6.0))

    assert result.bounds.xmin == -6.0
    assert result.bounds.xmax == pytest.approx(4.8)


def test_invalid_input_raises():
    with pytest.raises(DocumentError):
        translate("<geogebra><construction>")
    with pytest.raises(OptionsError):
        translate(TRIANGLE, TranslateOptions(output_mode="svg"))


def test_label_refinement_and_scale_fitting():
    options = TranslateOptions(output_mode="tikz", refine_labels=True, fit_scale=True)
    result = translate(TRIANGLE, options)

    assert result.tikz.startswith(r"\begin{tikzpicture}[scale=1.6, >=Stealth]")
    assert r"font=\fontsize{12pt}{13pt}\selectfont] {$A$}" in result.tikz
    assert "node[above right, xshift=0pt, yshift=0pt] {$A$}" not in result.tikz


def test_translate_document_and_logging(caplog):
    caplog.set_level(logging.INFO, logger="ggb2tikz")
    result = translate_document(read_construction(TRIANGLE), TranslateOptions(output_mode="figure"))

    assert result.tikz.startswith("\\begin{figure}[htbp]")
    assert any("Viewport" in record.getMessage() for record in caplog.records)


def test_translate_archive_and_plain_files(tmp_path):
    archive = tmp_path / "triangle.ggb"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("geogebra.xml", TRIANGLE)
    plain = tmp_path / "triangle.xml"
    plain.write_text(TRIANGLE, encoding="utf-8")

    options = TranslateOptions(output_mode="tikz")
    assert translate_file(archive, options).tikz == translate_file(plain, options).tikz


def test_query_with_xml_translates_normally():
    result = translate_from_query(LiveQuery(xml=TRIANGLE))

    assert not result.degraded
    assert "% poly1" in result.tikz


def test_query_without_xml_degrades_to_listing(caplog):
    caplog.set_level(logging.WARNING, logger="ggb2tikz")
    result = translate_from_query(LiveQuery(objects={"A": "point", "f": "line"}), TranslateOptions(output_mode="tikz"))

    assert result.degraded
    assert result.bounds is None
    assert result.model.points == ()
    assert "    % points: A" in result.tikz
    assert "    % lines: f" in result.tikz
    assert result.tikz.endswith("\\end{tikzpicture}\n")
    assert any("object listing only" in record.getMessage() for record in caplog.records)


def test_missing_query_gives_empty_listing():
    result = translate_from_query(None)

    assert result.degraded
    assert "% (no objects)" in result.tikz


def test_overflowing_radius_degrades_instead_of_aborting():
    xml = (
        '<geogebra><construction><element type="point" label="M"><coords x="1" y="1" z="1"/></element>'
        '<command name="Circle"><input a0="M" a1="1e400"/><output a0="c"/></command>'
        '<element type="conic" label="c"/></construction></geogebra>'
    )
    result = translate(xml, TranslateOptions(output_mode="tikz"))

    assert "% Circle c: incomplete parameters" in result.tikz
    assert r"\draw[black, thick] (M) circle" not in result.tikz
