import zipfile

import pytest

from ggb2tikz.reader import DocumentError, is_number, parse_coordinate, read_construction, read_ggb_file


SAMPLE = """<?xml version="1.0" encoding="utf-8"?>
<geogebra format="5.0">
  <euclidianView/>
  <construction title="" author="" date="">
    <expression label="A" exp="(1, 2)"/>
    <element type="point" label="A">
      <show object="true" label="true"/>
      <objColor r="255" g="0" b="0" alpha="0.25"/>
      <coords x="1" y="2" z="1"/>
      <pointSize val="7"/>
    </element>
    <element type="point" label="B">
      <show object="false" label="true"/>
      <coords x="6" y="8" z="2"/>
    </element>
    <command name="Segment">
      <input a0="A" a1="B"/>
      <output a0="f"/>
    </command>
    <element type="segment" label="f">
      <lineStyle thickness="7" type="10"/>
      <coords x="-1" y="1" z="-1"/>
    </element>
    <command name="Circle">
      <input a0="(0, 0)" a1="2.5"/>
      <output a0="c" a1=""/>
    </command>
    <element type="conic" label="c">
      <matrix A0="1" A1="1" A2="-6.25" A3="0" A4="0" A5="0"/>
    </element>
    <command name="Broken">
      <input a0="A"/>
    </command>
    <element type="textfield" label="t1"/>
  </construction>
</geogebra>
"""


def test_read_construction_indexes_elements_commands_and_expressions():
    doc = read_construction(SAMPLE)

    assert [el.label for el in doc.element_list] == ["A", "B", "f", "c", "t1"]
    assert set(doc.elements) == {"A", "B", "f", "c", "t1"}
    assert doc.expressions["A"].exp == "(1, 2)"
    assert set(doc.commands) == {"f", "c"}
    assert [cmd.name for cmd in doc.command_list] == ["Segment", "Circle"]


def test_element_style_and_visibility():
    doc = read_construction(SAMPLE)

    a = doc.elements["A"]
    assert a.visible is True
    assert a.style.color == "#ff0000"
    assert a.style.alpha == pytest.approx(0.25)
    assert a.style.point_size == 7
    assert a.coords == (1.0, 2.0, 1.0)

    assert doc.elements["B"].visible is False

    f = doc.elements["f"]
    assert f.style.line_thickness == 7
    assert f.style.line_type == 10
    assert f.style.opacity == 255


def test_conic_matrix_is_read_in_stored_order():
    doc = read_construction(SAMPLE)
    assert doc.elements["c"].matrix == (1.0, 1.0, -6.25, 0.0, 0.0, 0.0)


def test_command_arguments_are_preclassified():
    doc = read_construction(SAMPLE)
    circle = doc.commands["c"]

    center, radius = circle.inputs
    assert center.is_coordinate
    assert center.coord == (0.0, 0.0)
    assert radius.is_number
    assert radius.number == pytest.approx(2.5)
    # empty output slots are dropped
    assert circle.outputs == ("c",)


def test_unknown_element_type_keeps_raw_xml():
    doc = read_construction(SAMPLE)

    assert [el.label for el in doc.others] == ["t1"]
    assert "textfield" in doc.others[0].raw


def test_commands_without_output_are_skipped():
    doc = read_construction(SAMPLE)
    assert all(cmd.name != "Broken" for cmd in doc.command_list)


def test_equation_arguments_are_flagged():
    xml = """<construction>
      <command name="Parabola"><input a0="F" a1="y = -1"/><output a0="p"/></command>
    </construction>"""
    doc = read_construction(xml)

    focus, directrix = doc.commands["p"].inputs
    assert not focus.is_equation
    assert directrix.is_equation
    assert not directrix.is_number


def test_missing_construction_node_yields_empty_document():
    doc = read_construction("<geogebra><euclidianView/></geogebra>")

    assert doc.element_list == []
    assert doc.command_list == []


def test_malformed_xml_raises_document_error():
    with pytest.raises(DocumentError):
        read_construction("<construction><element type='point'></construction>")


def test_read_ggb_archive(tmp_path):
    path = tmp_path / "figure.ggb"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("geogebra.xml", SAMPLE)

    doc = read_ggb_file(path)
    assert "A" in doc.elements


def test_read_ggb_archive_without_construction_member(tmp_path):
    path = tmp_path / "empty.ggb"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("geogebra_thumbnail.png", b"")

    with pytest.raises(DocumentError):
        read_ggb_file(path)


def test_read_plain_xml_file(tmp_path):
    path = tmp_path / "figure.xml"
    path.write_text(SAMPLE, encoding="utf-8")

    assert "c" in read_ggb_file(path).elements


def test_argument_shape_helpers():
    assert parse_coordinate("(1.5, -2)") == (1.5, -2.0)
    assert parse_coordinate("A") is None
    assert is_number("-3.25")
    assert is_number("1e-3")
    assert not is_number("x + 1")


def test_overflowing_literals_are_not_numbers():
    assert not is_number("1e400")
    assert parse_coordinate("(1e400, 0)") is None

    document = read_construction(
        '<geogebra><construction><command name="Circle"><input a0="(0, 0)" a1="1e400"/>'
        '<output a0="c"/></command></construction></geogebra>'
    )
    args = document.commands["c"].inputs
    assert args[0].is_coordinate
    assert not args[1].is_number
