from ggb2tikz.commands import (
    CircleCommand,
    GenericCommand,
    IntersectCommand,
    OrthogonalLineCommand,
    PolygonCommand,
    TriangleCircleCommand,
    dispatch_command,
)
from ggb2tikz.document import CommandArg, CommandNode
from ggb2tikz.reader import is_number


def _node(name, inputs=("A", "B"), outputs=("x",)):
    return CommandNode(
        name=name,
        inputs=tuple(CommandArg(index=i, value=v, is_number=is_number(v)) for i, v in enumerate(inputs)),
        outputs=tuple(outputs),
    )


def test_aliases_share_one_variant():
    assert isinstance(dispatch_command(_node("Intersect")), IntersectCommand)
    assert isinstance(dispatch_command(_node("IntersectPath")), IntersectCommand)
    assert isinstance(dispatch_command(_node("OrthogonalLine")), OrthogonalLineCommand)
    assert isinstance(dispatch_command(_node("PerpendicularLine")), OrthogonalLineCommand)
    for name in ("Incircle", "Circumcircle", "Excircle"):
        assert isinstance(dispatch_command(_node(name)), TriangleCircleCommand)
    for name in ("Polygon", "RigidPolygon", "RegularPolygon", "VectorPolygon"):
        assert isinstance(dispatch_command(_node(name)), PolygonCommand)


def test_unknown_command_is_generic():
    variant = dispatch_command(_node("Translate"))

    assert isinstance(variant, GenericCommand)
    assert variant.name == "Translate"


def test_missing_node_dispatches_to_none():
    assert dispatch_command(None) is None


def test_variant_accessors():
    variant = dispatch_command(_node("Circle", inputs=("O", "2"), outputs=("c",)))

    assert isinstance(variant, CircleCommand)
    assert variant.input_values == ("O", "2")
    assert variant.arg(1).value == "2"
    assert variant.arg(5) is None
    assert variant.output_index("c") == 0
    assert variant.output_index("missing") == -1


def test_regular_polygon_flag():
    regular = dispatch_command(_node("Polygon", inputs=("A", "B", "5")))
    plain = dispatch_command(_node("Polygon", inputs=("A", "B", "C")))

    assert regular.is_regular
    assert not plain.is_regular
