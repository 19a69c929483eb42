"""Serializable semantic report of a classified construction."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from .model import ConicEntity, GeometricModel, LineEntity, PointRef
from .solvers import CircleForm, EllipseForm, HyperbolaForm, ParabolaForm, Point2


def _coord(value: Optional[Point2]) -> Optional[Dict[str, float]]:
    if value is None:
        return None
    return {"x": round(value[0], 8), "y": round(value[1], 8)}


def _ref(ref: PointRef) -> Dict[str, Any]:
    return {"label": ref.label, "coord": _coord(ref.coord)}


def _line_relation(line: LineEntity) -> Dict[str, Any]:
    rel: Dict[str, Any] = {
        "label": line.label,
        "commandName": line.command_name,
        "commandInputs": list(line.command_inputs),
        "through": {"p1": _ref(line.point1), "p2": _ref(line.point2)},
        "tangent": None,
        "orthogonal": None,
        "angularBisector": None,
    }
    if line.tangent is not None:
        rel["tangent"] = {
            "throughPoint": _ref(line.tangent.through),
            "conicLabel": line.tangent.conic_label,
            "tangentPoint": _coord(line.tangent.tangent_point),
        }
    if line.orthogonal is not None:
        rel["orthogonal"] = {
            "fromPoint": _ref(line.orthogonal.from_point),
            "targetLabel": line.orthogonal.target_label,
            "targetType": line.orthogonal.target_type,
            "foot": _coord(line.orthogonal.foot),
        }
    if line.bisector is not None:
        rel["angularBisector"] = {
            "point1": _ref(line.bisector.point1),
            "vertex": _ref(line.bisector.vertex),
            "point2": _ref(line.bisector.point2),
        }
    return rel


def _canonical(conic: ConicEntity) -> Optional[Dict[str, Any]]:
    form = conic.canonical
    if form is None:
        return None
    if isinstance(form, CircleForm):
        params = {"center": _coord((form.h, form.k)), "radius": round(form.r, 8)}
    elif isinstance(form, (EllipseForm, HyperbolaForm)):
        params = {
            "center": _coord((form.h, form.k)),
            "a": round(form.a, 8),
            "b": round(form.b, 8),
            "thetaDeg": round(math.degrees(form.theta), 8),
        }
        if isinstance(form, HyperbolaForm):
            params["mainAxis"] = form.main_axis
    elif isinstance(form, ParabolaForm):
        params = {
            "mode": form.mode,
            "a": round(form.a, 8),
            "b": round(form.b, 8),
            "c": round(form.c, 8),
            "thetaDeg": round(form.theta_deg, 8),
        }
    else:  # pragma: no cover - closed union
        params = {}
    return {"type": form.kind, "source": conic.canonical_source, **params}


def _conic_relation(conic: ConicEntity) -> Dict[str, Any]:
    return {
        "label": conic.label,
        "conicType": conic.conic_type,
        "semanticType": conic.semantic_type,
        "provenance": list(conic.provenance),
        "equation": conic.equation,
        "commandName": conic.command_name,
        "commandInputs": list(conic.command_inputs),
        "matrix": list(conic.matrix.to_ggb()) if conic.matrix is not None else None,
        "normalized": _canonical(conic),
    }


def build_semantics(model: GeometricModel) -> Dict[str, Any]:
    """Command graph, relations and unresolved items as plain dictionaries."""

    line_relations = [_line_relation(line) for line in model.lines]

    unresolved: List[Dict[str, str]] = []
    for line in model.lines:
        resolved = (
            line.point1.coord is not None
            or line.point2.coord is not None
            or (line.tangent is not None and line.tangent.tangent_point is not None)
            or (line.orthogonal is not None and line.orthogonal.foot is not None)
        )
        if not resolved:
            unresolved.append({"label": line.label, "type": "line", "reason": "missing_resolved_points"})
    for conic in model.conics:
        if conic.canonical is None:
            unresolved.append({"label": conic.label, "type": "conic", "reason": "no_canonical_form"})

    return {
        "mode": "semantic+resolved",
        "commandGraph": [
            {"name": cmd.name, "inputs": [a.value for a in cmd.inputs], "outputs": list(cmd.outputs)}
            for cmd in model.command_graph
        ],
        "derivedPoints": [
            {"label": d.label, "kind": d.kind, "ownerLine": d.owner_line, "coord": _coord(d.coord)}
            for d in model.derived_points
        ],
        "lineRelations": line_relations,
        "conicRelations": [_conic_relation(conic) for conic in model.conics],
        "pointRelations": [
            {
                "label": p.label,
                "sourceType": p.provenance,
                "commandName": p.command_name,
                "sourceInputs": list(p.command_inputs),
                "sourceObjects": list(p.source_objects),
                "coord": _coord(p.coord),
                "exp": p.exp,
            }
            for p in model.points
        ],
        "unresolved": unresolved,
        "stats": model.stats.as_dict(),
    }


__all__ = ["build_semantics"]
