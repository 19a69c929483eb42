"""End-to-end translation of a construction document into TikZ."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .bounds import Bounds
from .classify import classify
from .document import ConstructionDocument
from .fallback import GeometryQuery, ObjectListing, list_objects, render_object_listing
from .layout import fit_picture_scale, refine_point_labels
from .model import GeometricModel
from .options import TranslateOptions
from .reader import read_construction, read_ggb_file
from .semantics import build_semantics
from .tikz_codegen import generate_tikz_code, scene_bounds, wrap_output

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    tikz: str
    model: GeometricModel
    bounds: Optional[Bounds]
    options: TranslateOptions
    listing: Optional[ObjectListing] = None
    semantics: Dict[str, Any] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return self.listing is not None


def _postprocess(picture: str, model: GeometricModel, options: TranslateOptions) -> str:
    if options.refine_labels:
        points = [p.coord for p in model.points if p.visible and p.label in model.point_index]
        picture = refine_point_labels(
            picture,
            points,
            offset_pt=options.label_offset_pt,
            font_pt=options.label_font_pt,
            max_shift_pt=options.label_max_shift_pt,
        )
    if options.fit_scale:
        picture = fit_picture_scale(
            picture,
            target_width_cm=options.target_width_cm,
            target_height_cm=options.target_height_cm,
            priority=options.scale_priority,
        )
    return picture


def _translate_validated(document: ConstructionDocument, options: TranslateOptions) -> TranslationResult:
    model = classify(document)
    logger.info(
        "Classified %d element(s): %d point(s), %d line(s), %d conic(s), %d function(s), %d angle(s)",
        model.stats.total,
        len(model.points),
        len(model.lines),
        len(model.conics),
        len(model.functions),
        len(model.angles),
    )

    bounds = scene_bounds(model, options)
    logger.info(
        "Viewport x=[%.2f, %.2f] y=[%.2f, %.2f]%s",
        bounds.xmin,
        bounds.xmax,
        bounds.ymin,
        bounds.ymax,
        " (smart)" if options.smart_bounds else "",
    )

    picture = generate_tikz_code(model, options, bounds)
    picture = _postprocess(picture, model, options)
    tikz = wrap_output(picture, options)
    logger.info("Generated %d line(s) of TikZ in %s mode", tikz.count("\n"), options.output_mode)
    return TranslationResult(
        tikz=tikz,
        model=model,
        bounds=bounds,
        options=options,
        semantics=build_semantics(model),
    )


def translate_document(
    document: ConstructionDocument,
    options: Optional[TranslateOptions] = None,
) -> TranslationResult:
    options = (options or TranslateOptions()).validate()
    return _translate_validated(document, options)


def translate(xml_text: str, options: Optional[TranslateOptions] = None) -> TranslationResult:
    """Translate construction XML text.

    Raises ``DocumentError`` for malformed XML and ``OptionsError`` for
    invalid options; everything else degrades to comments in the output.
    """
    options = (options or TranslateOptions()).validate()
    return _translate_validated(read_construction(xml_text), options)


def translate_file(path: Union[str, Path], options: Optional[TranslateOptions] = None) -> TranslationResult:
    """Translate a ``.ggb`` archive or a plain XML file."""
    options = (options or TranslateOptions()).validate()
    document = read_ggb_file(path)
    logger.info("Read construction from %s", path)
    return _translate_validated(document, options)


def translate_from_query(
    query: Optional[GeometryQuery],
    options: Optional[TranslateOptions] = None,
) -> TranslationResult:
    """Translate through a live geometry instance.

    Uses the instance's XML when it exposes a non-empty ``get_xml()``;
    otherwise falls back to a comment listing of the object names.
    """
    options = (options or TranslateOptions()).validate()
    get_xml = getattr(query, "get_xml", None)
    xml_text = get_xml() if callable(get_xml) else None
    if xml_text:
        return _translate_validated(read_construction(xml_text), options)

    logger.warning("No construction document available, emitting object listing only")
    listing = list_objects(query)
    return TranslationResult(
        tikz=wrap_output(render_object_listing(listing), options),
        model=GeometricModel(),
        bounds=None,
        options=options,
        listing=listing,
    )


__all__ = [
    "TranslationResult",
    "translate",
    "translate_document",
    "translate_file",
    "translate_from_query",
]
