from .reader import read_construction, read_ggb_file, DocumentError
from .document import ConstructionDocument, ElementNode, CommandNode, CommandArg, ExpressionNode
from .commands import dispatch_command
from .classify import classify
from .model import GeometricModel
from .semantics import build_semantics
from .bounds import Bounds, compute_bounds, clip_line, clip_ray
from .expressions import ExpressionError, to_tikz_expression, split_function_domains
from .options import TranslateOptions, OptionsError
from .tikz_codegen import generate_tikz_code, generate_tikz_document, latex_escape_keep_math
from .layout import refine_point_labels, fit_picture_scale
from .fallback import GeometryQuery, list_objects, render_object_listing
from .translate import (
    translate,
    translate_document,
    translate_file,
    translate_from_query,
    TranslationResult,
)

__all__ = [
    'read_construction',
    'read_ggb_file',
    'DocumentError',
    'ConstructionDocument',
    'ElementNode',
    'CommandNode',
    'CommandArg',
    'ExpressionNode',
    'dispatch_command',
    'classify',
    'GeometricModel',
    'build_semantics',
    'Bounds',
    'compute_bounds',
    'clip_line',
    'clip_ray',
    'ExpressionError',
    'to_tikz_expression',
    'split_function_domains',
    'TranslateOptions',
    'OptionsError',
    'generate_tikz_code',
    'generate_tikz_document',
    'latex_escape_keep_math',
    'refine_point_labels',
    'fit_picture_scale',
    'GeometryQuery',
    'list_objects',
    'render_object_listing',
    'translate',
    'translate_document',
    'translate_file',
    'translate_from_query',
    'TranslationResult',
]
