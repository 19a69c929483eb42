import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from ggb2tikz import DocumentError, OptionsError, TranslateOptions, translate_file
from ggb2tikz.options import BOUND_AXES, OUTPUT_MODES

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _write_text(path: str, text: str) -> None:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Translate GeoGebra constructions to TikZ")
    parser.add_argument("path", help="Path to a .ggb archive or construction XML file")
    parser.add_argument("--output", help="Write the TikZ text to this path instead of stdout")
    parser.add_argument(
        "--mode",
        choices=OUTPUT_MODES,
        default="standalone",
        help="Output wrapping (default: standalone)",
    )
    parser.add_argument(
        "--no-smart-bounds",
        action="store_true",
        help="Use the fixed viewport instead of fitting it to visible points",
    )
    for axis in BOUND_AXES:
        parser.add_argument(f"--{axis}", type=float, help=f"Fix the viewport {axis}")
    parser.add_argument("--no-axis", action="store_true", help="Do not draw the axes or the origin marker")
    parser.add_argument("--grid", action="store_true", help="Draw a unit grid over the viewport")
    parser.add_argument(
        "--source-style",
        action="store_true",
        help="Use colors and line styles stored in the construction",
    )
    parser.add_argument("--refine-labels", action="store_true", help="Re-place point labels to avoid overlaps")
    parser.add_argument("--fit-scale", action="store_true", help="Rescale the picture to about 9cm")
    parser.add_argument("--semantics", help="Dump the semantic report as JSON to this path")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    bounds: Dict[str, float] = {
        axis: getattr(args, axis) for axis in BOUND_AXES if getattr(args, axis) is not None
    }
    try:
        options = TranslateOptions(
            output_mode=args.mode,
            smart_bounds=not args.no_smart_bounds,
            show_axis=not args.no_axis,
            show_grid=args.grid,
            use_source_style=args.source_style,
            refine_labels=args.refine_labels,
            fit_scale=args.fit_scale,
        ).with_bounds(**bounds)
        result = translate_file(args.path, options)
    except (DocumentError, OptionsError, OSError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1)

    if args.output:
        _write_text(args.output, result.tikz)
        logger.info("Wrote TikZ to %s", args.output)
    else:
        sys.stdout.write(result.tikz)

    if args.semantics:
        _write_text(args.semantics, json.dumps(result.semantics, indent=2, ensure_ascii=False) + "\n")
        logger.info("Wrote semantic report to %s", args.semantics)


if __name__ == "__main__":
    main(sys.argv[1:])
