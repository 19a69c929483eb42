"""Degraded mode: list object names when no construction document is available."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)

BUCKETS = (
    "points",
    "functions",
    "segments",
    "polygons",
    "vectors",
    "rays",
    "lines",
    "conics",
    "conicparts",
    "others",
)

_TYPE_TO_BUCKET = {
    "point": "points",
    "function": "functions",
    "segment": "segments",
    "polygon": "polygons",
    "vector": "vectors",
    "ray": "rays",
    "line": "lines",
    "conic": "conics",
    "conicpart": "conicparts",
}


class GeometryQuery(Protocol):
    """Minimal read-only view of a live geometry instance."""

    def get_all_object_names(self) -> Iterable[str]:
        ...

    def get_object_type(self, name: str) -> Optional[str]:
        ...


ObjectListing = Dict[str, List[Dict[str, str]]]


def list_objects(query: Optional[GeometryQuery]) -> ObjectListing:
    """Group object names by their reported type."""
    listing: ObjectListing = {bucket: [] for bucket in BUCKETS}
    if query is None:
        return listing
    for name in query.get_all_object_names() or ():
        kind = str(query.get_object_type(name) or "other").lower()
        listing[_TYPE_TO_BUCKET.get(kind, "others")].append({"label": name, "type": kind})
    logger.debug("Listed %d object(s) through the query interface", sum(len(v) for v in listing.values()))
    return listing


def render_object_listing(listing: ObjectListing) -> str:
    lines = [
        "\\begin{tikzpicture}",
        "    % Construction document unavailable, object listing only",
    ]
    empty = True
    for bucket in BUCKETS:
        items = listing.get(bucket) or []
        if not items:
            continue
        empty = False
        lines.append(f"    % {bucket}: {', '.join(item['label'] for item in items)}")
    if empty:
        lines.append("    % (no objects)")
    lines.append("\\end{tikzpicture}")
    return "\n".join(lines)


__all__ = ["BUCKETS", "GeometryQuery", "ObjectListing", "list_objects", "render_object_listing"]
