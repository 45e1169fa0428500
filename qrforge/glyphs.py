"""
Label glyphs: text -> filled 2D outline (matplotlib TextPath) -> extruded
solid (trimesh). Glyphs come out in the text's own frame: baseline along +X,
ascenders along +Y, extrusion along +Z starting at z=0.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import trimesh
from matplotlib.font_manager import FontProperties
from matplotlib.textpath import TextPath
from shapely.affinity import scale as shp_scale
from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union

from .geometry import MIN_AREA, empty_mesh, extrude, fix_valid

logger = logging.getLogger(__name__)

MM_PER_PT = 25.4 / 72.0  # TextPath sizes are in points


def _loops_to_geometry(loops) -> MultiPolygon:
    polys: List[Polygon] = []
    for arr in loops:
        if len(arr) < 3:
            continue
        p = Polygon([(float(x), float(y)) for x, y in arr])
        if not p.is_valid:
            p = fix_valid(p)
        if p.area > MIN_AREA:
            polys.append(p)

    if not polys:
        return MultiPolygon([])

    # Even-odd fill: a loop nested inside an odd number of loops is a counter.
    depths = []
    for i, p in enumerate(polys):
        pt = p.representative_point()
        depths.append(sum(
            1 for j, q in enumerate(polys)
            if j != i and q.area > p.area and q.contains(pt)
        ))

    # Each filled loop loses only its direct counters, so islands inside a
    # counter (the "C" of a copyright sign) stay filled.
    pieces = []
    for p, d in zip(polys, depths):
        if d % 2:
            continue
        counters = [
            q for q, qd in zip(polys, depths)
            if qd == d + 1 and p.contains(q.representative_point())
        ]
        pieces.append(p.difference(unary_union(counters)) if counters else p)
    return fix_valid(unary_union(pieces))


def text_outline(text: str, font_path: Optional[str], size_mm: float):
    if not text.strip():
        return MultiPolygon([])
    fp = FontProperties(fname=font_path) if font_path else FontProperties()
    tp = TextPath((0, 0), text, size=size_mm / MM_PER_PT, prop=fp, usetex=False)
    g = _loops_to_geometry(tp.to_polygons())
    return fix_valid(shp_scale(g, xfact=MM_PER_PT, yfact=MM_PER_PT, origin=(0, 0)))


def extrude_glyphs(text: str, font_path: Optional[str], size: float, depth: float) -> trimesh.Trimesh:
    """
    Solid for a label; `mesh.bounds` is its local bounding box.

    Blank text, a missing font file or a font matplotlib cannot read give an
    empty mesh instead of an exception, so a bad label never sinks the build.
    """
    if font_path is not None and not Path(font_path).exists():
        logger.warning("Font file not found, label %r left blank: %s", text, font_path)
        return empty_mesh()
    try:
        outline = text_outline(text, font_path, size)
    except Exception as e:
        logger.warning("Could not lay out label %r: %s", text, e)
        return empty_mesh()
    if outline.is_empty:
        return empty_mesh()
    return extrude(outline, depth)
