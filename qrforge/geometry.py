"""
Shared 2D/3D geometry helpers: shapely clean-up and polygon extrusion.
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np
import trimesh
from shapely.geometry import MultiPolygon, Polygon

logger = logging.getLogger(__name__)

MIN_AREA = 1e-6


def fix_valid(geom):
    try:
        return geom.buffer(0)
    except Exception:
        return geom


def as_polygons(geom) -> List[Polygon]:
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, MultiPolygon):
        return list(geom.geoms)
    try:
        return [g for g in geom.geoms if isinstance(g, Polygon)]
    except AttributeError:
        return []


def empty_mesh() -> trimesh.Trimesh:
    return trimesh.Trimesh(vertices=np.zeros((0, 3)), faces=np.zeros((0, 3), dtype=np.int64), process=False)


def extrude(geom, height: float) -> trimesh.Trimesh:
    """
    Extrude every polygon of `geom` along +Z from z=0 to z=height and return
    them as one indexed mesh. Polygons that fail to triangulate are dropped.
    """
    geom = fix_valid(geom)
    meshes = []
    for poly in as_polygons(geom):
        if poly.area < MIN_AREA:
            continue
        try:
            meshes.append(trimesh.creation.extrude_polygon(poly, height=height))
        except Exception as e:
            logger.warning("Extrusion failed for polygon of area %.3f: %s", poly.area, e)

    if not meshes:
        return empty_mesh()
    if len(meshes) == 1:
        return meshes[0]
    return trimesh.util.concatenate(meshes)
