"""
Solid construction for the plate and the pixel blocks.

Scene frame is Y-up: X runs across the plate, Z along its depth (top label
at -Z, bottom label at +Z), Y is the viewing "up". The plate underside is
the y=0 plane once placed by the scene.
"""

from __future__ import annotations

import itertools
import logging
from typing import Optional

import numpy as np
import trimesh
from shapely.affinity import scale as shp_scale
from shapely.geometry import Point, box

from .config import LayoutParameters
from .geometry import extrude, fix_valid
from .layout import DerivedLayout

logger = logging.getLogger(__name__)

# Rotation about X taking the extrusion axis (+Z) onto the scene up axis (+Y).
Z_UP_TO_Y_UP = trimesh.transformations.rotation_matrix(-np.pi / 2, [1, 0, 0])

BLOCK_RADIUS_FACTOR = 0.45


# ----------------------------
# Base plate
# ----------------------------

def plate_outline(width: float, depth: float, roundness: float):
    """
    Top-view outline of the plate, centered on the origin. Four straight
    edges with quarter-round corners; once the corner radius reaches half the
    short side the outline becomes the inscribed ellipse (circle if square).
    """
    short_half = min(width, depth) / 2.0
    radius = roundness * short_half
    quad_segs = max(8, int(roundness * 32))

    if radius <= 0:
        return box(-width / 2, -depth / 2, width / 2, depth / 2)

    if radius >= short_half:
        unit = Point(0.0, 0.0).buffer(1.0, quad_segs=quad_segs)
        return shp_scale(unit, xfact=width / 2, yfact=depth / 2, origin=(0, 0))

    core = box(-width / 2 + radius, -depth / 2 + radius, width / 2 - radius, depth / 2 - radius)
    return fix_valid(core.buffer(radius, quad_segs=quad_segs))


def build_plate(layout: DerivedLayout, params: LayoutParameters) -> Optional[trimesh.Trimesh]:
    """Plate solid centered on the origin, `base_height` thick along Y."""
    width, depth, height = layout.plate_width, layout.total_depth, layout.base_height
    if min(width, depth, height) <= 0:
        logger.warning("Degenerate plate dimensions %.3f x %.3f x %.3f, plate omitted", width, depth, height)
        return None

    if params.base_corner_radius <= 0:
        return trimesh.creation.box(extents=(width, height, depth))

    outline = plate_outline(width, depth, params.base_corner_radius)
    mesh = extrude(outline, height)
    if mesh.is_empty:
        logger.warning("Plate outline produced no geometry, plate omitted")
        return None

    mesh.apply_transform(Z_UP_TO_Y_UP)
    mesh.apply_translation((0.0, -height / 2.0, 0.0))
    return mesh


# ----------------------------
# Pixel blocks
# ----------------------------

def rounded_box(extents, radius: float, segments: int) -> trimesh.Trimesh:
    """
    Cuboid with every edge and corner rounded to `radius`, as the convex hull
    of eight sphere octants. `segments` is the facet count across each
    rounded edge.
    """
    half = np.asarray(extents, dtype=np.float64) / 2.0 - radius
    angles = np.linspace(0.0, np.pi / 2, segments + 1)
    theta, phi = np.meshgrid(angles, angles)
    octant = np.column_stack([
        (np.sin(theta) * np.cos(phi)).ravel(),
        np.cos(theta).ravel(),
        (np.sin(theta) * np.sin(phi)).ravel(),
    ])

    points = []
    for signs in itertools.product((-1.0, 1.0), repeat=3):
        signs = np.asarray(signs)
        points.append(signs * half + signs * octant * radius)
    return trimesh.convex.convex_hull(np.vstack(points))


def block_prototype(module_size: float, height: float, roundness: float) -> trimesh.Trimesh:
    """One pixel block centered on the origin."""
    if roundness <= 0:
        return trimesh.creation.box(extents=(module_size, height, module_size))
    radius = BLOCK_RADIUS_FACTOR * min(module_size, height) * roundness
    segments = max(1, int(roundness * 8))
    return rounded_box((module_size, height, module_size), radius, segments)


def build_pixel_blocks(matrix, layout: DerivedLayout, params: LayoutParameters) -> Optional[trimesh.Trimesh]:
    """
    All dark modules as one mesh, centered on the origin in XZ and resting
    on the plate's top face. None when there is nothing to raise.
    """
    matrix = np.asarray(matrix, dtype=bool)
    cells = np.argwhere(matrix) if matrix.ndim == 2 else np.zeros((0, 2), dtype=np.int64)
    if len(cells) == 0:
        return None

    m = layout.module_size
    if m <= 0:
        logger.warning("Module size %.4f is not positive, pixel blocks omitted", m)
        return None

    proto = block_prototype(m, params.code_height, params.qr_corner_radius)
    n = matrix.shape[0]
    start = -(n * m) / 2.0 + m / 2.0
    y = layout.base_height + params.code_height / 2.0

    k = len(cells)
    offsets = np.column_stack([
        start + cells[:, 1] * m,
        np.full(k, y),
        start + cells[:, 0] * m,
    ])
    nv = len(proto.vertices)
    vertices = (proto.vertices[None, :, :] + offsets[:, None, :]).reshape(-1, 3)
    faces = (proto.faces[None, :, :] + (np.arange(k) * nv)[:, None, None]).reshape(-1, 3)

    logger.debug("Built %d pixel blocks (%d faces)", k, len(faces))
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
