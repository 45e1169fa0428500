"""
Label placement on the plate.

Placement is always computed from the glyph mesh as extruded (never from a
previously placed copy) and returned as a fresh transform, so asking twice
gives the same answer.
"""

from __future__ import annotations

import numpy as np
import trimesh

from .config import LayoutParameters
from .layout import DerivedLayout

EDGE_MARGIN = 3.0  # mm between an aligned label and the plate edge
LABEL_GAP = 0.6  # in font sizes, between the code and its label

# Lays the text plane flat: text +Y (ascenders) -> scene -Z, extrusion +Z -> scene +Y.
LAY_FLAT = trimesh.transformations.rotation_matrix(-np.pi / 2, [1, 0, 0])


def place(glyph_mesh: trimesh.Trimesh, alignment: str, plate_width: float, margin: float = EDGE_MARGIN) -> float:
    """X offset that aligns the glyph bounding box on a plate of `plate_width`."""
    if len(glyph_mesh.vertices) == 0:
        return 0.0
    (min_x, _, _), (max_x, _, _) = glyph_mesh.bounds

    if alignment == "left":
        return -plate_width / 2.0 + margin - min_x
    if alignment == "right":
        return plate_width / 2.0 - margin - max_x
    if alignment == "center":
        return -(max_x + min_x) / 2.0
    raise ValueError(f"Unknown alignment {alignment!r}")


def label_depth_position(position: str, layout: DerivedLayout, params: LayoutParameters) -> float:
    """Z of the label baseline; positive offsets push labels away from the code."""
    reach = layout.plate_width * layout.qr_scale / 2.0 + params.font_size * LABEL_GAP
    if position == "top":
        return -(reach + params.top_label_offset)
    if position == "bottom":
        return reach + params.bottom_label_offset
    raise ValueError(f"Unknown label position {position!r}")


def label_transform(glyph_mesh: trimesh.Trimesh, position: str,
                    layout: DerivedLayout, params: LayoutParameters) -> np.ndarray:
    x = place(glyph_mesh, params.text_alignment, layout.plate_width * layout.qr_scale)
    z = label_depth_position(position, layout, params)
    matrix = trimesh.transformations.translation_matrix((x, 0.0, 0.0))
    matrix = LAY_FLAT @ matrix
    return trimesh.transformations.translation_matrix((0.0, layout.base_height, z)) @ matrix
