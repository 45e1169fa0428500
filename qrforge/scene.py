"""
Scene assembly.

The scene is a small tree of MeshNode / GroupNode objects. Both kinds answer
walk(), which yields (mesh node, world transform) pairs, so traversal never
has to ask what kind of node it is holding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np
import trimesh

from .config import LayoutParameters
from .exporter import ExportResult, export_selection
from .geometry import empty_mesh
from .glyphs import extrude_glyphs
from .layout import DerivedLayout, resolve
from .matrix_source import MatrixRequester
from .solids import build_pixel_blocks, build_plate
from .text_placer import label_transform

logger = logging.getLogger(__name__)

GlyphSource = Callable[[str, Optional[str], float, float], trimesh.Trimesh]


def _identity() -> np.ndarray:
    return np.eye(4)


@dataclass
class MeshNode:
    name: str
    mesh: trimesh.Trimesh
    transform: np.ndarray = field(default_factory=_identity)

    def walk(self, parent: Optional[np.ndarray] = None) -> Iterator[Tuple["MeshNode", np.ndarray]]:
        world = self.transform if parent is None else parent @ self.transform
        yield self, world

    def snapshot(self, world: np.ndarray) -> "MeshNode":
        """Detached copy with `world` baked into its own vertex buffer."""
        mesh = self.mesh.copy()
        mesh.apply_transform(world)
        return MeshNode(self.name, mesh, _identity())


@dataclass
class GroupNode:
    name: str
    children: List = field(default_factory=list)
    transform: np.ndarray = field(default_factory=_identity)

    def walk(self, parent: Optional[np.ndarray] = None) -> Iterator[Tuple[MeshNode, np.ndarray]]:
        world = self.transform if parent is None else parent @ self.transform
        for child in self.children:
            yield from child.walk(world)


@dataclass
class SceneAssembly:
    layout: DerivedLayout
    matrix: np.ndarray
    base: Optional[MeshNode]
    code: GroupNode

    def node(self, name: str) -> Optional[MeshNode]:
        for root in (self.base, self.code):
            if root is None:
                continue
            for node, _ in root.walk():
                if node.name == name:
                    return node
        return None


def _glyphs_or_blank(glyph_source: GlyphSource, text: str, params: LayoutParameters) -> trimesh.Trimesh:
    try:
        return glyph_source(text, params.font, params.font_size, params.code_height)
    except Exception as e:
        logger.warning("Glyph source failed for label %r, label left blank: %s", text, e)
        return empty_mesh()


def build_scene(params: LayoutParameters, matrix, glyph_source: GlyphSource = extrude_glyphs) -> SceneAssembly:
    matrix = np.asarray(matrix, dtype=bool)
    size = matrix.shape[0] if matrix.ndim == 2 else 0
    layout = resolve(size, params)

    base = None
    plate = build_plate(layout, params)
    if plate is not None:
        z = (layout.bottom_offset - layout.top_offset) / 2.0
        placement = trimesh.transformations.translation_matrix((0.0, layout.base_height / 2.0, z))
        base = MeshNode("Base_Plate", plate, placement)

    code = GroupNode("Code_Group")
    pixels = build_pixel_blocks(matrix, layout, params)
    if pixels is not None:
        code.children.append(MeshNode("QR_Pixels", pixels))
    else:
        logger.debug("No pixel blocks for a %d-module matrix", size)

    for position, text in (("top", params.top_label), ("bottom", params.bottom_label)):
        if not text:
            continue
        glyphs = _glyphs_or_blank(glyph_source, text, params)
        placement = label_transform(glyphs, position, layout, params)
        code.children.append(MeshNode(f"{position.title()}_Label", glyphs, placement))

    return SceneAssembly(layout=layout, matrix=matrix, base=base, code=code)


class ModelSession:
    """
    Owns the current scene. update() rebuilds it from fresh parameters once
    the matrix arrives; a rebuild whose matrix was superseded is dropped, so
    export() always sees the scene of the newest settled request.
    """

    def __init__(self, requester: Optional[MatrixRequester] = None,
                 glyph_source: GlyphSource = extrude_glyphs):
        self._requester = requester or MatrixRequester()
        self._glyph_source = glyph_source
        self.scene: Optional[SceneAssembly] = None
        self.params: Optional[LayoutParameters] = None

    async def update(self, params: LayoutParameters) -> bool:
        matrix = await self._requester.request(params.text, params.error_correction)
        if matrix is None:
            return False
        self.scene = build_scene(params, matrix, self._glyph_source)
        self.params = params
        return True

    def export(self, selection, name: Optional[str] = None) -> ExportResult:
        return export_selection(self.scene, selection, name=name)
