"""
ASCII STL export.

export_selection() runs the fixed pipeline select -> flatten -> reorient ->
triangulate -> serialize -> validate on detached copies of the scene meshes;
the live scene is never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import trimesh

logger = logging.getLogger(__name__)

# Scene +Y (view up) -> +Z (build axis); the plate underside lands on z=0.
# A -90 degree turn about X would send +Y to -Z and print the plate upside down.
VIEW_TO_BUILD = trimesh.transformations.rotation_matrix(np.pi / 2, [1, 0, 0])

MIN_DOCUMENT_BYTES = 100
DEGENERATE_EPS = 1e-12


class ExportError(RuntimeError):
    stage = "export"

    def __init__(self, message: str):
        super().__init__(f"[{self.stage}] {message}")


class SceneNotReadyError(ExportError):
    stage = "select"


class NoExportableGeometryError(ExportError):
    stage = "validate"


class SerializationError(ExportError):
    stage = "serialize"


class ExportSelection(Enum):
    BASE = "base"
    CODE = "code"
    COMBINED = "combined"

    @property
    def solid_name(self) -> str:
        return f"qr_{self.value}"

    @property
    def filename(self) -> str:
        return f"{self.solid_name}.stl"


@dataclass
class ExportResult:
    document: str
    triangle_count: int
    mesh_count: int
    selection: ExportSelection
    filename: str
    bounds: np.ndarray  # (2, 3) min/max corner in the build frame

    @property
    def extents(self) -> np.ndarray:
        return self.bounds[1] - self.bounds[0]


# ----------------------------
# Pipeline stages
# ----------------------------

def select_roots(scene, selection: ExportSelection) -> list:
    if scene is None or scene.code is None:
        raise SceneNotReadyError("Model not ready. Wait for the model to finish building before exporting.")
    if selection is ExportSelection.BASE:
        roots = [scene.base]
    elif selection is ExportSelection.CODE:
        roots = [scene.code]
    else:
        roots = [scene.base, scene.code]
    return [r for r in roots if r is not None]


def flatten(roots) -> list:
    """Detached, world-space copies of every non-empty mesh under `roots`."""
    flat = []
    for root in roots:
        for node, world in root.walk():
            if len(node.mesh.vertices) == 0:
                logger.warning("Skipping mesh with empty geometry: %s", node.name)
                continue
            flat.append(node.snapshot(world))
    return flat


def reorient(nodes) -> None:
    for node in nodes:
        node.mesh.apply_transform(VIEW_TO_BUILD)


def triangulate(vertices, faces=None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Triangles (k, 3, 3) and unit normals (k, 3).

    With `faces`, vertices are visited through consecutive index triples;
    without, consecutive vertex triples form the triangles. The normal of
    (v1, v2, v3) is normalize((v3 - v2) x (v1 - v2)), outward for
    counter-clockwise winding. Zero-area triangles have no direction and are
    dropped.
    """
    vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    if faces is None:
        usable = len(vertices) - len(vertices) % 3
        if usable != len(vertices):
            logger.warning("Ignoring %d trailing vertices of non-indexed geometry", len(vertices) - usable)
        tris = vertices[:usable].reshape(-1, 3, 3)
    else:
        tris = vertices[np.asarray(faces, dtype=np.int64).reshape(-1, 3)]

    v1, v2, v3 = tris[:, 0], tris[:, 1], tris[:, 2]
    normals = np.cross(v3 - v2, v1 - v2)
    lengths = np.linalg.norm(normals, axis=1)
    keep = lengths > DEGENERATE_EPS
    if not keep.all():
        logger.debug("Dropped %d degenerate triangles", int((~keep).sum()))
    return tris[keep], normals[keep] / lengths[keep, None]


def _num(value: float) -> str:
    return f"{value:.6f}"


def serialize(triangles: np.ndarray, normals: np.ndarray, name: str = "model") -> str:
    name = "_".join(str(name).split()) or "model"
    lines = [f"solid {name}"]
    for tri, n in zip(triangles, normals):
        lines.append(f"facet normal {_num(n[0])} {_num(n[1])} {_num(n[2])}")
        lines.append(" outer loop")
        for v in tri:
            lines.append(f"  vertex {_num(v[0])} {_num(v[1])} {_num(v[2])}")
        lines.append(" endloop")
        lines.append("endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines) + "\n"


# ----------------------------
# Entry points
# ----------------------------

def export_selection(scene, selection: ExportSelection, name: Optional[str] = None) -> ExportResult:
    selection = ExportSelection(selection)
    nodes = flatten(select_roots(scene, selection))
    reorient(nodes)

    parts: List[Tuple[np.ndarray, np.ndarray]] = [
        triangulate(node.mesh.vertices, node.mesh.faces) for node in nodes
    ]
    triangles = np.concatenate([p[0] for p in parts]) if parts else np.zeros((0, 3, 3))
    normals = np.concatenate([p[1] for p in parts]) if parts else np.zeros((0, 3))

    if len(triangles) == 0:
        raise NoExportableGeometryError(
            f"No exportable geometry for '{selection.value}'. "
            "Wait for the model to finish building or check the input."
        )

    document = serialize(triangles, normals, name or selection.solid_name)
    logger.debug("Exported %d meshes, %d triangles, %d bytes", len(nodes), len(triangles), len(document))
    if len(document) < MIN_DOCUMENT_BYTES:
        logger.warning("STL export for '%s' is suspiciously small (%d bytes)", selection.value, len(document))

    points = triangles.reshape(-1, 3)
    return ExportResult(
        document=document,
        triangle_count=len(triangles),
        mesh_count=len(nodes),
        selection=selection,
        filename=selection.filename,
        bounds=np.array([points.min(axis=0), points.max(axis=0)]),
    )


def write_export(result: ExportResult, path) -> Path:
    if not isinstance(result.document, str):
        raise SerializationError(f"Expected ASCII STL text, got {type(result.document).__name__}")
    try:
        data = result.document.encode("ascii")
    except UnicodeEncodeError as e:
        raise SerializationError(f"STL document is not ASCII: {e}") from e

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return out_path
