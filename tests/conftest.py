"""
Shared fixtures for the qrforge test suite.

Label tests that only care about placement use `box_glyphs`, a stand-in glyph
source that returns a plain block sized like a line of text, so they do not
depend on font rendering.
"""

import numpy as np
import pytest
import trimesh

from qrforge.config import LayoutParameters


def box_glyphs(text, font, size, depth):
    """Glyph source stand-in: one block per label, baseline at y=0."""
    width = max(1, len(text)) * size * 0.6
    return trimesh.creation.box(bounds=[[0.0, 0.0, 0.0], [width, size, depth]])


def facets(document: str):
    """Facet blocks of an ASCII STL document, one string per triangle."""
    blocks = []
    current = []
    for line in document.splitlines():
        if line.startswith("facet normal"):
            current = [line]
        elif line == "endfacet":
            blocks.append("\n".join(current))
            current = []
        elif current:
            current.append(line)
    return blocks


@pytest.fixture
def params():
    return LayoutParameters(text="hello", size=80.0, margin=2.0)


@pytest.fixture
def labelled_params():
    return LayoutParameters(
        text="hello",
        size=80.0,
        margin=2.0,
        top_label="TOP",
        bottom_label="BOTTOM",
        font_size=5.0,
    )


@pytest.fixture
def checker():
    """21x21 matrix with a checkerboard of dark modules."""
    idx = np.add.outer(np.arange(21), np.arange(21))
    return (idx % 2 == 0)


@pytest.fixture
def blank():
    return np.zeros((21, 21), dtype=bool)


@pytest.fixture
def glyph_source():
    return box_glyphs


@pytest.fixture
def parse_facets():
    return facets
