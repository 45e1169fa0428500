"""
Tests for label glyph extrusion. Uses matplotlib's bundled default font.
"""

import numpy as np
import pytest
from matplotlib.textpath import TextPath
from shapely.geometry import Polygon

from qrforge.geometry import fix_valid
from qrforge.glyphs import MM_PER_PT, _loops_to_geometry, extrude_glyphs, text_outline


class TestTextOutline:
    def test_blank(self):
        assert text_outline("   ", None, 5.0).is_empty

    def test_size_in_millimeters(self):
        outline = text_outline("H", None, 10.0)
        minx, miny, maxx, maxy = outline.bounds
        # cap height of a sans font is roughly 70% of the em size
        assert 5.0 < (maxy - miny) < 10.0

    def test_counter_is_hole(self):
        square = [(0, 0), (10, 0), (10, 10), (0, 10)]
        inner = [(3, 3), (7, 3), (7, 7), (3, 7)]
        g = _loops_to_geometry([np.array(square), np.array(inner)])
        assert g.area == pytest.approx(100.0 - 16.0)

    def test_island_inside_counter_is_filled(self):
        outer = [(0, 0), (10, 0), (10, 10), (0, 10)]
        hole = [(2, 2), (8, 2), (8, 8), (2, 8)]
        island = [(4, 4), (6, 4), (6, 6), (4, 6)]
        g = _loops_to_geometry([np.array(outer), np.array(hole), np.array(island)])
        assert g.area == pytest.approx(100.0 - 36.0 + 4.0)

    def test_two_islands_in_separate_counters(self):
        outer = [(0, 0), (20, 0), (20, 10), (0, 10)]
        left = [(1, 1), (9, 1), (9, 9), (1, 9)]
        right = [(11, 1), (19, 1), (19, 9), (11, 9)]
        dot = [(4, 4), (6, 4), (6, 6), (4, 6)]
        g = _loops_to_geometry([np.array(c) for c in (outer, left, right, dot)])
        assert g.area == pytest.approx(200.0 - 64.0 - 64.0 + 4.0)

    def test_copyright_sign_keeps_inner_c(self):
        tp = TextPath((0, 0), "©", size=10.0 / MM_PER_PT)
        loops = [np.asarray(loop) for loop in tp.to_polygons()]
        # plain even-odd reference: every loop toggles coverage
        ref = Polygon()
        for loop in loops:
            if len(loop) >= 3:
                ref = ref.symmetric_difference(fix_valid(Polygon(loop)))
        ref_area = ref.area * MM_PER_PT ** 2
        outline = text_outline("©", None, 10.0)
        assert ref_area > 0
        assert outline.area == pytest.approx(ref_area, rel=0.02)

    def test_letter_o_has_counter(self):
        outline = text_outline("O", None, 10.0)
        polys = [outline] if isinstance(outline, Polygon) else list(outline.geoms)
        assert any(len(p.interiors) > 0 for p in polys)


class TestExtrudeGlyphs:
    def test_depth_along_z(self):
        mesh = extrude_glyphs("QR", None, 5.0, 1.2)
        assert len(mesh.faces) > 0
        assert mesh.bounds[0][2] == pytest.approx(0.0)
        assert mesh.bounds[1][2] == pytest.approx(1.2)

    def test_baseline_near_origin(self):
        mesh = extrude_glyphs("AB", None, 5.0, 1.0)
        assert abs(mesh.bounds[0][1]) < 0.5

    def test_blank_is_empty(self):
        mesh = extrude_glyphs("", None, 5.0, 1.0)
        assert len(mesh.vertices) == 0

    def test_missing_font_is_empty(self, tmp_path):
        mesh = extrude_glyphs("HI", str(tmp_path / "nope.ttf"), 5.0, 1.0)
        assert len(mesh.vertices) == 0

    def test_unreadable_font_is_empty(self, tmp_path):
        bogus = tmp_path / "bogus.ttf"
        bogus.write_bytes(b"not a font")
        mesh = extrude_glyphs("HI", str(bogus), 5.0, 1.0)
        assert len(mesh.vertices) == 0
