"""
Tests for QR matrix acquisition and the last-writer-wins requester.
"""

import asyncio

import numpy as np
import pytest

from qrforge.matrix_source import MatrixRequester, encode, encode_async


# ======================================================================
# encode
# ======================================================================

class TestEncode:
    def test_short_text_is_version_one(self):
        matrix = encode("hello", "M")
        assert matrix.shape == (21, 21)
        assert matrix.dtype == bool

    def test_finder_pattern_corner(self):
        matrix = encode("hello", "L")
        # 7x7 finder: dark ring, light ring, dark 3x3 core
        assert matrix[0, :7].all()
        assert matrix[6, :7].all()
        assert not matrix[1, 1:6].any()
        assert matrix[2:5, 2:5].all()

    def test_higher_ecc_grows_matrix(self):
        text = "https://example.com/some/longer/path?with=query"
        assert encode(text, "H").shape[0] > encode(text, "L").shape[0]

    def test_empty_text(self):
        assert encode("", "M").shape == (0, 0)

    def test_overflow_is_empty(self):
        assert encode("x" * 5000, "H").shape == (0, 0)

    def test_unknown_level_is_empty(self):
        assert encode("hello", "Z").shape == (0, 0)

    def test_lowercase_level(self):
        assert encode("hello", "q").shape == encode("hello", "Q").shape

    def test_read_only(self):
        matrix = encode("hello")
        with pytest.raises(ValueError):
            matrix[0, 0] = False

    def test_deterministic(self):
        np.testing.assert_array_equal(encode("abc", "M"), encode("abc", "M"))

    @pytest.mark.asyncio
    async def test_async(self):
        matrix = await encode_async("hello", "M")
        np.testing.assert_array_equal(matrix, encode("hello", "M"))


# ======================================================================
# MatrixRequester
# ======================================================================

class TestMatrixRequester:
    @pytest.mark.asyncio
    async def test_single_request(self):
        requester = MatrixRequester()
        matrix = await requester.request("hello", "M")
        assert matrix.shape == (21, 21)

    @pytest.mark.asyncio
    async def test_stale_result_discarded(self):
        gate = asyncio.Event()

        async def slow_first(text, ecc):
            if text == "old":
                await gate.wait()
            return encode(text, ecc)

        requester = MatrixRequester(encoder=slow_first)
        old = asyncio.create_task(requester.request("old", "M"))
        await asyncio.sleep(0)
        new = await requester.request("new", "M")
        gate.set()

        assert await old is None
        np.testing.assert_array_equal(new, encode("new", "M"))

    @pytest.mark.asyncio
    async def test_failing_source_maps_to_empty(self):
        async def broken(text, ecc):
            raise RuntimeError("encoder crashed")

        requester = MatrixRequester(encoder=broken)
        matrix = await requester.request("hello", "M")
        assert matrix.shape == (0, 0)

    @pytest.mark.asyncio
    async def test_tickets_increase(self):
        requester = MatrixRequester()
        await requester.request("a")
        first = requester.latest_ticket
        await requester.request("b")
        assert requester.latest_ticket == first + 1
