"""
QR matrix acquisition.

encode() is the synchronous collaborator: text in, square bool matrix out,
or an empty (0, 0) matrix when the text cannot be encoded. MatrixRequester
wraps it for callers that fire requests faster than they resolve; only the
newest request's result is ever delivered.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Optional

import numpy as np
import qrcode
from qrcode.exceptions import DataOverflowError

logger = logging.getLogger(__name__)

_ECC = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


def empty_matrix() -> np.ndarray:
    m = np.zeros((0, 0), dtype=bool)
    m.flags.writeable = False
    return m


def encode(text: str, ecc_level: str = "M") -> np.ndarray:
    if not text:
        return empty_matrix()
    level = _ECC.get(str(ecc_level).upper())
    if level is None:
        logger.warning("Unknown error-correction level %r", ecc_level)
        return empty_matrix()

    try:
        qr = qrcode.QRCode(version=None, error_correction=level, box_size=1, border=0)
        qr.add_data(text)
        qr.make(fit=True)
        matrix = np.array(qr.get_matrix(), dtype=bool)
    except (DataOverflowError, ValueError) as e:
        logger.warning("QR generation failed for %d chars at level %s: %s", len(text), ecc_level, e)
        return empty_matrix()

    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        logger.warning("QR encoder returned a non-square matrix %s", matrix.shape)
        return empty_matrix()
    matrix.flags.writeable = False
    return matrix


async def encode_async(text: str, ecc_level: str = "M") -> np.ndarray:
    return await asyncio.to_thread(encode, text, ecc_level)


class MatrixRequester:
    """Last-writer-wins front for encode_async."""

    def __init__(self, encoder=encode_async):
        self._encoder = encoder
        self._tickets = itertools.count(1)
        self._latest = 0

    @property
    def latest_ticket(self) -> int:
        return self._latest

    async def request(self, text: str, ecc_level: str = "M") -> Optional[np.ndarray]:
        """
        Returns the matrix, or None when a newer request was made while this
        one was in flight. Stale results are dropped, never merged.
        """
        ticket = next(self._tickets)
        self._latest = ticket
        try:
            matrix = await self._encoder(text, ecc_level)
        except Exception as e:
            logger.warning("Matrix source failed, treating as empty: %s", e)
            matrix = empty_matrix()
        if ticket != self._latest:
            logger.debug("Discarding superseded matrix result (ticket %d, latest %d)", ticket, self._latest)
            return None
        return matrix
