"""
Pure layout math: plate dimensions, module size and the QR shrink factor for
round plates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .config import LayoutParameters

DEFAULT_MODULE_COUNT = 21  # version-1 QR; keeps module size finite for empty text
LABEL_EXTENSION = 2.2  # plate depth added per label, in font sizes
INSCRIBED_SQUARE_RATIO = 1.0 / math.sqrt(2.0)


@dataclass(frozen=True)
class DerivedLayout:
    module_count: int
    module_size: float
    plate_width: float
    total_depth: float
    top_offset: float
    bottom_offset: float
    base_height: float
    qr_scale: float


def qr_scale(base_roundness: float) -> float:
    """
    1.0 up to 50% roundness, then shrinks linearly so that a fully round
    plate (a circle) still contains the whole code: side / diameter = 1/sqrt(2).
    """
    if base_roundness <= 0.5:
        return 1.0
    t = (min(base_roundness, 1.0) - 0.5) / 0.5
    return 1.0 - t * (1.0 - INSCRIBED_SQUARE_RATIO)


def resolve(matrix_size: int, params: LayoutParameters) -> DerivedLayout:
    module_count = matrix_size if matrix_size > 0 else DEFAULT_MODULE_COUNT
    scale = qr_scale(params.base_corner_radius)
    module_size = params.size * scale / (module_count + params.margin * 2)

    top = params.font_size * LABEL_EXTENSION if params.top_label else 0.0
    bottom = params.font_size * LABEL_EXTENSION if params.bottom_label else 0.0

    return DerivedLayout(
        module_count=module_count,
        module_size=module_size,
        plate_width=params.size,
        total_depth=params.size + top + bottom,
        top_offset=top,
        bottom_offset=bottom,
        base_height=params.base_height,
        qr_scale=scale,
    )
