"""
Layout parameters for a QR plate, plus the small helpers the CLI needs
around them (JSON parameter files, display units, Wi-Fi payloads).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ECC_LEVELS = ("L", "M", "Q", "H")
ALIGNMENTS = ("left", "center", "right")
WIFI_SECURITY = ("WPA", "WEP", "nopass")

MM_PER_UNIT = {"mm": 1.0, "cm": 10.0, "in": 25.4}


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass
class LayoutParameters:
    text: str = "https://example.com"
    size: float = 80.0  # plate width, mm
    base_height: float = 2.0
    code_height: float = 1.2
    margin: float = 2.0  # in modules
    error_correction: str = "M"
    top_label: str = ""
    bottom_label: str = ""
    font_size: float = 5.0
    font: Optional[str] = None
    base_color: str = "#ffffff"
    code_color: str = "#000000"
    qr_corner_radius: float = 0.0  # 0..1
    base_corner_radius: float = 0.0  # 0..1
    text_alignment: str = "center"  # left, center, right
    top_label_offset: float = 0.0
    bottom_label_offset: float = 0.0

    def __post_init__(self):
        for name in ("size", "base_height", "code_height", "font_size"):
            value = float(getattr(self, name))
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value}")
            setattr(self, name, value)
        self.margin = float(self.margin)
        if self.margin < 0:
            raise ValueError(f"margin must not be negative, got {self.margin}")

        self.qr_corner_radius = _clamp01(self.qr_corner_radius)
        self.base_corner_radius = _clamp01(self.base_corner_radius)

        self.error_correction = str(self.error_correction).upper()
        if self.error_correction not in ECC_LEVELS:
            raise ValueError(f"error_correction must be one of {ECC_LEVELS}, got {self.error_correction!r}")
        self.text_alignment = str(self.text_alignment).lower()
        if self.text_alignment not in ALIGNMENTS:
            raise ValueError(f"text_alignment must be one of {ALIGNMENTS}, got {self.text_alignment!r}")

        self.top_label_offset = float(self.top_label_offset)
        self.bottom_label_offset = float(self.bottom_label_offset)


def parameters_from_dict(data: dict, **overrides) -> LayoutParameters:
    """Build parameters from a plain mapping; unknown keys are ignored."""
    known = {f.name for f in fields(LayoutParameters)}
    kwargs = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown layout parameter %r", key)
            continue
        kwargs[key] = value
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return LayoutParameters(**kwargs)


def load_parameters(path: str, **overrides) -> LayoutParameters:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Parameter JSON must be an object of layout fields.")
    return parameters_from_dict(data, **overrides)


# ----------------------------
# Units
# ----------------------------

def to_display_units(value_mm: float, unit: str = "mm") -> float:
    if unit not in MM_PER_UNIT:
        raise ValueError(f"Unknown unit {unit!r}")
    if unit == "mm":
        return value_mm
    return round(value_mm / MM_PER_UNIT[unit], 2)


def from_display_units(value: float, unit: str = "mm") -> float:
    if unit not in MM_PER_UNIT:
        raise ValueError(f"Unknown unit {unit!r}")
    return float(value) * MM_PER_UNIT[unit]


# ----------------------------
# Wi-Fi payloads
# ----------------------------

def _escape_wifi(value: str) -> str:
    out = []
    for ch in value:
        if ch in '\\;,:"':
            out.append("\\")
        out.append(ch)
    return "".join(out)


def wifi_payload(ssid: str, password: str = "", security: str = "WPA") -> str:
    """
    Build the text a phone camera recognises as a Wi-Fi join request:
    WIFI:T:<security>;S:<ssid>;P:<password>;;
    """
    if not ssid:
        raise ValueError("Wi-Fi SSID must not be empty.")
    if security not in WIFI_SECURITY:
        raise ValueError(f"security must be one of {WIFI_SECURITY}, got {security!r}")
    return f"WIFI:T:{security};S:{_escape_wifi(ssid)};P:{_escape_wifi(password)};;"
