"""
qrforge.cli

Creates 3D-printable QR code plates: a base plate, raised QR modules and
optional top/bottom text labels, exported as ASCII STL.

Export modes:
- base: the plate alone
- code: QR modules + labels (print in a second color on top of the base)
- combined: everything in one file
- all (default): the three files above

Dependencies:
  pip install numpy shapely matplotlib trimesh mapbox_earcut scipy qrcode
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import (
    ALIGNMENTS,
    ECC_LEVELS,
    MM_PER_UNIT,
    WIFI_SECURITY,
    LayoutParameters,
    from_display_units,
    load_parameters,
    parameters_from_dict,
    to_display_units,
    wifi_payload,
)
from .exporter import ExportError, ExportSelection, export_selection, write_export
from .matrix_source import encode
from .scene import build_scene

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# argparse dest -> LayoutParameters field
_FLAG_FIELDS = {
    "text": "text",
    "size": "size",
    "base_height": "base_height",
    "code_height": "code_height",
    "margin": "margin",
    "ecc": "error_correction",
    "top_label": "top_label",
    "bottom_label": "bottom_label",
    "font_size": "font_size",
    "font": "font",
    "pixel_roundness": "qr_corner_radius",
    "base_roundness": "base_corner_radius",
    "align": "text_alignment",
    "top_label_offset": "top_label_offset",
    "bottom_label_offset": "bottom_label_offset",
}


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Convert text into a 3D printable QR code plate (ASCII STL).")
    source = p.add_mutually_exclusive_group()
    source.add_argument("--text", type=str, default=None, help="Text or URL to encode.")
    source.add_argument("--wifi-ssid", type=str, default=None, help="Encode a Wi-Fi join code for this network.")
    p.add_argument("--wifi-password", type=str, default="", help="Wi-Fi password (with --wifi-ssid).")
    p.add_argument("--wifi-security", type=str, default="WPA", choices=list(WIFI_SECURITY))
    p.add_argument("--config", type=str, default=None,
                   help="JSON file of layout parameters; explicit flags override it.")

    # Code
    p.add_argument("--ecc", type=str, default=None, choices=list(ECC_LEVELS), help="Error-correction level.")
    p.add_argument("--margin", type=float, default=None, help="Quiet zone around the code, in modules.")

    # Plate
    p.add_argument("--size", type=float, default=None, help="Plate width (in --unit).")
    p.add_argument("--unit", type=str, default="mm", choices=list(MM_PER_UNIT),
                   help="Unit for --size and the reported extents.")
    p.add_argument("--base-height", type=float, default=None, help="Plate thickness (mm).")
    p.add_argument("--code-height", type=float, default=None, help="Height of raised modules and labels (mm).")
    p.add_argument("--base-roundness", type=float, default=None,
                   help="Plate corner roundness 0..1; 1 gives a circle or ellipse.")
    p.add_argument("--pixel-roundness", type=float, default=None, help="Module corner roundness 0..1.")

    # Labels
    p.add_argument("--top-label", type=str, default=None, help="Text above the code.")
    p.add_argument("--bottom-label", type=str, default=None, help="Text below the code.")
    p.add_argument("--font", type=str, default=None, help="Path to TTF/OTF font file.")
    p.add_argument("--font-size", type=float, default=None, help="Label font size in millimeters.")
    p.add_argument("--align", type=str, default=None, choices=list(ALIGNMENTS))
    p.add_argument("--top-label-offset", type=float, default=None, help="Move the top label away from the code (mm).")
    p.add_argument("--bottom-label-offset", type=float, default=None,
                   help="Move the bottom label away from the code (mm).")

    # Output
    p.add_argument("--export", type=str, default="all", choices=["base", "code", "combined", "all"])
    p.add_argument("--out-dir", type=str, default=".", help="Directory for the STL files.")
    p.add_argument("--name", type=str, default=None, help="Solid name written into the STL header.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return p.parse_args(argv)


def build_parameters(args) -> LayoutParameters:
    overrides = {field: getattr(args, dest) for dest, field in _FLAG_FIELDS.items()}
    if args.wifi_ssid:
        overrides["text"] = wifi_payload(args.wifi_ssid, args.wifi_password, args.wifi_security)
    if args.size is not None:
        overrides["size"] = from_display_units(args.size, args.unit)

    if args.config:
        return load_parameters(args.config, **overrides)
    return parameters_from_dict({}, **overrides)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    if args.font and not Path(args.font).exists():
        raise SystemExit(f"Font file not found: {args.font}")
    try:
        params = build_parameters(args)
    except (ValueError, OSError) as e:
        raise SystemExit(f"Invalid parameters: {e}")

    # 1) Matrix
    matrix = encode(params.text, params.error_correction)
    if matrix.size == 0:
        print("Warning: text could not be encoded, the plate will carry no QR modules.")
    else:
        print(f"QR matrix: {matrix.shape[0]}x{matrix.shape[1]} modules (ECC {params.error_correction})")

    # 2) Solids
    scene = build_scene(params, matrix)

    # 3) Export
    if args.export == "all":
        selections = list(ExportSelection)
    else:
        selections = [ExportSelection(args.export)]

    # Each selection is its own document: a failed one does not stop the rest.
    out_dir = Path(args.out_dir)
    failed = []
    for selection in selections:
        try:
            result = export_selection(scene, selection, name=args.name)
            out_path = write_export(result, out_dir / result.filename)
        except ExportError as e:
            print(f"Export of '{selection.value}' failed: {e}")
            failed.append(selection.value)
            continue

        extents = " x ".join(f"{to_display_units(float(v), args.unit):.2f}" for v in result.extents)
        print(f"Wrote STL: {out_path.resolve()} ({result.triangle_count} triangles)")
        print(f"Extents ({args.unit}): {extents}")

    if failed:
        raise SystemExit(f"Export failed for: {', '.join(failed)}")
