#!/usr/bin/env python3
"""
main.py

Creates 3D-printable QR code plates as ASCII STL. See qrforge.cli for the
options, or run with --help.

Dependencies:
  pip install numpy shapely matplotlib trimesh mapbox_earcut scipy qrcode
"""

from qrforge.cli import main

if __name__ == "__main__":
    main()
