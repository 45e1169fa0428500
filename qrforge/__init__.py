"""Printable 3D QR plates: matrix -> solids -> ASCII STL."""

from .config import LayoutParameters, load_parameters, wifi_payload
from .exporter import (
    ExportError,
    ExportResult,
    ExportSelection,
    NoExportableGeometryError,
    SceneNotReadyError,
    SerializationError,
    export_selection,
    write_export,
)
from .layout import DerivedLayout, resolve
from .matrix_source import MatrixRequester, encode, encode_async
from .scene import ModelSession, SceneAssembly, build_scene

__version__ = "0.1.0"
