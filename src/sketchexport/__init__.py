"""Image export helpers for the sketch-to-page pipeline."""

from .datauri import DataURLOptions, DataURLValidationError, to_data_url
from .dimensions import CanvasMaxSize, calculate_dimensions, get_canvas_max_size
from .export import ExportOptions, annotate_png, prepare_export
from .png import (
    ChunkParseError,
    ChunkReadError,
    ExportedImage,
    InvalidSignatureError,
    PNGChunk,
    PNGChunkError,
    PhysicalDimensions,
    find_chunk,
    is_png,
    parse_physical_dimensions,
    read_chunks,
    set_physical_chunk,
)
from .svg import SVGSerializationError, svg_to_data_url, svg_to_data_url_inlined

__all__ = [
    "CanvasMaxSize",
    "ChunkParseError",
    "ChunkReadError",
    "DataURLOptions",
    "DataURLValidationError",
    "ExportOptions",
    "ExportedImage",
    "InvalidSignatureError",
    "PNGChunk",
    "PNGChunkError",
    "PhysicalDimensions",
    "SVGSerializationError",
    "annotate_png",
    "calculate_dimensions",
    "find_chunk",
    "get_canvas_max_size",
    "is_png",
    "parse_physical_dimensions",
    "prepare_export",
    "read_chunks",
    "set_physical_chunk",
    "svg_to_data_url",
    "svg_to_data_url_inlined",
    "to_data_url",
]
