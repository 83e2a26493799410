"""Final step of the sketch export pipeline: resolution metadata for PNG output."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from .dimensions import CanvasMaxSize, calculate_dimensions
from .png import ExportedImage, set_physical_chunk

log = logging.getLogger(__name__)

COPY_IMAGE_TYPES = ("jpeg", "json", "png", "svg")
EXPORT_IMAGE_TYPES = COPY_IMAGE_TYPES + ("webp",)


@dataclass(frozen=True)
class ExportOptions:
    type: str = "png"
    quality: float = 1.0
    scale: float = 1.0
    background_color: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in EXPORT_IMAGE_TYPES:
            raise ValueError(f"Unsupported export type {self.type!r}")
        if not 0 <= self.quality <= 1:
            raise ValueError(f"Quality must be between 0 and 1, got {self.quality!r}")
        if self.scale <= 0:
            raise ValueError(f"Scale must be positive, got {self.scale!r}")

    @property
    def mime_type(self) -> str:
        return f"image/{self.type}"


def annotate_png(data: bytes, effective_scale: float, image_type: str = "png") -> ExportedImage:
    """Add a ``pHYs`` chunk for *effective_scale*, keeping the image as-is on failure."""

    mime_type = f"image/{image_type}"
    try:
        return set_physical_chunk(data, effective_scale, mime_type=mime_type)
    except ValueError as exc:  # PNGChunkError or an unusable scale
        log.error("could not set PNG resolution, exporting without it: %s", exc)
        return ExportedImage(data=bytes(data), mime_type=mime_type)


def prepare_export(
    data: bytes,
    width: float,
    height: float,
    options: Optional[ExportOptions] = None,
    limits: Optional[CanvasMaxSize] = None,
) -> ExportedImage:
    """Finalize a rasterized export of a *width* x *height* sketch.

    The rasterized image is expected at the size returned by
    :func:`~sketchexport.dimensions.calculate_dimensions`; PNG output is
    tagged with the matching resolution.
    """

    options = options or ExportOptions()
    scaled = calculate_dimensions(width, height, options.scale, limits)
    log.debug(
        "finalizing export (original=%sx%s, scaled=%dx%d, scale=%s)",
        width,
        height,
        scaled.width,
        scaled.height,
        scaled.effective_scale,
    )
    if options.type != "png":
        return ExportedImage(data=bytes(data), mime_type=options.mime_type)
    return annotate_png(data, scaled.effective_scale, options.type)


__all__ = [
    "COPY_IMAGE_TYPES",
    "EXPORT_IMAGE_TYPES",
    "ExportOptions",
    "annotate_png",
    "prepare_export",
]
