"""Canvas size limits and export dimension calculation."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
import math
import os
from typing import Callable, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanvasMaxSize:
    max_width: int
    max_height: int
    max_area: int


@dataclass(frozen=True)
class CanvasDimensions:
    width: int
    height: int


@dataclass(frozen=True)
class ScaledDimensions:
    width: int
    height: int
    effective_scale: float


FALLBACK_MAX_SIZE = CanvasMaxSize(max_width=16384, max_height=16384, max_area=16384 * 16384)

ENV_MAX_WIDTH = "SKETCHEXPORT_CANVAS_MAX_WIDTH"
ENV_MAX_HEIGHT = "SKETCHEXPORT_CANVAS_MAX_HEIGHT"
ENV_MAX_AREA = "SKETCHEXPORT_CANVAS_MAX_AREA"

Probe = Callable[[], Optional[CanvasMaxSize]]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("ignoring %s=%r: not an integer", name, raw)
        return default
    if value <= 0:
        log.warning("ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def limits_from_env() -> CanvasMaxSize:
    """Fallback limits, overridden by ``SKETCHEXPORT_CANVAS_MAX_*`` variables."""

    return CanvasMaxSize(
        max_width=_env_int(ENV_MAX_WIDTH, FALLBACK_MAX_SIZE.max_width),
        max_height=_env_int(ENV_MAX_HEIGHT, FALLBACK_MAX_SIZE.max_height),
        max_area=_env_int(ENV_MAX_AREA, FALLBACK_MAX_SIZE.max_area),
    )


@lru_cache(maxsize=1)
def _default_max_size() -> CanvasMaxSize:
    limits = limits_from_env()
    log.debug("canvas max size: %s", limits)
    return limits


def get_canvas_max_size(probe: Optional[Probe] = None) -> CanvasMaxSize:
    """Return the largest canvas an export may use.

    Without *probe* the environment-derived limits are returned and cached for
    the life of the process. A probe that fails or returns nothing yields the
    fallback limits.
    """

    if probe is None:
        return _default_max_size()
    try:
        limits = probe()
    except Exception:
        log.exception("canvas size probe failed; using fallback limits")
        return FALLBACK_MAX_SIZE
    if limits is None:
        log.warning("canvas size probe returned nothing; using fallback limits")
        return FALLBACK_MAX_SIZE
    return limits


def clear_cache() -> None:
    _default_max_size.cache_clear()


def supports_large_canvas(
    min_width: int, min_height: int, limits: Optional[CanvasMaxSize] = None
) -> bool:
    limits = limits or get_canvas_max_size()
    return limits.max_width >= min_width and limits.max_height >= min_height


def get_optimal_canvas_size(
    content_width: float, content_height: float, limits: Optional[CanvasMaxSize] = None
) -> CanvasDimensions:
    """Shrink the content size to fit the canvas limits, never enlarging it."""

    _require_positive(content_width, content_height)
    limits = limits or get_canvas_max_size()
    scale = min(1, limits.max_width / content_width, limits.max_height / content_height)
    return CanvasDimensions(
        width=math.floor(content_width * scale),
        height=math.floor(content_height * scale),
    )


def calculate_dimensions(
    width: float, height: float, scale: float, limits: Optional[CanvasMaxSize] = None
) -> ScaledDimensions:
    """Scale *width* x *height* by *scale* within the canvas limits.

    Width is clamped first, then height, then the total area. The returned
    size is floored; ``effective_scale`` is the scale actually applied and is
    what the exported PNG's resolution is derived from.
    """

    _require_positive(width, height)
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale!r}")
    limits = limits or get_canvas_max_size()

    scaled_width = width * scale
    scaled_height = height * scale

    if scaled_width > limits.max_width:
        scaled_height *= limits.max_width / scaled_width
        scaled_width = limits.max_width

    if scaled_height > limits.max_height:
        scaled_width *= limits.max_height / scaled_height
        scaled_height = limits.max_height

    if scaled_width * scaled_height > limits.max_area:
        ratio = math.sqrt(limits.max_area / (scaled_width * scaled_height))
        scaled_width *= ratio
        scaled_height *= ratio

    return ScaledDimensions(
        width=math.floor(scaled_width),
        height=math.floor(scaled_height),
        effective_scale=scaled_width / width,
    )


def _require_positive(width: float, height: float) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Dimensions must be positive, got {width!r}x{height!r}")


__all__ = [
    "CanvasDimensions",
    "CanvasMaxSize",
    "FALLBACK_MAX_SIZE",
    "ScaledDimensions",
    "calculate_dimensions",
    "clear_cache",
    "get_canvas_max_size",
    "get_optimal_canvas_size",
    "limits_from_env",
    "supports_large_canvas",
]
