from __future__ import annotations

import pytest

from sketchexport import dimensions
from sketchexport.dimensions import (
    CanvasMaxSize,
    FALLBACK_MAX_SIZE,
    calculate_dimensions,
    get_canvas_max_size,
    get_optimal_canvas_size,
    supports_large_canvas,
)


LIMITS = CanvasMaxSize(max_width=1000, max_height=1000, max_area=1_000_000)


@pytest.fixture(autouse=True)
def _reset_cache():
    dimensions.clear_cache()
    yield
    dimensions.clear_cache()


def test_calculate_dimensions_within_limits() -> None:
    scaled = calculate_dimensions(100, 50, 2, LIMITS)
    assert (scaled.width, scaled.height) == (200, 100)
    assert scaled.effective_scale == 2.0


def test_calculate_dimensions_clamps_width() -> None:
    scaled = calculate_dimensions(2000, 500, 1, LIMITS)
    assert (scaled.width, scaled.height) == (1000, 250)
    assert scaled.effective_scale == 0.5


def test_calculate_dimensions_clamps_height() -> None:
    scaled = calculate_dimensions(400, 4000, 1, LIMITS)
    assert (scaled.width, scaled.height) == (100, 1000)
    assert scaled.effective_scale == 0.25


def test_calculate_dimensions_clamps_scaled_size() -> None:
    limits = CanvasMaxSize(max_width=100, max_height=100, max_area=10**6)
    scaled = calculate_dimensions(80, 10, 2, limits)
    assert (scaled.width, scaled.height) == (100, 12)
    assert scaled.effective_scale == 1.25

    scaled = calculate_dimensions(10, 80, 2, limits)
    assert (scaled.width, scaled.height) == (12, 100)
    assert scaled.effective_scale == 1.25


def test_calculate_dimensions_clamps_area() -> None:
    limits = CanvasMaxSize(max_width=1000, max_height=1000, max_area=10_000)
    scaled = calculate_dimensions(100, 100, 2, limits)
    assert (scaled.width, scaled.height) == (100, 100)
    assert scaled.effective_scale == pytest.approx(1.0)


def test_calculate_dimensions_floors_size() -> None:
    scaled = calculate_dimensions(33, 17, 1.5, LIMITS)
    assert (scaled.width, scaled.height) == (49, 25)
    assert scaled.effective_scale == 1.5


def test_calculate_dimensions_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        calculate_dimensions(0, 10, 1, LIMITS)
    with pytest.raises(ValueError):
        calculate_dimensions(10, 10, 0, LIMITS)


def test_get_optimal_canvas_size() -> None:
    assert get_optimal_canvas_size(32768, 100).width == 16384
    size = get_optimal_canvas_size(2000, 4000, LIMITS)
    assert (size.width, size.height) == (500, 1000)
    size = get_optimal_canvas_size(300, 200, LIMITS)
    assert (size.width, size.height) == (300, 200)


def test_supports_large_canvas() -> None:
    assert supports_large_canvas(1000, 1000, LIMITS)
    assert not supports_large_canvas(1001, 10, LIMITS)
    assert supports_large_canvas(16384, 16384)


def test_get_canvas_max_size_default_is_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (dimensions.ENV_MAX_WIDTH, dimensions.ENV_MAX_HEIGHT, dimensions.ENV_MAX_AREA):
        monkeypatch.delenv(name, raising=False)
    assert get_canvas_max_size() == FALLBACK_MAX_SIZE


def test_get_canvas_max_size_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(dimensions.ENV_MAX_WIDTH, "4096")
    monkeypatch.setenv(dimensions.ENV_MAX_HEIGHT, "not-a-number")
    monkeypatch.setenv(dimensions.ENV_MAX_AREA, "-5")
    limits = get_canvas_max_size()
    assert limits.max_width == 4096
    assert limits.max_height == FALLBACK_MAX_SIZE.max_height
    assert limits.max_area == FALLBACK_MAX_SIZE.max_area

    # cached until cleared
    monkeypatch.setenv(dimensions.ENV_MAX_WIDTH, "2048")
    assert get_canvas_max_size().max_width == 4096
    dimensions.clear_cache()
    assert get_canvas_max_size().max_width == 2048


def test_get_canvas_max_size_probe() -> None:
    assert get_canvas_max_size(lambda: LIMITS) == LIMITS
    assert get_canvas_max_size(lambda: None) == FALLBACK_MAX_SIZE

    def broken() -> CanvasMaxSize:
        raise RuntimeError("no canvas")

    assert get_canvas_max_size(broken) == FALLBACK_MAX_SIZE
