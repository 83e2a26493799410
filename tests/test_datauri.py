from __future__ import annotations

import pytest

from sketchexport.datauri import (
    DataURLOptions,
    DataURLValidationError,
    decode_data_url,
    get_mime_type,
    is_valid_base64,
    to_data_url,
)


def test_to_data_url_png() -> None:
    url = to_data_url(b"\x89PNG", "image/png")
    assert url == "data:image/png;base64,iVBORw=="
    assert decode_data_url(url) == ("image/png", b"\x89PNG")


def test_to_data_url_rejects_large_payload() -> None:
    with pytest.raises(DataURLValidationError, match="exceeds maximum allowed size"):
        to_data_url(b"x" * 11, "image/png", DataURLOptions(max_size=10))


def test_to_data_url_rejects_type() -> None:
    with pytest.raises(DataURLValidationError, match='File type "text/html" is not allowed'):
        to_data_url(b"<p>", "text/html")


def test_to_data_url_checks_can_be_disabled() -> None:
    options = DataURLOptions(max_size=None, allowed_types=None)
    assert to_data_url(b"<p>", "text/html", options).startswith("data:text/html;base64,")


def test_is_valid_base64() -> None:
    assert is_valid_base64("iVBORw==")
    assert is_valid_base64("data:image/png;base64,iVBORw==")
    assert is_valid_base64("")
    assert not is_valid_base64("iVBORw===")
    assert not is_valid_base64("not base64!")
    assert not is_valid_base64("data:image/png;base64,ab$c")


def test_get_mime_type() -> None:
    assert get_mime_type("data:image/svg+xml;base64,PHN2Zz4=") == "image/svg+xml"
    assert get_mime_type("PHN2Zz4=") is None
    assert get_mime_type("data:text/plain,hello") is None


def test_decode_data_url_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        decode_data_url("data:image/png;base64,ab$c")


def test_zero_max_size_only_allows_empty_payload() -> None:
    options = DataURLOptions(max_size=0)
    assert to_data_url(b"", "image/png", options) == "data:image/png;base64,"
    with pytest.raises(DataURLValidationError, match="exceeds maximum allowed size"):
        to_data_url(b"x", "image/png", options)
