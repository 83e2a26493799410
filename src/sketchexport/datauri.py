"""Helpers for base64 ``data:`` URLs."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
import logging
import re
from typing import Optional, Tuple

log = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 10 * 1024 * 1024
DEFAULT_ALLOWED_TYPES: Tuple[str, ...] = (
    "image/png",
    "image/jpeg",
    "image/svg+xml",
    "image/webp",
)

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
_DATA_URL_RE = re.compile(r"^data:([^;,]+);base64,")


class DataURLValidationError(ValueError):
    """Raised when data is rejected for conversion to a data URL."""


@dataclass(frozen=True)
class DataURLOptions:
    # None disables the corresponding check.
    max_size: Optional[int] = DEFAULT_MAX_SIZE
    allowed_types: Optional[Tuple[str, ...]] = field(default=DEFAULT_ALLOWED_TYPES)


def validate(data: bytes, mime_type: str, options: DataURLOptions) -> None:
    if options.max_size is not None and len(data) > options.max_size:
        raise DataURLValidationError(
            f"File size ({len(data)} bytes) exceeds maximum allowed size ({options.max_size} bytes)"
        )
    if options.allowed_types is not None and mime_type not in options.allowed_types:
        raise DataURLValidationError(
            f'File type "{mime_type}" is not allowed. Allowed types: {", ".join(options.allowed_types)}'
        )


def to_data_url(data: bytes, mime_type: str, options: Optional[DataURLOptions] = None) -> str:
    """Encode *data* as ``data:<mime_type>;base64,...`` after validating it."""

    options = options or DataURLOptions()
    try:
        validate(data, mime_type, options)
    except DataURLValidationError as exc:
        log.error("rejected %s payload for data URL: %s", mime_type, exc)
        raise
    encoded = base64.b64encode(data).decode("ascii")
    log.debug("encoded data URL (size=%d, type=%s)", len(data), mime_type)
    return f"data:{mime_type};base64,{encoded}"


def _payload(value: str) -> str:
    _, sep, tail = value.partition(",")
    return tail if sep and tail else value


def is_valid_base64(value: str) -> bool:
    """Return True if *value* (optionally a data URL) holds only base64 characters."""

    return bool(_BASE64_RE.match(_payload(value)))


def get_mime_type(value: str) -> Optional[str]:
    match = _DATA_URL_RE.match(value)
    return match.group(1) if match else None


def decode_data_url(value: str) -> Tuple[Optional[str], bytes]:
    """Return ``(mime_type, payload)`` for a base64 data URL or bare base64 text."""

    mime_type = get_mime_type(value)
    try:
        payload = base64.b64decode(_payload(value), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 data: {exc}") from exc
    return mime_type, payload


__all__ = [
    "DEFAULT_ALLOWED_TYPES",
    "DEFAULT_MAX_SIZE",
    "DataURLOptions",
    "DataURLValidationError",
    "decode_data_url",
    "get_mime_type",
    "is_valid_base64",
    "to_data_url",
]
