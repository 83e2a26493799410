"""Serialize sketch SVGs to ``data:image/svg+xml`` URLs.

Rasterizers load the SVG from a data URL, which cannot reference external
resources, so ``<image>`` sources are fetched and embedded first.
"""

from __future__ import annotations

import base64
import copy
import logging
from typing import Optional, Union
import xml.etree.ElementTree as ET

import requests

from .datauri import DEFAULT_MAX_SIZE, DataURLOptions, DataURLValidationError, to_data_url

log = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
XLINK_HREF = f"{{{XLINK_NS}}}href"

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

DEFAULT_TIMEOUT = 10.0

_READ_CHUNK_SIZE = 64 * 1024

SVGSource = Union[str, bytes, ET.Element]


class SVGSerializationError(ValueError):
    """Raised when an SVG document cannot be parsed or serialized."""


def _as_element(svg: SVGSource) -> ET.Element:
    if isinstance(svg, ET.Element):
        return copy.deepcopy(svg)
    try:
        return ET.fromstring(svg)
    except (ET.ParseError, ValueError) as exc:
        log.error("could not parse SVG: %s", exc)
        raise SVGSerializationError(f"Invalid SVG document: {exc}") from exc


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _href_attribute(element: ET.Element) -> Optional[str]:
    for name in (XLINK_HREF, "href"):
        if name in element.attrib:
            return name
    return None


def _fetch_data_url(session: requests.Session, url: str, timeout: float, max_size: int) -> str:
    with session.get(url, timeout=timeout, stream=True) as response:
        response.raise_for_status()
        declared = response.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > max_size:
            raise DataURLValidationError(
                f"File size ({declared} bytes) exceeds maximum allowed size ({max_size} bytes)"
            )
        content = bytearray()
        for block in response.iter_content(chunk_size=_READ_CHUNK_SIZE):
            content.extend(block)
            if len(content) > max_size:
                raise DataURLValidationError(f"File size exceeds maximum allowed size ({max_size} bytes)")
        content_type = response.headers.get("Content-Type", "application/octet-stream")
    mime_type = content_type.split(";", 1)[0].strip() or "application/octet-stream"
    return to_data_url(bytes(content), mime_type, DataURLOptions(max_size=max_size, allowed_types=None))


def inline_images(
    svg: SVGSource,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_size: int = DEFAULT_MAX_SIZE,
) -> ET.Element:
    """Return a copy of *svg* with external ``<image>`` sources embedded as data URLs.

    Images that cannot be fetched, or are larger than *max_size* bytes, keep
    their original reference.
    """

    root = _as_element(svg)
    root.set("encoding", "UTF-8")

    images = [el for el in root.iter() if _local_name(el.tag) == "image"]
    pending = []
    for image in images:
        attribute = _href_attribute(image)
        if attribute is None:
            continue
        src = image.get(attribute, "")
        if src and not src.startswith("data:"):
            pending.append((image, attribute, src))

    if not pending:
        return root

    owns_session = session is None
    if owns_session:
        session = requests.Session()
    try:
        for image, attribute, src in pending:
            try:
                image.set(attribute, _fetch_data_url(session, src, timeout, max_size))
            except (requests.RequestException, DataURLValidationError) as exc:
                log.error("failed to embed image %s: %s", src, exc)
    finally:
        if owns_session:
            session.close()
    return root


def svg_to_data_url(svg: SVGSource) -> str:
    """Serialize *svg* as UTF-8 and wrap it in a base64 data URL."""

    root = _as_element(svg)
    try:
        markup = ET.tostring(root, encoding="unicode")
    except (TypeError, ValueError) as exc:
        log.error("could not serialize SVG: %s", exc)
        raise SVGSerializationError(f"Cannot serialize SVG: {exc}") from exc
    encoded = base64.b64encode(markup.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def svg_to_data_url_inlined(
    svg: SVGSource,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_size: int = DEFAULT_MAX_SIZE,
) -> str:
    return svg_to_data_url(inline_images(svg, session=session, timeout=timeout, max_size=max_size))


__all__ = [
    "SVGSerializationError",
    "inline_images",
    "svg_to_data_url",
    "svg_to_data_url_inlined",
]
