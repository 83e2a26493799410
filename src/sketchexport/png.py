"""PNG chunk table reader and ``pHYs`` chunk editor.

Exported sketches are rasterized at ``scale * device pixel ratio`` so they stay
sharp on dense screens. Without resolution metadata a viewer would display
such an image at twice (or more) its intended size, so the exporter writes a
``pHYs`` chunk declaring a density proportional to the scale factor.

The helpers operate on in-memory byte strings and never mutate their input.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import math
import struct
from typing import Dict, Optional

log = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Pixels per metre of a 96 DPI display.
DPI_96 = 2835.5

LENGTH_SIZE = 4
TYPE_SIZE = 4
CRC_SIZE = 4
PHYS_DATA_SIZE = 9
PHYS_CHUNK_SIZE = LENGTH_SIZE + TYPE_SIZE + PHYS_DATA_SIZE + CRC_SIZE

UNIT_UNKNOWN = 0
UNIT_METRE = 1

# Used when neither pHYs nor IDAT can be located. Assumes the signature is
# followed directly by a 13-byte IHDR and one more 13-byte chunk; nothing
# guarantees that layout.
FALLBACK_INSERT_OFFSET = 46

_UINT32_MAX = 0xFFFFFFFF


def _make_crc_table() -> tuple[int, ...]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            if c & 1:
                c = 0xEDB88320 ^ (c >> 1)
            else:
                c >>= 1
        table.append(c)
    return tuple(table)


CRC_TABLE = _make_crc_table()


def crc32(data: bytes, previous: int = 0) -> int:
    """Return the PNG/zlib CRC32 of *data*.

    *previous* continues a running checksum, so ``crc32(b, crc32(a))`` equals
    ``crc32(a + b)``.
    """

    crc = (previous & _UINT32_MAX) ^ _UINT32_MAX
    for byte in data:
        crc = CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _UINT32_MAX


class PNGChunkError(ValueError):
    """Base class for errors raised while reading or editing PNG chunks."""


class InvalidSignatureError(PNGChunkError):
    """Raised when the buffer does not start with the PNG signature."""


class ChunkReadError(PNGChunkError):
    """Raised when a chunk header runs past the end of the buffer."""


class ChunkParseError(PNGChunkError):
    """Raised when a chunk payload cannot be decoded."""


class ChunkRule(Enum):
    """Which occurrence of a repeated chunk type the chunk table keeps."""

    FIRST_OCCURRENCE_ONLY = "first"
    LAST_OCCURRENCE_WINS = "last"


# Image data may be split across several IDAT chunks; inserting before the
# first one is what matters.
CHUNK_RULES: Dict[str, ChunkRule] = {
    "IDAT": ChunkRule.FIRST_OCCURRENCE_ONLY,
}


def chunk_rule(chunk_type: str) -> ChunkRule:
    return CHUNK_RULES.get(chunk_type, ChunkRule.LAST_OCCURRENCE_WINS)


@dataclass(frozen=True)
class PNGChunk:
    start: int
    data_offset: int
    size: int

    @property
    def end(self) -> int:
        """Offset just past the chunk's CRC."""
        return self.data_offset + self.size + CRC_SIZE


@dataclass(frozen=True)
class PhysicalDimensions:
    ppux: int
    ppuy: int
    unit: int


@dataclass(frozen=True)
class ExportedImage:
    data: bytes
    mime_type: Optional[str] = None

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)


def _in_bounds(data: bytes, offset: int, size: int) -> bool:
    return offset >= 0 and offset + size <= len(data)


def is_png(data: bytes, offset: int = 0) -> bool:
    """Return True if the PNG signature is present at *offset*."""

    if not _in_bounds(data, offset, len(PNG_SIGNATURE)):
        return False
    return bytes(data[offset : offset + len(PNG_SIGNATURE)]) == PNG_SIGNATURE


def read_chunk_type(data: bytes, offset: int) -> str:
    if not _in_bounds(data, offset, TYPE_SIZE):
        log.error("chunk type at offset %d is outside a %d byte buffer", offset, len(data))
        raise ChunkReadError(f"Cannot read chunk type at offset {offset}")
    return bytes(data[offset : offset + TYPE_SIZE]).decode("latin-1")


def read_chunks(data: bytes, offset: int = 0) -> Dict[str, PNGChunk]:
    """Scan the PNG starting at *offset* and return its chunk table.

    The table maps chunk type codes to their location. ``IEND`` ends the scan
    and is not recorded; anything after it is ignored. Repeated chunk types
    follow :data:`CHUNK_RULES`.
    """

    if not is_png(data, offset):
        log.error("no PNG signature at offset %d", offset)
        raise InvalidSignatureError("Invalid PNG signature")

    chunks: Dict[str, PNGChunk] = {}
    offset += len(PNG_SIGNATURE)

    while offset < len(data):
        start = offset
        if not _in_bounds(data, offset, LENGTH_SIZE):
            log.error("truncated chunk length at offset %d (buffer is %d bytes)", offset, len(data))
            raise ChunkReadError(f"Truncated chunk header at offset {offset}")
        (length,) = struct.unpack_from(">I", data, offset)
        offset += LENGTH_SIZE
        chunk_type = read_chunk_type(data, offset)
        offset += TYPE_SIZE
        next_offset = offset + length + CRC_SIZE

        if chunk_type == "IEND":
            break

        if chunk_type in chunks and chunk_rule(chunk_type) is ChunkRule.FIRST_OCCURRENCE_ONLY:
            offset = next_offset
            continue

        chunks[chunk_type] = PNGChunk(start=start, data_offset=offset, size=length)
        offset = next_offset

    return chunks


def parse_physical_dimensions(data: bytes, offset: int) -> PhysicalDimensions:
    """Decode the 9-byte ``pHYs`` payload starting at *offset*."""

    if not _in_bounds(data, offset, PHYS_DATA_SIZE):
        log.error("pHYs payload at offset %d is outside a %d byte buffer", offset, len(data))
        raise ChunkParseError(f"Cannot parse pHYs payload at offset {offset}")
    ppux, ppuy, unit = struct.unpack_from(">IIB", data, offset)
    return PhysicalDimensions(ppux=ppux, ppuy=ppuy, unit=unit)


def find_chunk(data: bytes, chunk_type: str) -> Optional[PNGChunk]:
    """Return the location of *chunk_type*, or None if the PNG has none."""

    return read_chunks(data).get(chunk_type)


def pixels_per_metre(device_pixel_ratio: float) -> int:
    """Density declared for *device_pixel_ratio*, rounded half up."""

    if not math.isfinite(device_pixel_ratio) or device_pixel_ratio <= 0:
        raise ValueError(f"Device pixel ratio must be a positive number, got {device_pixel_ratio!r}")
    ppu = math.floor(DPI_96 * device_pixel_ratio + 0.5)
    if ppu > _UINT32_MAX:
        raise ValueError(f"Device pixel ratio {device_pixel_ratio!r} is too large for a pHYs chunk")
    return ppu


def build_physical_chunk(ppu: int, unit: int = UNIT_METRE) -> bytes:
    """Return a complete 21-byte ``pHYs`` chunk with the same density on both axes."""

    body = b"pHYs" + struct.pack(">IIB", ppu, ppu, unit)
    return struct.pack(">I", PHYS_DATA_SIZE) + body + struct.pack(">I", crc32(body))


def set_physical_chunk(
    data: bytes, device_pixel_ratio: float = 1, mime_type: Optional[str] = None
) -> ExportedImage:
    """Return a copy of *data* declaring a density of ``96 DPI * device_pixel_ratio``.

    An existing ``pHYs`` chunk is replaced in place. Otherwise the new chunk
    is inserted right before the first ``IDAT`` chunk, as PNG requires
    ``pHYs`` to precede the image data. When neither chunk is present the
    chunk goes to :data:`FALLBACK_INSERT_OFFSET`.
    """

    chunk = build_physical_chunk(pixels_per_metre(device_pixel_ratio))
    chunks = read_chunks(data)

    phys = chunks.get("pHYs")
    idat = chunks.get("IDAT")
    if phys is not None:
        offset, replaced = phys.start, phys.end - phys.start
    elif idat is not None:
        offset, replaced = idat.start, 0
    else:
        log.warning(
            "PNG has neither pHYs nor IDAT chunks; inserting pHYs at fallback offset %d",
            FALLBACK_INSERT_OFFSET,
        )
        offset, replaced = FALLBACK_INSERT_OFFSET, 0

    output = bytes(data[:offset]) + chunk + bytes(data[offset + replaced :])
    return ExportedImage(data=output, mime_type=mime_type)


__all__ = [
    "CHUNK_RULES",
    "ChunkParseError",
    "ChunkReadError",
    "ChunkRule",
    "DPI_96",
    "ExportedImage",
    "FALLBACK_INSERT_OFFSET",
    "InvalidSignatureError",
    "PNGChunk",
    "PNGChunkError",
    "PNG_SIGNATURE",
    "PhysicalDimensions",
    "build_physical_chunk",
    "crc32",
    "find_chunk",
    "is_png",
    "parse_physical_dimensions",
    "pixels_per_metre",
    "read_chunk_type",
    "read_chunks",
    "set_physical_chunk",
]
