"""Command line access to the PNG resolution helpers."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
import sys
from typing import List, Optional

from .png import (
    PNGChunkError,
    parse_physical_dimensions,
    pixels_per_metre,
    read_chunks,
    set_physical_chunk,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

UNIT_NAMES = {0: "unknown", 1: "metre"}


def _configure_logging(parser: argparse.ArgumentParser, level: Optional[str]) -> None:
    level = level or os.getenv("LOG_LEVEL", "WARNING").upper()
    if level not in LOG_LEVELS:
        parser.error(f"invalid log level {level!r} (choose from {', '.join(LOG_LEVELS)})")
    logging.basicConfig(level=level, format=LOG_FORMAT)


def cmd_info(args: argparse.Namespace) -> int:
    data = Path(args.file).read_bytes()
    chunks = read_chunks(data)
    for chunk_type, chunk in chunks.items():
        print(f"{chunk_type}  start={chunk.start}  data_offset={chunk.data_offset}  size={chunk.size}")
    phys = chunks.get("pHYs")
    if phys is not None:
        dims = parse_physical_dimensions(data, phys.data_offset)
        unit = UNIT_NAMES.get(dims.unit, str(dims.unit))
        print(f"resolution: {dims.ppux}x{dims.ppuy} pixels per {unit}")
    return 0


def cmd_set_dpi(args: argparse.Namespace) -> int:
    source = Path(args.file)
    target = Path(args.output) if args.output else source
    image = set_physical_chunk(source.read_bytes(), args.dpr, mime_type="image/png")
    target.write_bytes(image.data)
    print(f"Wrote {len(image)} bytes to {target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sketchexport", description="Inspect and edit PNG resolution metadata")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (defaults to $LOG_LEVEL or WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="List the chunks of a PNG file")
    info.add_argument("file", help="PNG file to inspect")
    info.set_defaults(func=cmd_info)

    set_dpi = subparsers.add_parser("set-dpi", help="Declare a resolution for a device pixel ratio")
    set_dpi.add_argument("file", help="PNG file to annotate")
    set_dpi.add_argument("--dpr", type=float, default=1.0, help="Device pixel ratio (1 = 96 DPI)")
    set_dpi.add_argument("-o", "--output", default=None, help="Output path (defaults to overwriting FILE)")
    set_dpi.set_defaults(func=cmd_set_dpi)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(parser, args.log_level)
    if args.command == "set-dpi":
        try:
            pixels_per_metre(args.dpr)
        except ValueError as exc:
            parser.error(f"--dpr: {exc}")
    try:
        return args.func(args)
    except (OSError, PNGChunkError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
