#!/usr/bin/env python3
"""
ico2png.py — Extract every frame of an ICO file as a PNG.

usage: ico2png [-o OUTDIR] [-v] ICO_FILE
Frames are written as <name>01.png, <name>02.png, ... in directory order.
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from icodecoder import decode_ico
from icoerrors import ICODecodeError

log = logging.getLogger("ico2png")


def frame_paths(ico_path: Path, outdir: Path, count: int) -> List[Path]:
    return [outdir / f"{ico_path.stem}{i:02d}.png" for i in range(1, count + 1)]


def convert(ico_path: Path, outdir: Path) -> List[Path]:
    data = Path(ico_path).read_bytes()
    images = decode_ico(data)
    outdir.mkdir(parents=True, exist_ok=True)
    paths = frame_paths(Path(ico_path), outdir, len(images))
    for img, out_path in zip(images, paths):
        img.to_pil().save(out_path, format="PNG")
        log.info("saved %s (%dx%d, %s)", out_path, img.width, img.height, img.source)
    return paths


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="ico2png", description="Convert each image in an ICO file to PNG")
    parser.add_argument("input", metavar="ICO_FILE", help="Path to input ICO")
    parser.add_argument("-o", "--outdir", default=".", help="Output directory (default: current directory)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log decoder details")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    if not Path(args.input).is_file():
        print(f"Input file not found: {args.input}", file=sys.stderr)
        return 2

    try:
        convert(Path(args.input), Path(args.outdir))
    except (ICODecodeError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
