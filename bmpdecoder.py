#!/usr/bin/env python3
"""
bmpdecoder.py — Manual BMP (DIB) decoder (no Pillow)

Reads:
- BITMAPFILEHEADER (signature, sizes, pixel offset)
- BITMAPINFOHEADER (40 bytes; V4/V5 headers accepted, extra fields skipped)
- Optional BGRX color table
- Uncompressed pixel rows at 1, 4, 8, 24 or 32 bits per pixel
Returns:
    DecodedImage: palette indices plus palette for 1/4/8 bpp,
    RGBA pixels for 24/32 bpp.
"""

from __future__ import annotations
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Optional

import numpy as np

from icoerrors import (
    InvalidDimensions,
    InvalidSignature,
    TruncatedData,
    UnsupportedColorDepth,
    UnsupportedCompression,
    UnsupportedDibHeaderSize,
)

log = logging.getLogger(__name__)

FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
SUPPORTED_DIB_SIZES = (40, 108, 124)

BMP_FILE_HEADER_FMT = "<2sIHHI"
BMP_INFO_HEADER_FMT = "<IiiHHIIiiII"

PALETTE_DEPTHS = (1, 4, 8)
DIRECT_DEPTHS = (16, 24, 32)

RGBA = Tuple[int, int, int, int]


@dataclass
class BMPFileHeader:
    signature: bytes
    file_size: int
    reserved1: int
    reserved2: int
    offset_bits: int

    def pack(self) -> bytes:
        return struct.pack(BMP_FILE_HEADER_FMT, self.signature, self.file_size,
                           self.reserved1, self.reserved2, self.offset_bits)


@dataclass
class BMPInfoHeader:
    size: int
    width: int
    height: int
    planes: int
    bit_count: int
    compression: int
    size_image: int
    x_pels_per_meter: int
    y_pels_per_meter: int
    colors_used: int
    colors_important: int

    @property
    def top_down(self) -> bool:
        return self.height < 0

    @property
    def abs_height(self) -> int:
        return abs(self.height)

    def pack(self) -> bytes:
        """The 40 standard BITMAPINFOHEADER bytes (V4/V5 extras not included)."""
        return struct.pack(
            BMP_INFO_HEADER_FMT,
            self.size, self.width, self.height, self.planes, self.bit_count,
            self.compression, self.size_image, self.x_pels_per_meter,
            self.y_pels_per_meter, self.colors_used, self.colors_important,
        )


@dataclass
class BMPConfig:
    width: int
    height: int
    bit_count: int
    top_down: bool
    palette: Optional[List[RGBA]]


@dataclass
class DecodedImage:
    """Decoded bitmap.

    pixels is (height, width) palette indices when palette is set,
    otherwise (height, width, 4) RGBA. Row 0 is always the top row.
    """
    width: int
    height: int
    bit_count: int
    pixels: np.ndarray
    palette: Optional[List[RGBA]] = None
    top_down: bool = False

    @property
    def is_paletted(self) -> bool:
        return self.palette is not None

    def to_rgba(self) -> np.ndarray:
        if not self.is_paletted:
            return self.pixels
        # indices past the end of a short color table map to opaque black
        lut = np.zeros((256, 4), dtype=np.uint8)
        lut[:, 3] = 255
        lut[:len(self.palette)] = self.palette[:256]
        return lut[self.pixels]

    def getpixel(self, xy: Tuple[int, int]) -> RGBA:
        x, y = xy
        if self.is_paletted:
            idx = int(self.pixels[y, x])
            if idx < len(self.palette):
                return self.palette[idx]
            return (0, 0, 0, 255)
        return tuple(int(c) for c in self.pixels[y, x])


def _unpack_field(fmt: str, data: bytes, pos: int, what: str):
    size = struct.calcsize(fmt)
    if pos < 0 or pos + size > len(data):
        raise TruncatedData(f"Incomplete {what} at offset {pos}")
    return struct.unpack_from(fmt, data, pos)[0]


def row_stride(width: int, bit_count: int) -> int:
    """Bytes per pixel row, padded to a 4-byte boundary."""
    return (width * bit_count + 31) // 32 * 4


def read_file_header(data: bytes, pos: int = 0) -> BMPFileHeader:
    if len(data) - pos < FILE_HEADER_SIZE:
        raise TruncatedData("Incomplete BMP file header")
    fields = struct.unpack_from(BMP_FILE_HEADER_FMT, data, pos)
    header = BMPFileHeader(*fields)
    if header.signature != b"BM":
        raise InvalidSignature(f"BMP signature should be 'BM' (got: {header.signature!r})")
    return header


def read_info_header(data: bytes, pos: int = 0) -> BMPInfoHeader:
    """Read and validate a DIB info header field by field.

    Checks run in file order: header size, width, height, compression.
    """
    size = _unpack_field("<I", data, pos, "DIB header size")
    if size not in SUPPORTED_DIB_SIZES:
        raise UnsupportedDibHeaderSize(f"Unsupported DIB header size (got: {size})")
    if pos + size > len(data):
        raise TruncatedData(f"Incomplete {size}-byte DIB header")

    width = _unpack_field("<i", data, pos + 4, "width")
    if width <= 0:
        raise InvalidDimensions(f"Width should be greater than zero (got: {width})")
    height = _unpack_field("<i", data, pos + 8, "height")
    if height == 0:
        raise InvalidDimensions("Height should be non-zero (got: 0)")

    planes = _unpack_field("<H", data, pos + 12, "planes")
    bit_count = _unpack_field("<H", data, pos + 14, "bit count")
    compression = _unpack_field("<I", data, pos + 16, "compression")
    if compression != 0:
        raise UnsupportedCompression(f"Only uncompressed bitmaps are supported (got: {compression})")

    return BMPInfoHeader(
        size=size,
        width=width,
        height=height,
        planes=planes,
        bit_count=bit_count,
        compression=compression,
        size_image=_unpack_field("<I", data, pos + 20, "image size"),
        x_pels_per_meter=_unpack_field("<i", data, pos + 24, "x resolution"),
        y_pels_per_meter=_unpack_field("<i", data, pos + 28, "y resolution"),
        colors_used=_unpack_field("<I", data, pos + 32, "colors used"),
        colors_important=_unpack_field("<I", data, pos + 36, "colors important"),
    )


def read_palette(data: bytes, pos: int, count: int) -> List[RGBA]:
    """Read count BGRX quads; alpha is always forced to 255."""
    end = pos + count * 4
    if end > len(data):
        raise TruncatedData(f"Color table needs {count * 4} bytes, {max(0, len(data) - pos)} available")
    raw = data[pos:end]
    return [(raw[i + 2], raw[i + 1], raw[i], 255) for i in range(0, len(raw), 4)]


def _read_layout(data: bytes):
    """Parse headers and color model. Returns (info, palette, pixel_data_pos)."""
    read_file_header(data)
    info = read_info_header(data, FILE_HEADER_SIZE)
    pos = FILE_HEADER_SIZE + info.size

    if info.bit_count in PALETTE_DEPTHS:
        count = info.colors_used or (1 << info.bit_count)
        palette = read_palette(data, pos, count)
        pos += count * 4
    elif info.bit_count in DIRECT_DEPTHS:
        palette = None
        # optional color table of direct-color bitmaps is skipped
        pos += info.colors_used * 4
    else:
        raise UnsupportedColorDepth(f"Unsupported bits per pixel (got: {info.bit_count})")
    return info, palette, pos


def decode_bmp_config(data: bytes) -> BMPConfig:
    """Header-only decode: geometry and color model, no pixel rows."""
    info, palette, _ = _read_layout(data)
    return BMPConfig(info.width, info.abs_height, info.bit_count, info.top_down, palette)


# --------------------------- Row unpacking ---------------------------------

def read_rows(data: bytes, pos: int, width: int, height: int, bit_count: int,
              top_down: bool) -> np.ndarray:
    """Return (height, stride) raw row bytes, reordered so row 0 is the top."""
    stride = row_stride(width, bit_count)
    needed = stride * height
    raw = data[pos:pos + needed]
    if len(raw) < needed:
        raise TruncatedData(f"Pixel data needs {needed} bytes ({height} rows of {stride}), got {len(raw)}")
    rows = np.frombuffer(raw, dtype=np.uint8).reshape(height, stride)
    return rows if top_down else rows[::-1]


def unpack_1bpp(rows: np.ndarray, width: int) -> np.ndarray:
    # MSB is the leftmost pixel
    return np.unpackbits(rows, axis=1)[:, :width]


def unpack_4bpp(rows: np.ndarray, width: int) -> np.ndarray:
    out = np.empty((rows.shape[0], rows.shape[1] * 2), dtype=np.uint8)
    out[:, 0::2] = rows >> 4
    out[:, 1::2] = rows & 0x0F
    return out[:, :width]


def unpack_8bpp(rows: np.ndarray, width: int) -> np.ndarray:
    return np.ascontiguousarray(rows[:, :width])


def unpack_24bpp(rows: np.ndarray, width: int) -> np.ndarray:
    bgr = rows[:, :width * 3].reshape(rows.shape[0], width, 3)
    rgba = np.full((rows.shape[0], width, 4), 255, dtype=np.uint8)
    rgba[..., 0] = bgr[..., 2]
    rgba[..., 1] = bgr[..., 1]
    rgba[..., 2] = bgr[..., 0]
    return rgba


def unpack_32bpp(rows: np.ndarray, width: int) -> np.ndarray:
    bgra = rows[:, :width * 4].reshape(rows.shape[0], width, 4)
    return np.ascontiguousarray(bgra[..., [2, 1, 0, 3]])


UNPACKERS = {
    1: unpack_1bpp,
    4: unpack_4bpp,
    8: unpack_8bpp,
    24: unpack_24bpp,
    32: unpack_32bpp,
}


def decode_bmp(data: bytes) -> DecodedImage:
    info, palette, pos = _read_layout(data)
    width, height = info.width, info.abs_height

    unpack = UNPACKERS.get(info.bit_count)
    if unpack is None:
        # 16 bpp selects a direct color model but has no unpack rule
        raise UnsupportedColorDepth(f"No pixel decoder for {info.bit_count}-bit bitmaps")

    rows = read_rows(data, pos, width, height, info.bit_count, info.top_down)
    pixels = unpack(rows, width)
    log.debug("decoded %dx%d %d-bit bitmap (%s)", width, height, info.bit_count,
              "top-down" if info.top_down else "bottom-up")
    return DecodedImage(
        width=width,
        height=height,
        bit_count=info.bit_count,
        pixels=pixels,
        palette=palette,
        top_down=info.top_down,
    )


if __name__ == "__main__":
    import sys
    if len(sys.argv) < 2:
        print("Usage: python bmpdecoder.py <file.bmp>")
    else:
        cfg = decode_bmp_config(Path(sys.argv[1]).read_bytes())
        print(f"Image Dimensions: {cfg.width} × {cfg.height}")
        print(f"Bits per Pixel: {cfg.bit_count}")
        print(f"Row Order: {'top-down' if cfg.top_down else 'bottom-up'}")
        print(f"Palette entries: {len(cfg.palette) if cfg.palette else 'None'}")
