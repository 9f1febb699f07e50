#!/usr/bin/env python3
"""
icodecoder.py — Manual Windows ICO decoder

Reads:
- ICONDIR header (reserved, image type, image count)
- ICONDIRENTRY table (geometry, payload size and offset per frame)
- Each payload, either a PNG stream or a headerless BMP (DIB) made of
  info header, color table, XOR color rows and AND mask rows
Returns:
    one IconImage (RGBA) per directory entry, in directory order
"""

from __future__ import annotations
import logging
import os
import struct
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from PIL import Image, UnidentifiedImageError

from bmpdecoder import (
    BMPFileHeader,
    BMPInfoHeader,
    FILE_HEADER_SIZE,
    INFO_HEADER_SIZE,
    decode_bmp,
    read_info_header,
    row_stride,
)
from icoerrors import InvalidContainerHeader, PNGDecodeError, TruncatedData
from image_processing import IconImage, apply_and_mask

log = logging.getLogger(__name__)

ICO_HEADER_FMT = "<Hhh"
ICO_DIRECTORY_FMT = "<BBBBhhiI"
ICO_HEADER_SIZE = 6
ICO_DIRECTORY_SIZE = 16

ICO_IMAGE_TYPE = 1

# AND mask color table: index 0 black (opaque), index 1 white (transparent)
AND_MASK_PALETTE = bytes([0x00, 0x00, 0x00, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF])

PNGDecoder = Callable[[bytes], IconImage]


@dataclass(frozen=True)
class ICOHeader:
    reserved: int
    image_type: int
    count: int


@dataclass(frozen=True)
class ICODirectoryEntry:
    width: int
    height: int
    color_count: int
    reserved: int
    planes: int
    bit_count: int
    size: int
    offset: int

    # 0 in the single-byte size fields means 256
    @property
    def pixel_width(self) -> int: return self.width or 256
    @property
    def pixel_height(self) -> int: return self.height or 256


def read_ico_header(data: bytes) -> ICOHeader:
    if len(data) < ICO_HEADER_SIZE:
        raise TruncatedData("Incomplete ICO header")
    header = ICOHeader(*struct.unpack_from(ICO_HEADER_FMT, data, 0))
    if header.image_type != ICO_IMAGE_TYPE:
        raise InvalidContainerHeader(f"Image type should be 1 (got: {header.image_type})")
    if header.count <= 0:
        raise InvalidContainerHeader(f"Invalid number of images (got: {header.count})")
    return header


def read_ico_directory(data: bytes, count: int) -> List[ICODirectoryEntry]:
    """Read count directory records that follow the 6-byte header."""
    end = ICO_HEADER_SIZE + ICO_DIRECTORY_SIZE * count
    if len(data) < end:
        raise TruncatedData(f"Directory of {count} entries needs {end} bytes, got {len(data)}")
    return [
        ICODirectoryEntry(*struct.unpack_from(ICO_DIRECTORY_FMT, data, ICO_HEADER_SIZE + ICO_DIRECTORY_SIZE * i))
        for i in range(count)
    ]


def locate_payload(entry: ICODirectoryEntry, buffer: bytes, count: int) -> bytes:
    """Slice an entry's payload out of the bytes that follow the directory."""
    offset = entry.offset - (ICO_HEADER_SIZE + ICO_DIRECTORY_SIZE * count)
    end = offset + entry.size
    if offset < 0 or entry.size < 0 or end > len(buffer):
        raise TruncatedData(
            f"Payload at file offset {entry.offset} ({entry.size} bytes) is outside the data"
        )
    return buffer[offset:end]


# --------------------------- BMP stream synthesis ---------------------------

def build_bmp_streams(entry: ICODirectoryEntry, payload: bytes) -> Tuple[bytes, bytes]:
    """Rebuild the XOR and AND bitmaps of a headerless ICO payload as two
    standalone BMP files, each decodable by decode_bmp.

    The payload's info header reports twice the real height (XOR rows
    followed by AND rows). The XOR block size comes from the directory
    geometry; everything after it belongs to the AND mask.
    """
    info = read_info_header(payload)
    body = payload[info.size:]

    palette_size = info.colors_used * 4
    if palette_size == 0 and info.bit_count < 16:
        palette_size = (1 << info.bit_count) * 4

    width, height = entry.pixel_width, entry.pixel_height
    xor_size = palette_size + row_stride(width, info.bit_count) * height
    # int() truncates toward zero, keeping the sign for top-down bitmaps
    half_height = int(info.height / 2)

    xor_info = payload[:info.size]
    xor_info = xor_info[:8] + struct.pack("<i", half_height) + xor_info[12:]
    xor_file = BMPFileHeader(
        b"BM",
        FILE_HEADER_SIZE + info.size + xor_size,
        0, 0,
        FILE_HEADER_SIZE + info.size + palette_size,
    )
    xor_stream = xor_file.pack() + xor_info + body[:xor_size]

    mask_rows = body[xor_size:]
    and_info = BMPInfoHeader(
        size=INFO_HEADER_SIZE,
        width=info.width,
        height=half_height,
        planes=0,
        bit_count=1,
        compression=0,
        size_image=0,
        x_pels_per_meter=0,
        y_pels_per_meter=0,
        colors_used=0,
        colors_important=0,
    )
    and_file = BMPFileHeader(
        b"BM",
        FILE_HEADER_SIZE + INFO_HEADER_SIZE + len(AND_MASK_PALETTE) + len(mask_rows),
        0, 0,
        FILE_HEADER_SIZE + INFO_HEADER_SIZE + len(AND_MASK_PALETTE),
    )
    and_stream = and_file.pack() + and_info.pack() + AND_MASK_PALETTE + mask_rows

    log.debug("synthesized XOR (%d bytes) and AND (%d bytes) bitmaps for %dx%d %d-bit frame",
              len(xor_stream), len(and_stream), width, height, info.bit_count)
    return xor_stream, and_stream


# --------------------------- Frame decoding ---------------------------------

def is_png_payload(payload: bytes) -> bool:
    return payload[1:4] == b"PNG"


def decode_png(payload: bytes) -> IconImage:
    """Decode a PNG payload with Pillow."""
    try:
        with Image.open(BytesIO(payload), formats=["PNG"]) as img:
            img.load()
            return IconImage.from_pil(img, source="png")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise PNGDecodeError(f"PNG payload could not be decoded: {e}") from e


def decode_ico_frame(entry: ICODirectoryEntry, payload: bytes,
                     png_decoder: PNGDecoder = decode_png) -> IconImage:
    if is_png_payload(payload):
        log.debug("frame %dx%d: PNG payload (%d bytes)", entry.pixel_width, entry.pixel_height, len(payload))
        return png_decoder(payload)

    xor_stream, and_stream = build_bmp_streams(entry, payload)
    xor_img = decode_bmp(xor_stream)
    and_img = decode_bmp(and_stream)
    return apply_and_mask(xor_img, and_img)


def read_ico_frames(data: bytes) -> Tuple[ICOHeader, List[Tuple[ICODirectoryEntry, bytes]]]:
    """Parse the header and directory once and slice out every payload."""
    header = read_ico_header(data)
    entries = read_ico_directory(data, header.count)
    buffer = data[ICO_HEADER_SIZE + ICO_DIRECTORY_SIZE * header.count:]
    return header, [(entry, locate_payload(entry, buffer, header.count)) for entry in entries]


def decode_ico(data: bytes, png_decoder: PNGDecoder = decode_png) -> List[IconImage]:
    """Decode every frame of an ICO file held in memory.

    Any error aborts the whole decode; no partial list is returned.
    """
    _, frames = read_ico_frames(data)
    images = []
    for i, (entry, payload) in enumerate(frames):
        log.debug("frame %d: %d bytes at offset %d", i, entry.size, entry.offset)
        images.append(decode_ico_frame(entry, payload, png_decoder))
    return images


def describe_entry(entry: ICODirectoryEntry, payload: bytes) -> str:
    kind = "PNG" if is_png_payload(payload) else f"BMP {entry.bit_count}-bit"
    return f"{entry.pixel_width}x{entry.pixel_height} {kind}, {entry.size} bytes @ {entry.offset}"


def decode_ico_file(path: Path) -> Tuple[List[IconImage], Dict[str, object]]:
    """Return (images, header_info) for an ICO file on disk."""
    path = Path(path)
    data = path.read_bytes()
    header, frames = read_ico_frames(data)
    images = [decode_ico_frame(entry, payload) for entry, payload in frames]

    header_info = {
        "Filename": os.path.basename(path),
        "File Size": f"{len(data)} bytes",
        "Image Type": f"{header.image_type} (Icon)",
        "Images": header.count,
    }
    for i, (entry, payload) in enumerate(frames, 1):
        header_info[f"Frame {i:02d}"] = describe_entry(entry, payload)
    return images, header_info


if __name__ == "__main__":
    import sys
    if len(sys.argv) < 2:
        print("Usage: python icodecoder.py <file.ico>")
    else:
        imgs, info = decode_ico_file(Path(sys.argv[1]))
        for k, v in info.items():
            print(f"{k}: {v}")
