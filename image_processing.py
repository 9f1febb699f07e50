# image_processing.py
"""
Pixel operations for ICO frames.
Combines the XOR color bitmap with its AND transparency mask and
prepares RGBA frames for display.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from bmpdecoder import DecodedImage
from icoerrors import ICODecodeError, InvalidDimensions

log = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

MASK_TRANSPARENT = 1


@dataclass(frozen=True, eq=False)
class IconImage:
    """Final RGBA frame. rgba has shape (height, width, 4), row 0 on top."""
    width: int
    height: int
    rgba: np.ndarray = field(repr=False)
    source: str = "bmp"
    bit_count: int = 32
    # color table of 1/4/8-bit frames, None for direct color and PNG
    palette: Optional[List[RGBA]] = field(default=None, repr=False)

    def getpixel(self, xy: Tuple[int, int]) -> RGBA:
        x, y = xy
        return tuple(int(c) for c in self.rgba[y, x])

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.rgba)

    @classmethod
    def from_pil(cls, img: Image.Image, source: str = "png", bit_count: int = 32) -> "IconImage":
        arr = np.array(img.convert("RGBA"), dtype=np.uint8)
        return cls(img.width, img.height, arr, source, bit_count)


# ---------------------------------------------------------------------
# 1. AND-mask compositing
# ---------------------------------------------------------------------
def mask_alpha(mask: DecodedImage) -> np.ndarray:
    """Alpha plane of an AND mask: index 1 -> 0 (transparent), index 0 -> 255."""
    if not mask.is_paletted or len(mask.palette) != 2:
        raise ICODecodeError("AND mask must be a 1-bit bitmap with a two-entry palette")
    palette = list(mask.palette)
    r, g, b, _ = palette[MASK_TRANSPARENT]
    palette[MASK_TRANSPARENT] = (r, g, b, 0)
    alphas = np.array([c[3] for c in palette], dtype=np.uint8)
    return alphas[mask.pixels]


def apply_and_mask(xor: DecodedImage, mask: DecodedImage) -> IconImage:
    """Masked copy of the XOR image onto a fully transparent canvas.

    Where the mask is opaque the XOR pixel is copied as is; elsewhere the
    result is transparent black.
    """
    if (xor.width, xor.height) != (mask.width, mask.height):
        raise InvalidDimensions(
            f"AND mask is {mask.width}x{mask.height}, color image is {xor.width}x{xor.height}"
        )
    alpha = mask_alpha(mask)
    out = np.zeros((xor.height, xor.width, 4), dtype=np.uint8)
    opaque = alpha == 255
    out[opaque] = xor.to_rgba()[opaque]
    log.debug("composited %dx%d frame, %d transparent pixels",
              xor.width, xor.height, int((~opaque).sum()))
    return IconImage(xor.width, xor.height, out, "bmp", xor.bit_count, xor.palette)


# ---------------------------------------------------------------------
# 2. Display helpers
# ---------------------------------------------------------------------
def checkerboard(width: int, height: int, cell: int = 8,
                 light: Tuple[int, int, int] = (255, 255, 255),
                 dark: Tuple[int, int, int] = (204, 204, 204)) -> np.ndarray:
    """(height, width, 3) checkerboard used behind transparent pixels."""
    ys, xs = np.indices((height, width))
    board = ((xs // cell + ys // cell) % 2).astype(bool)
    out = np.empty((height, width, 3), dtype=np.uint8)
    out[~board] = light
    out[board] = dark
    return out


def flatten_on_checkerboard(img: IconImage, cell: int = 8,
                            light: Tuple[int, int, int] = (255, 255, 255),
                            dark: Tuple[int, int, int] = (204, 204, 204)) -> Image.Image:
    """Alpha-blend an RGBA frame over a checkerboard; returns an RGB PIL image."""
    bg = checkerboard(img.width, img.height, cell, light, dark).astype(np.uint16)
    rgb = img.rgba[..., :3].astype(np.uint16)
    a = img.rgba[..., 3:4].astype(np.uint16)
    blended = (rgb * a + bg * (255 - a) + 127) // 255
    return Image.fromarray(blended.astype(np.uint8))


def alpha_histogram(img: IconImage):
    """256-bin histogram of the alpha channel."""
    hist = [0] * 256
    for v, n in zip(*np.unique(img.rgba[..., 3], return_counts=True)):
        hist[int(v)] = int(n)
    return hist


def palette_swatches(palette: Optional[List[RGBA]], cols: int = 16, cell: int = 16, pad: int = 8):
    """Lay out up to 256 palette entries as a cols-wide grid of swatches.

    Returns (canvas_width, canvas_height, [(x0, y0, x1, y1, "#rrggbb"), ...]);
    an empty palette gives (0, 0, []).
    """
    if not palette:
        return 0, 0, []
    total = min(256, len(palette))
    rows = (total + cols - 1) // cols
    swatches = []
    for i, (r, g, b, _) in enumerate(palette[:total]):
        x = pad + (i % cols) * cell
        y = pad + (i // cols) * cell
        swatches.append((x, y, x + cell, y + cell, f"#{r:02x}{g:02x}{b:02x}"))
    return cols * cell + 2 * pad, rows * cell + 2 * pad, swatches
