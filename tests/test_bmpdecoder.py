import struct

import numpy as np
import pytest

from bmpdecoder import (
    decode_bmp,
    decode_bmp_config,
    read_file_header,
    read_info_header,
    row_stride,
)
from icoerrors import (
    InvalidDimensions,
    InvalidSignature,
    TruncatedData,
    UnsupportedColorDepth,
    UnsupportedCompression,
    UnsupportedDibHeaderSize,
)
from bmpfactory import info_header, make_bmp

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREEN = (0, 255, 0)
WHITE = (255, 255, 255)

CHECKER = [[0, 1],
           [1, 0]]


def rgba(c, a=255):
    return c + (a,)


@pytest.mark.parametrize("bpp", [1, 4, 8])
@pytest.mark.parametrize("top_down", [False, True])
def test_paletted_checkerboard(bpp, top_down):
    data = make_bmp(CHECKER, bpp, palette=[RED, BLUE], top_down=top_down)
    img = decode_bmp(data)
    assert (img.width, img.height) == (2, 2)
    assert img.is_paletted
    assert img.top_down is top_down
    assert img.getpixel((0, 0)) == rgba(RED)
    assert img.getpixel((1, 0)) == rgba(BLUE)
    assert img.getpixel((0, 1)) == rgba(BLUE)
    assert img.getpixel((1, 1)) == rgba(RED)


def test_orientation_bottom_up_vs_top_down():
    rows = [[0, 0], [1, 1]]  # red row on top, blue row below
    for top_down in (False, True):
        img = decode_bmp(make_bmp(rows, 8, palette=[RED, BLUE], top_down=top_down))
        assert img.getpixel((0, 0)) == rgba(RED)
        assert img.getpixel((1, 1)) == rgba(BLUE)


def test_bottom_up_stores_last_row_first():
    # first stored row is the bottom of the image
    ih = info_header(1, 2, 8, colors_used=2)
    pal = bytes((0, 0, 255, 0, 255, 0, 0, 0))  # red, blue
    pix = bytes((1, 0, 0, 0, 0, 0, 0, 0))
    fh = struct.pack("<2sIHHI", b"BM", 14 + 40 + 8 + 8, 0, 0, 14 + 40 + 8)
    img = decode_bmp(fh + ih + pal + pix)
    assert img.getpixel((0, 1)) == rgba(BLUE)
    assert img.getpixel((0, 0)) == rgba(RED)


def test_1bpp_wide_row_msb_first():
    row = [1, 0, 0, 0, 0, 0, 0, 1, 1, 0]
    img = decode_bmp(make_bmp([row], 1, palette=[RED, BLUE]))
    assert img.pixels.tolist() == [row]


def test_4bpp_odd_width_high_nibble_first():
    row = [3, 12, 7]
    palette = [(i, i, i) for i in range(16)]
    img = decode_bmp(make_bmp([row], 4, palette=palette))
    assert img.pixels.tolist() == [row]
    assert img.getpixel((1, 0)) == (12, 12, 12, 255)


def test_8bpp_indices_copied():
    rows = [[5, 6, 7], [200, 0, 1]]
    palette = [(i, 0, 255 - i) for i in range(256)]
    img = decode_bmp(make_bmp(rows, 8, palette=palette))
    assert img.pixels.tolist() == rows
    assert img.getpixel((0, 1)) == (200, 0, 55, 255)


def test_palette_alpha_forced_opaque():
    data = bytearray(make_bmp(CHECKER, 8, palette=[RED, BLUE]))
    # reserved byte of entry 0 sits right after the 14 + 40 header bytes
    data[14 + 40 + 3] = 0x7F
    img = decode_bmp(bytes(data))
    assert img.palette[0] == rgba(RED)


def test_colors_used_zero_defaults_to_full_table():
    data = make_bmp(CHECKER, 1, palette=[RED, BLUE], colors_used=0)
    img = decode_bmp(data)
    assert len(img.palette) == 2
    assert img.getpixel((1, 0)) == rgba(BLUE)


def test_short_palette_index_maps_to_black():
    img = decode_bmp(make_bmp([[0, 5]], 8, palette=[RED, BLUE]))
    assert img.getpixel((1, 0)) == (0, 0, 0, 255)
    assert img.to_rgba()[0, 1].tolist() == [0, 0, 0, 255]


@pytest.mark.parametrize("top_down", [False, True])
def test_24bpp_checkerboard(top_down):
    rows = [[RED, GREEN], [BLUE, WHITE]]
    img = decode_bmp(make_bmp(rows, 24, top_down=top_down))
    assert not img.is_paletted
    assert img.pixels.shape == (2, 2, 4)
    assert img.getpixel((0, 0)) == rgba(RED)
    assert img.getpixel((1, 0)) == rgba(GREEN)
    assert img.getpixel((0, 1)) == rgba(BLUE)
    assert img.getpixel((1, 1)) == rgba(WHITE)


def test_24bpp_padded_rows():
    rows = [[(1, 2, 3)] * 3, [(4, 5, 6)] * 3]
    img = decode_bmp(make_bmp(rows, 24))
    assert img.getpixel((2, 0)) == (1, 2, 3, 255)
    assert img.getpixel((2, 1)) == (4, 5, 6, 255)


@pytest.mark.parametrize("top_down", [False, True])
def test_32bpp_keeps_alpha(top_down):
    rows = [[(10, 20, 30, 0), (40, 50, 60, 128)],
            [(70, 80, 90, 255), (1, 2, 3, 4)]]
    img = decode_bmp(make_bmp(rows, 32, top_down=top_down))
    assert img.pixels.tolist() == [[list(p) for p in row] for row in rows]


@pytest.mark.parametrize("size", [108, 124])
def test_v4_v5_headers_accepted(size):
    img = decode_bmp(make_bmp(CHECKER, 8, palette=[RED, BLUE], header_size=size))
    assert img.getpixel((1, 0)) == rgba(BLUE)


def test_invalid_signature():
    with pytest.raises(InvalidSignature):
        decode_bmp(make_bmp(CHECKER, 8, palette=[RED, BLUE], signature=b"BA"))


def test_unsupported_dib_header_size():
    data = bytearray(make_bmp(CHECKER, 8, palette=[RED, BLUE]))
    struct.pack_into("<I", data, 14, 12)
    with pytest.raises(UnsupportedDibHeaderSize):
        decode_bmp(bytes(data))


@pytest.mark.parametrize("width", [0, -3])
def test_non_positive_width(width):
    data = bytearray(make_bmp(CHECKER, 8, palette=[RED, BLUE]))
    struct.pack_into("<i", data, 18, width)
    with pytest.raises(InvalidDimensions):
        decode_bmp(bytes(data))


def test_zero_height():
    data = bytearray(make_bmp(CHECKER, 8, palette=[RED, BLUE]))
    struct.pack_into("<i", data, 22, 0)
    with pytest.raises(InvalidDimensions):
        decode_bmp(bytes(data))


def test_compressed_bitmap_rejected():
    with pytest.raises(UnsupportedCompression):
        decode_bmp(make_bmp(CHECKER, 8, palette=[RED, BLUE], compression=1))


def test_16bpp_selects_model_but_cannot_decode():
    data = bytearray(make_bmp([[RED, GREEN]], 24))
    struct.pack_into("<H", data, 28, 16)
    assert decode_bmp_config(bytes(data)).palette is None
    with pytest.raises(UnsupportedColorDepth):
        decode_bmp(bytes(data))


def test_unknown_depth_rejected():
    data = bytearray(make_bmp(CHECKER, 8, palette=[RED, BLUE]))
    struct.pack_into("<H", data, 28, 2)
    with pytest.raises(UnsupportedColorDepth):
        decode_bmp(bytes(data))


def test_truncated_rows():
    data = make_bmp([[RED] * 4] * 4, 24)
    with pytest.raises(TruncatedData):
        decode_bmp(data[:-1])


def test_truncated_palette():
    data = make_bmp(CHECKER, 8, palette=[RED, BLUE])
    with pytest.raises(TruncatedData):
        decode_bmp(data[:14 + 40 + 5])


def test_truncated_headers():
    with pytest.raises(TruncatedData):
        read_file_header(b"BM\x00")
    with pytest.raises(TruncatedData):
        read_info_header(struct.pack("<Ii", 40, 2))


def test_read_info_header_fields():
    ih = read_info_header(info_header(7, -9, 24, colors_used=3))
    assert (ih.size, ih.width, ih.height, ih.bit_count) == (40, 7, -9, 24)
    assert ih.top_down and ih.abs_height == 9
    assert ih.colors_used == 3
    assert ih.x_pels_per_meter == 2835
    assert ih.pack() == info_header(7, -9, 24, colors_used=3)


def test_decode_bmp_config():
    cfg = decode_bmp_config(make_bmp([[0, 1, 0]], 4, palette=[RED, BLUE], top_down=True))
    assert (cfg.width, cfg.height, cfg.bit_count, cfg.top_down) == (3, 1, 4, True)
    assert cfg.palette == [rgba(RED), rgba(BLUE)]


@pytest.mark.parametrize("width,bpp,expected", [
    (1, 1, 4), (32, 1, 4), (33, 1, 8), (3, 4, 4), (9, 4, 8),
    (3, 8, 4), (5, 8, 8), (1, 24, 4), (3, 24, 12), (5, 24, 16), (3, 32, 12), (256, 1, 32),
])
def test_row_stride(width, bpp, expected):
    assert row_stride(width, bpp) == expected


def test_decode_is_repeatable():
    data = make_bmp([[RED, BLUE], [GREEN, WHITE]], 24)
    assert np.array_equal(decode_bmp(data).pixels, decode_bmp(data).pixels)
