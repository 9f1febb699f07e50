"""
icoerrors.py — Error types raised while decoding ICO containers and BMP streams.

All of them are ValueError subclasses, so callers that only care about
"the file is bad" can keep catching ValueError.
"""


class ICODecodeError(ValueError):
    """Base class for every decode failure."""


class InvalidContainerHeader(ICODecodeError):
    """ICO header has the wrong image type or a non-positive image count."""


class TruncatedData(ICODecodeError):
    """A byte range or pixel row runs past the end of the buffer."""


class UnsupportedDibHeaderSize(ICODecodeError):
    pass


class UnsupportedCompression(ICODecodeError):
    pass


class UnsupportedColorDepth(ICODecodeError):
    pass


class InvalidDimensions(ICODecodeError):
    pass


class InvalidSignature(ICODecodeError):
    pass


class PNGDecodeError(ICODecodeError):
    """PNG payload rejected by Pillow. The Pillow exception is kept as __cause__."""
