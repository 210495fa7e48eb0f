"""Container format detection and header-only dimension extraction.

Only the bytes needed to recognise a signature and read the raster size are
inspected; nothing here decodes pixel data. Truncated or unrecognised input is
never an error: the caller gets :attr:`FormatSignature.UNKNOWN` and/or ``None``
dimensions instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

_JPEG_MAGIC = b"\xff\xd8"
_PNG_MAGIC = b"\x89PNG"
_GIF_MAGIC = b"GIF"
_SIGNATURE_PREFIX = 4

# SOF0..SOF3; height and width sit at fixed offsets past the 0xFF marker byte.
_SOF_MARKERS = range(0xC0, 0xC4)
_SOF_HEIGHT_OFFSET = 5
_SOF_WIDTH_OFFSET = 7

# IHDR has a fixed layout right after the 8-byte PNG signature.
_PNG_WIDTH_OFFSET = 16
_PNG_HEIGHT_OFFSET = 20


class FormatSignature(str, Enum):
    """Image containers recognised from their leading magic bytes."""

    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    UNKNOWN = "Unknown"

    @property
    def media_type(self) -> str | None:
        return _MEDIA_TYPES.get(self)


_MEDIA_TYPES = {
    FormatSignature.JPEG: "image/jpeg",
    FormatSignature.PNG: "image/png",
    FormatSignature.GIF: "image/gif",
}


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    """Raster size recovered from a container header."""

    width: int
    height: int

    def as_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


def detect_format(data: bytes | bytearray | memoryview) -> FormatSignature:
    """Classify ``data`` using at most its first four bytes."""
    head = bytes(data[:_SIGNATURE_PREFIX])
    if head.startswith(_JPEG_MAGIC):
        return FormatSignature.JPEG
    if head.startswith(_PNG_MAGIC):
        return FormatSignature.PNG
    if head.startswith(_GIF_MAGIC):
        return FormatSignature.GIF
    return FormatSignature.UNKNOWN


def extract_dimensions(
    data: bytes | bytearray | memoryview,
    signature: FormatSignature | None = None,
) -> ImageDimensions | None:
    """Return the header dimensions of ``data`` or ``None`` when none can be read."""
    buffer = bytes(data)
    kind = signature or detect_format(buffer)
    if kind is FormatSignature.JPEG:
        return _jpeg_dimensions(buffer)
    if kind is FormatSignature.PNG:
        return _png_dimensions(buffer)
    return None


def sniff(
    data: bytes | bytearray | memoryview,
) -> tuple[FormatSignature, ImageDimensions | None]:
    """Detect the container format and best-effort dimensions of ``data``."""
    signature = detect_format(data)
    return signature, extract_dimensions(data, signature)


def _jpeg_dimensions(buffer: bytes) -> ImageDimensions | None:
    # Marker segment lengths are not followed; the first SOF-looking byte pair wins.
    position = buffer.find(b"\xff", 2)
    while 0 <= position < len(buffer) - 1:
        if buffer[position + 1] in _SOF_MARKERS:
            end = position + _SOF_WIDTH_OFFSET + 2
            if end > len(buffer):
                return None
            height = _read_uint(buffer, position + _SOF_HEIGHT_OFFSET, 2)
            width = _read_uint(buffer, position + _SOF_WIDTH_OFFSET, 2)
            return ImageDimensions(width=width, height=height)
        position = buffer.find(b"\xff", position + 1)
    return None


def _png_dimensions(buffer: bytes) -> ImageDimensions | None:
    if len(buffer) < _PNG_HEIGHT_OFFSET + 4:
        return None
    width = _read_uint(buffer, _PNG_WIDTH_OFFSET, 4)
    height = _read_uint(buffer, _PNG_HEIGHT_OFFSET, 4)
    return ImageDimensions(width=width, height=height)


def _read_uint(buffer: bytes, offset: int, size: int) -> int:
    return int.from_bytes(buffer[offset : offset + size], "big")
