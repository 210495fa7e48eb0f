"""Read embedded EXIF tags from raw image bytes and build extraction reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import piexif

from ..imaging.sniffer import FormatSignature, ImageDimensions, detect_format, extract_dimensions
from ..utils.timing import utc_timestamp
from .normalizer import CanonicalMetadata, normalize

logger = logging.getLogger(__name__)

# piexif IFD name -> tag bag group name.
_GROUPS = {"0th": "Image", "Exif": "Exif", "GPS": "GPS", "Interop": "Interop"}
_RATIONAL_TYPES = {piexif.TYPES.Rational, piexif.TYPES.SRational}
_NEGATIVE_REFS = {"S", "W"}
_TEXT_WHITESPACE = {"\n", "\r", "\t"}


class MetadataReadError(RuntimeError):
    """Raised when a tag bag cannot be produced from the supplied bytes."""


def _ensure_bytes(raw: object) -> bytes:
    if isinstance(raw, bytes):
        return raw
    if isinstance(raw, (bytearray, memoryview)):
        return bytes(raw)
    return b""


def _decode_text(raw: object) -> str | None:
    data = _ensure_bytes(raw)
    if not data:
        return None
    text = data.decode("utf-8", errors="ignore").strip("\x00").strip()
    # Binary UNDEFINED payloads carry control bytes; multi-line text is kept.
    if not text or any(not char.isprintable() and char not in _TEXT_WHITESPACE for char in text):
        return None
    return text


def _ratio(pair: Any) -> float | None:
    numerator, denominator = pair
    if not denominator:
        return None
    return numerator / denominator


def _is_pair(value: Any) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and all(isinstance(v, int) for v in value)


def _coerce(value: Any, tag_type: int | None) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _decode_text(value)
    # The stored type can differ from the table type, so the value shape decides.
    if tag_type in _RATIONAL_TYPES:
        if _is_pair(value):
            return _ratio(value)
        if isinstance(value, tuple) and value and all(_is_pair(item) for item in value):
            return [_ratio(item) for item in value]
    if isinstance(value, tuple):
        return list(value)
    return value


def _gps_decimal(dms: Any, ref: Any) -> float | None:
    if isinstance(dms, (int, float)):
        degrees = float(dms)
    elif isinstance(dms, list) and dms and all(isinstance(v, (int, float)) for v in dms):
        parts = (list(dms) + [0.0, 0.0])[:3]
        degrees = parts[0] + parts[1] / 60 + parts[2] / 3600
    else:
        return None
    if isinstance(ref, str) and ref.upper() in _NEGATIVE_REFS:
        degrees = -degrees
    return round(degrees, 7)


def _piexif_supported(data: bytes) -> bool:
    head = data[:12]
    if head.startswith(b"\xff\xd8"):
        return True
    if head[:4] in (b"II*\x00", b"MM\x00*"):
        return True
    return head[:4] == b"RIFF" and head[8:12] == b"WEBP"


def read_tag_bag(data: bytes) -> dict[str, dict[str, Any]]:
    """Return EXIF tags grouped by IFD with lowercase tag names.

    Containers piexif cannot read (PNG, GIF, unknown) produce an empty bag. GPS
    tags drop their ``gps`` prefix and coordinates are converted to signed
    decimal degrees.
    """
    buffer = _ensure_bytes(data)
    if not _piexif_supported(buffer):
        return {}
    try:
        exif_dict = piexif.load(buffer)
    except Exception as exc:
        raise MetadataReadError(f"Unable to read EXIF data: {exc}") from exc

    bag: dict[str, dict[str, Any]] = {}
    for ifd_name, group in _GROUPS.items():
        entries = exif_dict.get(ifd_name) or {}
        table = piexif.TAGS.get(group, {})
        values: dict[str, Any] = {}
        for tag, raw in entries.items():
            tag_info = table.get(tag)
            if tag_info is None:
                continue
            name = tag_info["name"].lower()
            if group == "GPS" and name.startswith("gps"):
                name = name[3:]
            try:
                value = _coerce(raw, tag_info.get("type"))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable tag %s/%s: %s", group, tag_info["name"], exc)
                continue
            if value is not None:
                values[name] = value
        if values:
            bag[group] = values

    gps = bag.get("GPS")
    if gps:
        for axis in ("latitude", "longitude"):
            if axis in gps:
                gps[axis] = _gps_decimal(gps[axis], gps.get(f"{axis}ref"))
    return bag


@dataclass(slots=True)
class MetadataReport:
    """Everything recoverable about an image without decoding its pixels."""

    file_size: int
    file_type: FormatSignature
    has_exif: bool = False
    exif: CanonicalMetadata | None = None
    dimensions: ImageDimensions | None = None
    extracted_at: str = field(default_factory=utc_timestamp)
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "fileSize": self.file_size,
            "fileType": self.file_type.value,
            "hasExif": self.has_exif,
            "extractedAt": self.extracted_at,
        }
        if self.exif is not None:
            payload["exif"] = self.exif.as_dict()
        if self.dimensions is not None:
            payload["imageWidth"] = self.dimensions.width
            payload["imageHeight"] = self.dimensions.height
        if self.error is not None:
            payload["error"] = self.error
        return payload


def extract_metadata(data: bytes) -> MetadataReport:
    """Sniff ``data`` and normalise its embedded tags into a report.

    Never raises for bad input: a tag bag that cannot be read degrades to a report
    holding the signature, size, ``has_exif=False`` and whatever dimensions the
    header sniffer recovers.
    """
    buffer = _ensure_bytes(data)
    signature = detect_format(buffer)
    report = MetadataReport(file_size=len(buffer), file_type=signature)

    try:
        tag_bag = read_tag_bag(buffer)
    except MetadataReadError as exc:
        logger.warning("Falling back to header sniffing: %s", exc)
        report.error = str(exc)
        report.dimensions = extract_dimensions(buffer, signature)
        return report

    metadata = normalize(tag_bag)
    report.has_exif = metadata.has_exif
    if metadata.has_exif:
        report.exif = metadata
    if metadata.image_width is None or metadata.image_height is None:
        report.dimensions = extract_dimensions(buffer, signature)
    return report
