"""Byte-level image inspection helpers."""

from .sniffer import FormatSignature, ImageDimensions, detect_format, extract_dimensions, sniff

__all__ = ["FormatSignature", "ImageDimensions", "detect_format", "extract_dimensions", "sniff"]
