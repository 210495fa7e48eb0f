"""I/O helpers for reading image bytes and their embedded metadata."""

from .metadata import MetadataReadError, MetadataReport, extract_metadata, read_tag_bag
from .normalizer import CanonicalMetadata, GpsInfo, normalize
from .sources import ImageLocator, ImageResolver, RawImageBytes, ResolutionError, S3BlobStore

__all__ = [
    "CanonicalMetadata",
    "GpsInfo",
    "ImageLocator",
    "ImageResolver",
    "MetadataReadError",
    "MetadataReport",
    "RawImageBytes",
    "ResolutionError",
    "S3BlobStore",
    "extract_metadata",
    "normalize",
    "read_tag_bag",
]
