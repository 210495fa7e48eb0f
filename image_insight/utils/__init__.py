"""Utility helpers for the Image Insight library."""

from .timing import elapsed_ms, utc_timestamp

__all__ = ["elapsed_ms", "utc_timestamp"]
