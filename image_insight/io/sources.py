"""Resolve image references (HTTP URLs or blob-store locators) to raw bytes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import unquote, urlparse

import requests

logger = logging.getLogger(__name__)

_S3_URI = re.compile(r"^s3://(?P<bucket>[^/]+)/(?P<key>.+)$")
_VIRTUAL_HOST = re.compile(r"^(?P<bucket>.+?)\.s3(?:[.-][a-z0-9-]+)?\.amazonaws\.com$")
_PATH_STYLE_HOST = re.compile(r"^s3(?:[.-][a-z0-9-]+)?\.amazonaws\.com$")


class ResolutionError(RuntimeError):
    """Raised when an image cannot be obtained from its source."""


@dataclass(frozen=True, slots=True)
class ImageLocator:
    """Parsed image source: either a blob-store object or a plain HTTP(S) URL."""

    source: str
    bucket: str | None = None
    key: str | None = None

    @property
    def is_blob(self) -> bool:
        return self.bucket is not None and self.key is not None

    @property
    def uri(self) -> str:
        if self.is_blob:
            return f"s3://{self.bucket}/{self.key}"
        return self.source

    @classmethod
    def parse(cls, source: str) -> ImageLocator:
        text = (source or "").strip()
        if not text:
            raise ResolutionError("Image URL is required")

        match = _S3_URI.match(text)
        if match:
            return cls(source=text, bucket=match["bucket"], key=match["key"])

        parsed = urlparse(text)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ResolutionError(f"Unsupported image source: {text}")

        host = (parsed.hostname or "").lower()
        path = unquote(parsed.path.lstrip("/"))
        hosted = _VIRTUAL_HOST.match(host)
        if hosted and path:
            return cls(source=text, bucket=hosted["bucket"], key=path)
        if _PATH_STYLE_HOST.match(host) and "/" in path:
            bucket, key = path.split("/", 1)
            if key:
                return cls(source=text, bucket=bucket, key=key)
        return cls(source=text)


@dataclass(frozen=True, slots=True)
class RawImageBytes:
    """Image bytes held for the duration of one request, plus where they came from."""

    data: bytes
    locator: ImageLocator


class BlobStore(Protocol):
    def fetch_bytes(self, locator: ImageLocator | str) -> bytes:
        """Return the object behind ``locator``."""


class S3BlobStore:
    """Blob store backed by an S3 client handle."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def fetch_bytes(self, locator: ImageLocator | str) -> bytes:
        target = ImageLocator.parse(locator) if isinstance(locator, str) else locator
        if not target.is_blob:
            raise ResolutionError(f"Not a blob-store location: {target.source}")
        try:
            response = self._client.get_object(Bucket=target.bucket, Key=target.key)
            data = response["Body"].read()
        except Exception as exc:
            raise ResolutionError(f"Failed to download from S3: {exc}") from exc
        if not data:
            raise ResolutionError(f"No data received from S3 for {target.uri}")
        return data


class ImageResolver:
    """Fetch image bytes through the blob store or a plain HTTP GET."""

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        session: Any = None,
        timeout: float = 30.0,
    ) -> None:
        self._blob_store = blob_store
        self._session = session
        self._timeout = timeout

    def resolve(self, source: str) -> RawImageBytes:
        locator = ImageLocator.parse(source)
        if locator.is_blob:
            logger.debug("Fetching %s from the blob store", locator.uri)
            data = self._blob_store.fetch_bytes(locator)
        else:
            logger.debug("Fetching %s over HTTP", locator.source)
            data = self._fetch_url(locator.source)
        return RawImageBytes(data=data, locator=locator)

    def _fetch_url(self, url: str) -> bytes:
        if self._session is None:
            self._session = requests.Session()
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise ResolutionError(
                f"Failed to download image: timed out after {self._timeout}s"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise ResolutionError(f"Failed to download image: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise ResolutionError(
                f"Failed to download image: HTTP {response.status_code} {response.reason or ''}".rstrip()
            )
        return response.content
