"""Tests for image locators and byte resolution."""

from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
import requests

from image_insight.io.sources import ImageLocator, ImageResolver, ResolutionError, S3BlobStore


class FakeS3:
    def __init__(self, objects: dict[tuple[str, str], bytes]) -> None:
        self.objects = objects
        self.calls: list[tuple[str, str]] = []

    def get_object(self, *, Bucket: str, Key: str):
        self.calls.append((Bucket, Key))
        if (Bucket, Key) not in self.objects:
            raise RuntimeError("NoSuchKey")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}


class FakeSession:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, float]] = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.mark.parametrize(
    ("source", "bucket", "key"),
    [
        ("s3://photos/2024/cat.jpg", "photos", "2024/cat.jpg"),
        ("https://photos.s3.amazonaws.com/cat.jpg", "photos", "cat.jpg"),
        ("https://my-bucket.s3.us-east-1.amazonaws.com/a/cat%20one.jpg", "my-bucket", "a/cat one.jpg"),
        ("https://s3.eu-west-1.amazonaws.com/archive/scans/page1.png", "archive", "scans/page1.png"),
    ],
)
def test_blob_locations_are_recognised(source, bucket, key):
    locator = ImageLocator.parse(source)

    assert locator.is_blob
    assert (locator.bucket, locator.key) == (bucket, key)
    assert locator.uri == f"s3://{bucket}/{key}"


def test_plain_urls_are_not_blob_locations():
    locator = ImageLocator.parse("https://example.com/images/cat.jpg")

    assert not locator.is_blob
    assert locator.uri == "https://example.com/images/cat.jpg"


def test_empty_source_is_rejected():
    with pytest.raises(ResolutionError, match="Image URL is required"):
        ImageLocator.parse("   ")


def test_unsupported_scheme_is_rejected():
    with pytest.raises(ResolutionError, match="Unsupported"):
        ImageLocator.parse("ftp://example.com/cat.jpg")


def test_s3_blob_store_reads_object_body():
    client = FakeS3({("photos", "cat.jpg"): b"\xff\xd8data"})

    assert S3BlobStore(client).fetch_bytes("s3://photos/cat.jpg") == b"\xff\xd8data"
    assert client.calls == [("photos", "cat.jpg")]


def test_s3_blob_store_wraps_client_errors():
    with pytest.raises(ResolutionError, match="Failed to download from S3"):
        S3BlobStore(FakeS3({})).fetch_bytes("s3://photos/missing.jpg")


def test_s3_blob_store_rejects_empty_objects():
    with pytest.raises(ResolutionError, match="No data"):
        S3BlobStore(FakeS3({("photos", "empty.jpg"): b""})).fetch_bytes("s3://photos/empty.jpg")


def test_resolver_prefers_blob_store_for_blob_locations():
    client = FakeS3({("photos", "cat.jpg"): b"bytes"})
    session = FakeSession(error=AssertionError("HTTP must not be used"))

    raw = ImageResolver(S3BlobStore(client), session=session).resolve(
        "https://photos.s3.amazonaws.com/cat.jpg"
    )

    assert raw.data == b"bytes"
    assert raw.locator.key == "cat.jpg"
    assert session.calls == []


def test_resolver_fetches_plain_urls_over_http():
    session = FakeSession(SimpleNamespace(status_code=200, reason="OK", content=b"GIF89a"))

    raw = ImageResolver(S3BlobStore(FakeS3({})), session=session, timeout=5).resolve(
        "https://example.com/a.gif"
    )

    assert raw.data == b"GIF89a"
    assert session.calls == [("https://example.com/a.gif", 5)]


def test_resolver_reports_http_status():
    session = FakeSession(SimpleNamespace(status_code=404, reason="Not Found", content=b""))
    resolver = ImageResolver(S3BlobStore(FakeS3({})), session=session)

    with pytest.raises(ResolutionError, match="HTTP 404 Not Found"):
        resolver.resolve("https://example.com/missing.jpg")


def test_resolver_wraps_connection_errors():
    session = FakeSession(error=requests.exceptions.ConnectionError("Name or service not known"))
    resolver = ImageResolver(S3BlobStore(FakeS3({})), session=session)

    with pytest.raises(ResolutionError, match="Failed to download image"):
        resolver.resolve("https://unreachable.invalid/cat.jpg")


def test_resolver_reports_timeouts():
    session = FakeSession(error=requests.exceptions.Timeout())
    resolver = ImageResolver(S3BlobStore(FakeS3({})), session=session, timeout=2)

    with pytest.raises(ResolutionError, match="timed out"):
        resolver.resolve("https://slow.example.com/cat.jpg")
