"""Downstream compute handlers driven by object-created style events.

Both handlers take ``{"Records": [{"s3": {"bucket": {"name": ...}, "object": {"key": ...}}}]}``
and process every record on its own; one bad record is reported in the results
and does not stop the rest.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any
from urllib.parse import unquote_plus

from ..clients import AwsClients
from ..config import AppConfig
from ..io.metadata import extract_metadata
from ..io.sources import BlobStore, ImageLocator, S3BlobStore
from ..models.base import AnalysisOptions, ImageReference, RemoteAnalyzer
from ..models.registry import AnalyzerRegistry
from ..utils.timing import utc_timestamp
from .fanout import Branch, FanOutOrchestrator

logger = logging.getLogger(__name__)

DETECTOR_NAMES = ("labels", "faces", "text")


def build_s3_event(bucket: str, key: str) -> dict[str, Any]:
    """Synthesise the event a blob-store upload notification would carry."""
    return {"Records": [{"s3": {"bucket": {"name": bucket}, "object": {"key": key}}}]}


def _record_location(record: Mapping[str, Any]) -> ImageLocator:
    bucket = record["s3"]["bucket"]["name"]
    # Notification keys are form-encoded.
    key = unquote_plus(record["s3"]["object"]["key"])
    return ImageLocator(source=f"s3://{bucket}/{key}", bucket=bucket, key=key)


def _process_records(
    event: Mapping[str, Any],
    process: Callable[[ImageLocator], dict[str, Any]],
) -> list[dict[str, Any]]:
    results: list[dict[str, Any]] = []
    for record in event.get("Records") or []:
        key = "unknown"
        try:
            location = _record_location(record)
            key = location.key or key
            results.append(process(location))
        except Exception as exc:
            logger.warning("Error processing record %s: %s", key, exc)
            results.append({"key": key, "success": False, "error": str(exc) or "Unknown error"})
    return results


def _handler_response(message: str, results: list[dict[str, Any]]) -> dict[str, Any]:
    return {"statusCode": 200, "body": json.dumps({"message": message, "results": results})}


class ExifExtractionHandler:
    """Downloads each referenced object and reports its format and metadata."""

    def __init__(self, blob_store: BlobStore) -> None:
        self.blob_store = blob_store

    @classmethod
    def from_config(cls, config: AppConfig, clients: AwsClients) -> ExifExtractionHandler:
        return cls(S3BlobStore(clients.s3))

    def __call__(self, event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        logger.info("EXIF extraction triggered for %d record(s)", len(event.get("Records") or []))
        return _handler_response("EXIF extraction completed", _process_records(event, self.process))

    def process(self, location: ImageLocator) -> dict[str, Any]:
        data = self.blob_store.fetch_bytes(location)
        report = extract_metadata(data)
        return {
            "key": location.key,
            "success": True,
            "exifData": report.as_dict(),
            "timestamp": utc_timestamp(),
        }


class DetectorAnalysisHandler:
    """Runs the narrow detectors for each referenced object as one fan-out."""

    def __init__(
        self,
        detectors: Mapping[str, RemoteAnalyzer],
        orchestrator: FanOutOrchestrator,
    ) -> None:
        self.detectors = dict(detectors)
        self.orchestrator = orchestrator

    @classmethod
    def from_config(cls, config: AppConfig, clients: AwsClients) -> DetectorAnalysisHandler:
        detectors = AnalyzerRegistry.build(list(DETECTOR_NAMES), config=config, clients=clients)
        orchestrator = FanOutOrchestrator(
            max_workers=config.max_concurrency,
            timeout=config.request_timeout,
        )
        return cls(detectors, orchestrator)

    def __call__(self, event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        logger.info("Detector analysis triggered for %d record(s)", len(event.get("Records") or []))
        return _handler_response(
            "Rekognition analysis completed", _process_records(event, self.process)
        )

    def process(self, location: ImageLocator) -> dict[str, Any]:
        image = ImageReference(source=location.uri, bucket=location.bucket, key=location.key)
        options = AnalysisOptions()
        composite = self.orchestrator.run(
            [
                Branch(name, partial(detector.analyze, image, options))
                for name, detector in self.detectors.items()
            ]
        )
        return {
            "key": location.key,
            "success": True,
            "analysisResult": composite.as_dict()["results"],
            "timestamp": composite.timestamp,
        }
