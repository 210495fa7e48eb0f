"""Top-level analysis entry point: resolve, inspect, dispatch."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..clients import AwsClients
from ..config import AppConfig
from ..imaging.sniffer import FormatSignature, detect_format
from ..io.metadata import MetadataReport, extract_metadata
from ..io.sources import ImageLocator, ImageResolver, ResolutionError, S3BlobStore
from ..models.base import (
    GENERAL_ANALYSIS,
    AnalysisOptions,
    AnalyzerKind,
    ImageReference,
    RemoteAnalyzer,
)
from ..models.registry import AnalyzerRegistry
from ..utils.timing import elapsed_ms
from .fanout import Branch, FanOutOrchestrator, FanOutTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/jpeg"

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


class AnalyzeImageRequest(BaseModel):
    """Validated analysis request; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    image_url: str = Field(default="", alias="imageUrl")
    analysis_type: str | None = Field(default=None, alias="analysisType")
    document_type: str | None = Field(default=None, alias="documentType")
    specific_questions: list[str] = Field(default_factory=list, alias="specificQuestions")
    expected_fields: list[str] = Field(default_factory=list, alias="expectedFields")

    @field_validator("image_url", mode="before")
    @classmethod
    def _default_url(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("specific_questions", "expected_fields", mode="before")
    @classmethod
    def _default_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("analysis_type", "document_type")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    def options(self) -> AnalysisOptions:
        return AnalysisOptions(
            analysis_type=self.analysis_type,
            document_type=self.document_type,
            expected_fields=tuple(self.expected_fields),
            specific_questions=tuple(self.specific_questions),
        )


@dataclass(slots=True)
class AnalysisResponse:
    success: bool
    processing_time: int
    data: dict[str, Any] | None = None
    error: str | None = None
    status_code: int = 200

    @classmethod
    def failure(cls, message: str, processing_time: int, *, status_code: int = 500) -> AnalysisResponse:
        return cls(
            success=False,
            processing_time=processing_time,
            error=message,
            status_code=status_code,
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        payload["processingTime"] = self.processing_time
        return payload


class AnalysisRouter:
    """Sequences one analysis request through Resolve, Inspect and Dispatch.

    Only a Resolve failure is fatal. Analyzer failures stay inside their branch
    outcome in ``data["results"]``.
    """

    def __init__(
        self,
        resolver: ImageResolver,
        analyzers: Mapping[str, RemoteAnalyzer],
        orchestrator: FanOutOrchestrator,
        *,
        inspect_bytes: bool = True,
    ) -> None:
        self.resolver = resolver
        self.analyzers = dict(analyzers)
        self.orchestrator = orchestrator
        self.inspect_bytes = inspect_bytes

    @classmethod
    def from_config(cls, config: AppConfig, clients: AwsClients) -> AnalysisRouter:
        resolver = ImageResolver(S3BlobStore(clients.s3), timeout=config.fetch_timeout)
        analyzers = AnalyzerRegistry.build(config.analyzers, config=config, clients=clients)
        orchestrator = FanOutOrchestrator(
            max_workers=config.max_concurrency,
            timeout=config.request_timeout,
        )
        return cls(resolver, analyzers, orchestrator, inspect_bytes=config.inspect_bytes)

    def handle(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Run a raw request payload and return the response payload."""
        return self.respond(payload).as_dict()

    def handle_http_event(self, event: Mapping[str, Any]) -> dict[str, Any]:
        """Adapter for proxy-style HTTP events carrying the request as a JSON body."""
        try:
            payload = json.loads(event.get("body") or "{}")
        except json.JSONDecodeError as exc:
            response = AnalysisResponse.failure(f"Invalid JSON body: {exc}", 0, status_code=400)
        else:
            response = self.respond(payload if isinstance(payload, Mapping) else {})
        return {
            "statusCode": response.status_code,
            "headers": dict(CORS_HEADERS),
            "body": json.dumps(response.as_dict()),
        }

    def respond(self, payload: Mapping[str, Any]) -> AnalysisResponse:
        started = time.perf_counter()
        try:
            request = AnalyzeImageRequest.model_validate(payload)
        except ValidationError as exc:
            return AnalysisResponse.failure(
                f"Invalid request: {exc}", elapsed_ms(started), status_code=400
            )
        if not request.image_url.strip():
            return AnalysisResponse.failure(
                "Image URL is required", elapsed_ms(started), status_code=400
            )
        try:
            return self.analyze(request, started=started)
        except Exception as exc:
            logger.exception("Unexpected failure analysing %s", request.image_url)
            return AnalysisResponse.failure(str(exc) or "Unknown error occurred", elapsed_ms(started))

    def analyze(self, request: AnalyzeImageRequest, *, started: float | None = None) -> AnalysisResponse:
        started = time.perf_counter() if started is None else started
        options = request.options()

        # Resolve
        try:
            image, data = self._resolve(request.image_url)
        except ResolutionError as exc:
            logger.warning("Could not resolve %s: %s", request.image_url, exc)
            return AnalysisResponse.failure(str(exc), elapsed_ms(started))

        # Inspect
        report: MetadataReport | None = None
        if self.inspect_bytes and data is not None:
            report = extract_metadata(data)
            logger.debug("Inspected %s: %s", image.source, report.file_type.value)

        # Dispatch
        branches = [
            Branch(name, partial(analyzer.analyze, image, options))
            for name, analyzer in self.analyzers.items()
        ]
        try:
            composite = self.orchestrator.run(branches)
        except FanOutTimeoutError as exc:
            logger.warning("Abandoning %s: %s", image.source, exc)
            return AnalysisResponse.failure(str(exc), elapsed_ms(started), status_code=504)

        result: dict[str, Any] = {
            "analysisType": options.analysis_type or GENERAL_ANALYSIS,
            **composite.as_dict(),
        }
        if report is not None:
            result["inspection"] = report.as_dict()
        return AnalysisResponse(success=True, data=result, processing_time=elapsed_ms(started))

    def _needs_bytes(self) -> bool:
        if self.inspect_bytes:
            return True
        return any(analyzer.info().kind is AnalyzerKind.INLINE for analyzer in self.analyzers.values())

    def _resolve(self, source: str) -> tuple[ImageReference, bytes | None]:
        locator = ImageLocator.parse(source)
        data: bytes | None = None
        if self._needs_bytes() or not locator.is_blob:
            data = self.resolver.resolve(source).data
        signature = detect_format(data) if data else FormatSignature.UNKNOWN
        image = ImageReference(
            source=locator.source,
            data=data,
            bucket=locator.bucket,
            key=locator.key,
            media_type=signature.media_type or DEFAULT_MEDIA_TYPE,
        )
        return image, data
