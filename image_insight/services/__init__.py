"""Service layer coordinating resolution, inspection and analyzer fan-out."""

from .fanout import (
    Branch,
    CompositeAnalysisResult,
    FanOutOrchestrator,
    FanOutTimeoutError,
    settle_all,
)
from .handlers import DetectorAnalysisHandler, ExifExtractionHandler, build_s3_event
from .router import AnalysisResponse, AnalysisRouter, AnalyzeImageRequest
from .trigger import HandlerTrigger

__all__ = [
    "AnalysisResponse",
    "AnalysisRouter",
    "AnalyzeImageRequest",
    "Branch",
    "CompositeAnalysisResult",
    "DetectorAnalysisHandler",
    "ExifExtractionHandler",
    "FanOutOrchestrator",
    "FanOutTimeoutError",
    "HandlerTrigger",
    "build_s3_event",
    "settle_all",
]
