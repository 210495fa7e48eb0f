"""Remote analyzer clients, their shared types and the analyzer registry."""

from .base import (
    AnalysisOptions,
    AnalyzerError,
    AnalyzerInfo,
    AnalyzerKind,
    AnalyzerOutcome,
    ImageReference,
    OutcomeStatus,
    RemoteAnalyzer,
)
from .bedrock import BedrockVisionAnalyzer
from .registry import AnalyzerRegistry
from .rekognition import FaceDetector, LabelDetector, TextDetector

__all__ = [
    "AnalysisOptions",
    "AnalyzerError",
    "AnalyzerInfo",
    "AnalyzerKind",
    "AnalyzerOutcome",
    "AnalyzerRegistry",
    "BedrockVisionAnalyzer",
    "FaceDetector",
    "ImageReference",
    "LabelDetector",
    "OutcomeStatus",
    "RemoteAnalyzer",
    "TextDetector",
]
