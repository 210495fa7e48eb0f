"""Shared types for remote analyzers and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

T = TypeVar("T")

DOCUMENT_ANALYSIS = "document"
GENERAL_ANALYSIS = "general"


class AnalyzerKind(str, Enum):
    """How an analyzer consumes the image."""

    INLINE = "inline"
    BLOB = "blob"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class AnalyzerError(RuntimeError):
    """Raised when a remote analyzer cannot produce output for an image."""


@dataclass(slots=True)
class AnalyzerInfo:
    """Metadata describing an available analyzer implementation."""

    identifier: str
    display_name: str
    description: str
    kind: AnalyzerKind


@dataclass(frozen=True, slots=True)
class AnalysisOptions:
    """Caller preferences that shape the vision-language model request.

    All fields are optional; an empty instance means general analysis.
    """

    analysis_type: str | None = None
    document_type: str | None = None
    expected_fields: tuple[str, ...] = ()
    specific_questions: tuple[str, ...] = ()

    @property
    def document_mode(self) -> bool:
        """Whether the document extraction schema applies."""
        return bool(self.document_type) or self.analysis_type == DOCUMENT_ANALYSIS


@dataclass(frozen=True, slots=True)
class ImageReference:
    """A resolved image: its source string plus whatever the analyzers can use.

    Inline analyzers read ``data``; blob analyzers need ``bucket`` and ``key``.
    """

    source: str
    data: bytes | None = None
    bucket: str | None = None
    key: str | None = None
    media_type: str = "image/jpeg"

    @property
    def has_blob_location(self) -> bool:
        return bool(self.bucket and self.key)


@dataclass(frozen=True, slots=True)
class AnalyzerOutcome(Generic[T]):
    """Settled result of one analyzer branch: a value or a failure reason."""

    branch: str
    status: OutcomeStatus
    value: T | None = None
    error: str | None = None
    error_type: str | None = None

    @classmethod
    def success(cls, branch: str, value: T) -> AnalyzerOutcome[T]:
        return cls(branch=branch, status=OutcomeStatus.SUCCESS, value=value)

    @classmethod
    def failure(cls, branch: str, exc: BaseException) -> AnalyzerOutcome[T]:
        return cls(
            branch=branch,
            status=OutcomeStatus.FAILURE,
            error=str(exc) or exc.__class__.__name__,
            error_type=exc.__class__.__name__,
        )

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def as_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"status": self.status.value, "result": self.value}
        return {"status": self.status.value, "error": self.error, "errorType": self.error_type}


class RemoteAnalyzer(Protocol):
    """Interface that all remote analyzers must satisfy."""

    def info(self) -> AnalyzerInfo:
        """Return metadata describing the analyzer."""

    def analyze(self, image: ImageReference, options: AnalysisOptions) -> Any:
        """Call the remote service for ``image`` and return its structured result."""

