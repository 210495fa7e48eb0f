"""Narrow vision detectors backed by Amazon Rekognition.

Detectors read the image straight from the blob store, so they only need the
bucket and key of an :class:`ImageReference`. Attributes missing from an upstream
response are left out of the result rather than filled with defaults.
"""

from __future__ import annotations

import logging
from typing import Any

from .base import AnalysisOptions, AnalyzerError, AnalyzerInfo, AnalyzerKind, ImageReference
from .registry import AnalyzerRegistry

logger = logging.getLogger(__name__)

LABEL_MAX_COUNT = 20
LABEL_MIN_CONFIDENCE = 50.0
FACE_ATTRIBUTES = ("ALL",)

_FACE_FLAGS = {
    "Smile": "smile",
    "Gender": "gender",
    "Eyeglasses": "eyeglasses",
    "Sunglasses": "sunglasses",
    "Beard": "beard",
    "Mustache": "mustache",
    "EyesOpen": "eyesOpen",
    "MouthOpen": "mouthOpen",
}


class RekognitionDetector:
    """Common plumbing for detectors that call one Rekognition operation."""

    info_record: AnalyzerInfo

    def __init__(self, client: Any) -> None:
        self._client = client

    def info(self) -> AnalyzerInfo:
        return self.info_record

    def analyze(self, image: ImageReference, options: AnalysisOptions) -> dict[str, Any]:
        response = self._call(self._image_param(image))
        return self._transform(response)

    def _call(self, image_param: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def _transform(self, response: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def _image_param(self, image: ImageReference) -> dict[str, Any]:
        if not image.has_blob_location:
            raise AnalyzerError(
                f"{self.info_record.display_name} requires a blob-store location; "
                f"{image.source} has none."
            )
        return {"S3Object": {"Bucket": image.bucket, "Name": image.key}}

    def _invoke(self, operation: str, **params: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)
        logger.debug("Calling Rekognition %s for %s", operation, params["Image"]["S3Object"]["Name"])
        try:
            return method(**params)
        except Exception as exc:
            raise AnalyzerError(f"Rekognition {operation} failed: {exc}") from exc


class LabelDetector(RekognitionDetector):
    info_record = AnalyzerInfo(
        identifier="labels",
        display_name="Label Detection",
        description="Objects and scene labels with parent categories and instance boxes.",
        kind=AnalyzerKind.BLOB,
    )

    def _call(self, image_param: dict[str, Any]) -> dict[str, Any]:
        return self._invoke(
            "detect_labels",
            Image=image_param,
            MaxLabels=LABEL_MAX_COUNT,
            MinConfidence=LABEL_MIN_CONFIDENCE,
        )

    def _transform(self, response: dict[str, Any]) -> dict[str, Any]:
        labels = []
        for label in response.get("Labels") or []:
            item: dict[str, Any] = {
                "name": label.get("Name"),
                "confidence": label.get("Confidence"),
                "parents": [{"name": parent.get("Name")} for parent in label.get("Parents") or []],
            }
            instances = label.get("Instances")
            if instances:
                item["instances"] = [
                    {"confidence": inst.get("Confidence"), "boundingBox": inst.get("BoundingBox")}
                    for inst in instances
                ]
            labels.append(item)
        return {"labels": labels}


class FaceDetector(RekognitionDetector):
    info_record = AnalyzerInfo(
        identifier="faces",
        display_name="Face Detection",
        description="Face boxes with age range, emotions and boolean facial attributes.",
        kind=AnalyzerKind.BLOB,
    )

    def _call(self, image_param: dict[str, Any]) -> dict[str, Any]:
        return self._invoke("detect_faces", Image=image_param, Attributes=list(FACE_ATTRIBUTES))

    def _transform(self, response: dict[str, Any]) -> dict[str, Any]:
        details = response.get("FaceDetails") or []
        return {"faceCount": len(details), "faces": [_face(face) for face in details]}


class TextDetector(RekognitionDetector):
    info_record = AnalyzerInfo(
        identifier="text",
        display_name="Text Detection",
        description="Detected lines and words with type, confidence and geometry.",
        kind=AnalyzerKind.BLOB,
    )

    def _call(self, image_param: dict[str, Any]) -> dict[str, Any]:
        return self._invoke("detect_text", Image=image_param)

    def _transform(self, response: dict[str, Any]) -> dict[str, Any]:
        detections = []
        for text in response.get("TextDetections") or []:
            geometry = text.get("Geometry") or {}
            detections.append(
                {
                    "detectedText": text.get("DetectedText"),
                    "confidence": text.get("Confidence"),
                    "type": text.get("Type"),
                    "boundingBox": geometry.get("BoundingBox"),
                    "polygon": [
                        {"x": point.get("X"), "y": point.get("Y")}
                        for point in geometry.get("Polygon") or []
                    ],
                }
            )
        return {"textDetections": detections, "textCount": len(detections)}


def _face(face: dict[str, Any]) -> dict[str, Any]:
    item: dict[str, Any] = {
        "confidence": face.get("Confidence"),
        "boundingBox": face.get("BoundingBox"),
    }
    age = face.get("AgeRange")
    if age:
        item["ageRange"] = {"low": age.get("Low"), "high": age.get("High")}
    emotions = face.get("Emotions")
    if emotions:
        item["emotions"] = [
            {"type": emotion.get("Type"), "confidence": emotion.get("Confidence")}
            for emotion in emotions
        ]
    for source, target in _FACE_FLAGS.items():
        flag = face.get(source)
        if flag:
            item[target] = {"value": flag.get("Value"), "confidence": flag.get("Confidence")}
    return item


def _register() -> None:
    for detector in (LabelDetector, FaceDetector, TextDetector):
        AnalyzerRegistry.register(
            detector.info_record,
            lambda config, clients, cls=detector: cls(clients.rekognition),
        )


_register()
