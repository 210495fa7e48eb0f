"""Application-wide configuration models and persistence helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator


class AppConfig(BaseModel):
    """Validates and stores runtime settings for the analysis pipeline."""

    aws_region: str = Field(
        default="us-east-1",
        description="Region used for the blob store, detectors and handler functions.",
    )
    bedrock_region: str | None = Field(
        default=None,
        description="Optional region override for the vision-language model service.",
    )
    vision_model_id: str = Field(
        default="anthropic.claude-3-5-sonnet-20241022-v2:0",
        description="Identifier of the vision-language model invoked for image analysis.",
    )
    vision_max_tokens: int = Field(
        default=2000,
        ge=64,
        le=8192,
        description="Maximum number of tokens requested from the vision-language model.",
    )
    anthropic_version: str = Field(
        default="bedrock-2023-05-31",
        description="Messages API version string sent with every model request.",
    )
    analyzers: list[str] = Field(
        default_factory=lambda: ["vision"],
        description="Ordered analyzer names dispatched for every analysis request.",
    )
    inspect_bytes: bool = Field(
        default=True,
        description="When true, sniff the container and extract metadata before dispatch.",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Upper bound on analyzer branches running at the same time.",
    )
    request_timeout: float = Field(
        default=120.0,
        ge=1.0,
        le=900.0,
        description="Deadline (seconds) for all analyzer branches of a single request.",
    )
    fetch_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Timeout (seconds) for HTTP image downloads.",
    )
    exif_function_name: str = Field(
        default="exifExtraction",
        description="Name of the downstream EXIF extraction handler function.",
    )
    rekognition_function_name: str = Field(
        default="rekognitionAnalysis",
        description="Name of the downstream detector analysis handler function.",
    )

    @model_validator(mode="after")
    def _normalise_analyzers(self) -> AppConfig:
        cleaned: list[str] = []
        for name in self.analyzers:
            value = name.strip().lower()
            if value and value not in cleaned:
                cleaned.append(value)
        if not cleaned:
            raise ValueError("At least one analyzer must be configured.")
        self.analyzers = cleaned
        return self

    @model_validator(mode="after")
    def _normalise_regions(self) -> AppConfig:
        region = self.aws_region.strip()
        if not region:
            raise ValueError("AWS region must not be empty.")
        self.aws_region = region
        if self.bedrock_region is not None:
            self.bedrock_region = self.bedrock_region.strip() or None
        return self

    @property
    def effective_bedrock_region(self) -> str:
        return self.bedrock_region or self.aws_region

    def as_dict(self) -> dict[str, Any]:
        """Serialize the configuration to primitive Python types."""
        return self.model_dump(mode="json")

    @classmethod
    def load(cls, path: Path) -> AppConfig:
        """Load configuration from a YAML or JSON file."""
        data = _read_config_file(path)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:  # pragma: no cover - pass through details
            raise ValueError(f"Invalid configuration file at {path}: {exc}") from exc

    def save(self, path: Path) -> None:
        """Persist configuration to a YAML file."""
        _write_config_file(path, self.as_dict())


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _write_config_file(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in {".yaml", ".yml"}:
        yaml_text = yaml.safe_dump(
            data,
            allow_unicode=False,
            sort_keys=False,
        )
        path.write_text(yaml_text, encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
