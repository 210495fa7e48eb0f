"""Persistence helpers for user configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from .config import AppConfig

# Environment variable -> AppConfig field.
ENVIRONMENT_OVERRIDES = {
    "AWS_REGION": "aws_region",
    "BEDROCK_REGION": "bedrock_region",
    "EXIF_EXTRACTION_FUNCTION_NAME": "exif_function_name",
    "REKOGNITION_ANALYSIS_FUNCTION_NAME": "rekognition_function_name",
}


class SettingsStore:
    """Load and save application settings to a well-known path."""

    def __init__(self, path: Path | None = None, *, environ: Mapping[str, str] | None = None) -> None:
        self._path = path or default_settings_path()
        self._environ = environ

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AppConfig:
        if not self._path.exists():
            config = AppConfig()
        else:
            config = AppConfig.load(self._path)
        return apply_environment(config, self._environ if self._environ is not None else os.environ)

    def save(self, config: AppConfig) -> None:
        config.save(self._path)


def apply_environment(config: AppConfig, environ: Mapping[str, str]) -> AppConfig:
    """Return a copy of ``config`` with deployment environment variables applied."""
    updates = {
        field: environ[variable]
        for variable, field in ENVIRONMENT_OVERRIDES.items()
        if environ.get(variable)
    }
    if not updates:
        return config
    return AppConfig.model_validate({**config.as_dict(), **updates})


def default_settings_path() -> Path:
    if os.name == "nt":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base.expanduser() / "image_insight" / "settings.yaml"
