"""Tests for the analyzer registry."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from image_insight.config import AppConfig
from image_insight.models.base import AnalyzerInfo, AnalyzerKind
from image_insight.models.bedrock import BedrockVisionAnalyzer
from image_insight.models.registry import AnalyzerRegistry
from image_insight.models.rekognition import FaceDetector, LabelDetector, TextDetector

CLIENTS = SimpleNamespace(s3=None, rekognition=object(), bedrock_runtime=object(), lambda_=None)


class DummyAnalyzer:
    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def info(self) -> AnalyzerInfo:
        return AnalyzerInfo("dummy", "Dummy", "", AnalyzerKind.INLINE)

    def analyze(self, image, options):  # pragma: no cover - not needed
        raise NotImplementedError


@pytest.fixture(autouse=True)
def reset_registry():
    factories = AnalyzerRegistry._factories.copy()
    infos = AnalyzerRegistry._infos.copy()
    bootstrapped = AnalyzerRegistry._bootstrap_complete
    yield
    AnalyzerRegistry._factories = factories
    AnalyzerRegistry._infos = infos
    AnalyzerRegistry._bootstrap_complete = bootstrapped


def test_builtin_analyzers_are_registered():
    identifiers = [info.identifier for info in AnalyzerRegistry.list_infos()]

    assert {"vision", "labels", "faces", "text"} <= set(identifiers)


def test_builtin_factories_use_configured_clients():
    config = AppConfig(vision_model_id="custom-model")

    analyzers = AnalyzerRegistry.build(
        ["vision", "labels", "faces", "text"], config=config, clients=CLIENTS
    )

    assert list(analyzers) == ["vision", "labels", "faces", "text"]
    assert isinstance(analyzers["vision"], BedrockVisionAnalyzer)
    assert analyzers["vision"]._model_id == "custom-model"
    assert analyzers["vision"]._client is CLIENTS.bedrock_runtime
    assert isinstance(analyzers["labels"], LabelDetector)
    assert isinstance(analyzers["faces"], FaceDetector)
    assert isinstance(analyzers["text"], TextDetector)
    assert analyzers["text"]._client is CLIENTS.rekognition


def test_register_get_and_unregister():
    info = AnalyzerInfo("dummy", "Dummy", "", AnalyzerKind.INLINE)
    AnalyzerRegistry.register(info, lambda config, clients: DummyAnalyzer(config))
    config = AppConfig()

    instance = AnalyzerRegistry.get("dummy", config=config, clients=CLIENTS)

    assert isinstance(instance, DummyAnalyzer)
    assert instance.config is config
    AnalyzerRegistry.unregister("dummy")
    assert "dummy" not in [item.identifier for item in AnalyzerRegistry.list_infos()]


def test_unknown_analyzer_lists_available_names():
    with pytest.raises(KeyError, match="Available"):
        AnalyzerRegistry.get("missing", config=AppConfig(), clients=CLIENTS)


def test_ensure_bootstrapped_imports_modules(monkeypatch):
    called = []
    monkeypatch.setattr("image_insight.models.registry.import_module", called.append)
    AnalyzerRegistry._bootstrap_complete = False

    AnalyzerRegistry.ensure_bootstrapped()

    assert called == ["image_insight.models.bedrock", "image_insight.models.rekognition"]
    assert AnalyzerRegistry._bootstrap_complete is True
