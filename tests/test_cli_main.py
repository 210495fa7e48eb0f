"""Tests for the CLI entry point."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from image_insight.__main__ import main as cli_main
from image_insight.config import AppConfig

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + (8).to_bytes(4, "big") + (6).to_bytes(4, "big")
FAKE_CLIENTS = SimpleNamespace(s3=None, rekognition=None, bedrock_runtime=None, lambda_=None)


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    for variable in ("AWS_REGION", "BEDROCK_REGION"):
        monkeypatch.delenv(variable, raising=False)
    return tmp_path / "settings.yaml"


def test_cli_lists_analyzers(capsys):
    assert cli_main(["--list-analyzers"]) == 0

    payload = json.loads(capsys.readouterr().out)
    identifiers = {item["identifier"] for item in payload}
    assert {"vision", "labels", "faces", "text"} <= identifiers
    kinds = {item["identifier"]: item["kind"] for item in payload}
    assert kinds["vision"] == "inline"
    assert kinds["labels"] == "blob"


def test_cli_requires_a_command():
    with pytest.raises(SystemExit):
        cli_main([])


def test_cli_inspects_local_file(tmp_path, config_path, capsys):
    image_path = tmp_path / "tiny.png"
    image_path.write_bytes(PNG)

    assert cli_main(["--config", str(config_path), "inspect", str(image_path)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["fileType"] == "PNG"
    assert (payload["imageWidth"], payload["imageHeight"]) == (8, 6)


def test_cli_runs_analysis(monkeypatch, config_path, capsys):
    captured = {}

    class DummyRouter:
        @classmethod
        def from_config(cls, config: AppConfig, clients):
            captured["config"] = config
            return cls()

        def handle(self, payload):
            captured["payload"] = payload
            return {"success": True, "data": {"results": {}}, "processingTime": 1}

    monkeypatch.setattr("image_insight.__main__.AwsClients.from_config", lambda config: FAKE_CLIENTS)
    monkeypatch.setattr("image_insight.__main__.AnalysisRouter", DummyRouter)

    exit_code = cli_main(
        [
            "--config",
            str(config_path),
            "analyze",
            "s3://docs/invoice.png",
            "--document-type",
            "invoice",
            "--field",
            "total",
            "--field",
            "date",
            "--analyzer",
            "Vision",
            "--analyzer",
            "text",
        ]
    )

    assert exit_code == 0
    assert captured["config"].analyzers == ["vision", "text"]
    assert captured["payload"]["imageUrl"] == "s3://docs/invoice.png"
    assert captured["payload"]["documentType"] == "invoice"
    assert captured["payload"]["expectedFields"] == ["total", "date"]
    assert json.loads(capsys.readouterr().out)["success"] is True


def test_cli_rejects_unknown_analyzer(monkeypatch, config_path):
    monkeypatch.setattr("image_insight.__main__.AwsClients.from_config", lambda config: FAKE_CLIENTS)

    with pytest.raises(SystemExit):
        cli_main(["--config", str(config_path), "analyze", "s3://a/b.jpg", "--analyzer", "bogus"])


def test_cli_triggers_handlers(monkeypatch, config_path, capsys):
    class DummyTrigger:
        @classmethod
        def from_config(cls, config, clients):
            return cls()

        def trigger(self, bucket, key):
            return {"success": True, "results": {"exif": {}, "rekognition": {}}, "bucket": bucket, "key": key}

    monkeypatch.setattr("image_insight.__main__.AwsClients.from_config", lambda config: FAKE_CLIENTS)
    monkeypatch.setattr("image_insight.__main__.HandlerTrigger", DummyTrigger)

    assert cli_main(["--config", str(config_path), "trigger", "photos", "cat.jpg"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert (payload["bucket"], payload["key"]) == ("photos", "cat.jpg")
