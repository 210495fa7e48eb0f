"""Trigger-style entry point that fans one object out to both downstream handlers."""

from __future__ import annotations

import json
import logging
from functools import partial
from typing import Any

from ..clients import AwsClients
from ..config import AppConfig
from ..models.base import AnalyzerError
from .fanout import Branch, FanOutOrchestrator
from .handlers import build_s3_event

logger = logging.getLogger(__name__)


class HandlerTrigger:
    """Invokes the EXIF and detector handlers concurrently for one stored object."""

    def __init__(
        self,
        lambda_client: Any,
        orchestrator: FanOutOrchestrator,
        *,
        exif_function: str,
        rekognition_function: str,
    ) -> None:
        self._client = lambda_client
        self.orchestrator = orchestrator
        self.functions = {"exif": exif_function, "rekognition": rekognition_function}

    @classmethod
    def from_config(cls, config: AppConfig, clients: AwsClients) -> HandlerTrigger:
        return cls(
            clients.lambda_,
            FanOutOrchestrator(max_workers=2, timeout=config.request_timeout),
            exif_function=config.exif_function_name,
            rekognition_function=config.rekognition_function_name,
        )

    def trigger(self, bucket: str, key: str) -> dict[str, Any]:
        if not bucket or not key:
            raise ValueError("imageKey and bucketName are required")
        event = build_s3_event(bucket, key)
        composite = self.orchestrator.run(
            [
                Branch(name, partial(self._invoke, function_name, event))
                for name, function_name in self.functions.items()
            ]
        )
        results = {
            name: outcome.value if outcome.ok else {"error": outcome.error}
            for name, outcome in composite.outcomes.items()
        }
        return {"success": True, "results": results, "timestamp": composite.timestamp}

    def _invoke(self, function_name: str, event: dict[str, Any]) -> Any:
        logger.debug("Invoking %s", function_name)
        try:
            response = self._client.invoke(
                FunctionName=function_name,
                Payload=json.dumps(event).encode("utf-8"),
            )
            raw = response["Payload"].read()
        except Exception as exc:
            raise AnalyzerError(f"Invoking {function_name} failed: {exc}") from exc
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else str(raw)
        if response.get("FunctionError"):
            raise AnalyzerError(f"{function_name} reported {response['FunctionError']}: {text}")
        return json.loads(text)
