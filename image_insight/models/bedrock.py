"""Vision-language model integration via Amazon Bedrock."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

from .base import AnalysisOptions, AnalyzerError, AnalyzerInfo, AnalyzerKind, ImageReference
from .prompts import PromptBundle, build_prompt, parse_model_reply
from .registry import AnalyzerRegistry

logger = logging.getLogger(__name__)

VISION_INFO = AnalyzerInfo(
    identifier="vision",
    display_name="Bedrock Vision",
    description="Multimodal model returning a structured JSON description or document extraction.",
    kind=AnalyzerKind.INLINE,
)


class BedrockVisionAnalyzer:
    """Sends inline image bytes plus mode-dependent prompts to a Bedrock model."""

    def __init__(
        self,
        client: Any,
        *,
        model_id: str,
        max_tokens: int = 2000,
        anthropic_version: str = "bedrock-2023-05-31",
    ) -> None:
        self._client = client
        self._model_id = model_id
        self._max_tokens = max_tokens
        self._anthropic_version = anthropic_version

    def info(self) -> AnalyzerInfo:
        return VISION_INFO

    def analyze(self, image: ImageReference, options: AnalysisOptions) -> dict[str, Any]:
        if not image.data:
            raise AnalyzerError(f"No image bytes available for {image.source}")
        prompt = build_prompt(options)
        body = self.build_request_body(image, prompt)
        text = self._invoke(body)
        return parse_model_reply(text)

    def build_request_body(self, image: ImageReference, prompt: PromptBundle) -> dict[str, Any]:
        encoded = base64.b64encode(image.data or b"").decode("ascii")
        return {
            "anthropic_version": self._anthropic_version,
            "max_tokens": self._max_tokens,
            "temperature": prompt.decoding.temperature,
            "top_p": prompt.decoding.top_p,
            "system": prompt.system,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt.user},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": image.media_type,
                                "data": encoded,
                            },
                        },
                    ],
                }
            ],
        }

    def _invoke(self, body: dict[str, Any]) -> str:
        try:
            response = self._client.invoke_model(
                modelId=self._model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            payload = json.loads(response["body"].read())
        except Exception as exc:
            raise AnalyzerError(f"Bedrock invocation failed: {exc}") from exc

        for block in payload.get("content") or []:
            if isinstance(block, dict) and block.get("type", "text") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    logger.debug("Bedrock model %s replied with %d characters", self._model_id, len(text))
                    return text
        raise AnalyzerError("Bedrock response did not contain a text block.")


def _register() -> None:
    AnalyzerRegistry.register(
        VISION_INFO,
        lambda config, clients: BedrockVisionAnalyzer(
            clients.bedrock_runtime,
            model_id=config.vision_model_id,
            max_tokens=config.vision_max_tokens,
            anthropic_version=config.anthropic_version,
        ),
    )


_register()
