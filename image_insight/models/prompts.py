"""Prompt construction and reply parsing for the vision-language model."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .base import DOCUMENT_ANALYSIS, AnalysisOptions

logger = logging.getLogger(__name__)

RAW_RESPONSE_KEY = "rawResponse"

DOCUMENT_SYSTEM_PROMPT = (
    "You are an expert document processing specialist. Analyze the provided document "
    "image and extract structured data. Return a JSON object with: "
    '{"documentType": "string", "confidence": "number", "extractedData": {"key": "value"}, '
    '"textContent": "string", "layout": {"sections": [{"type": "string", "content": "string", '
    '"position": {"x": "number", "y": "number", "width": "number", "height": "number"}}]}, '
    '"quality": {"readability": "string", "completeness": "string", "issues": ["string"]}, '
    '"metadata": {"language": "string", "orientation": "string", "pageCount": "number"}}. '
    "Focus on accuracy and completeness of data extraction. Return only valid JSON."
)

GENERAL_SYSTEM_PROMPT = (
    "You are an expert image analyst with advanced computer vision capabilities. Analyze "
    "the provided image and return a comprehensive JSON object with the following structure: "
    '{"objects": [{"name": "string", "confidence": "number", "description": "string"}], '
    '"scene": {"description": "string", "setting": "string", "mood": "string"}, '
    '"text": {"detected": "boolean", "content": "string", "language": "string"}, '
    '"colors": {"dominant": ["string"], "palette": ["string"]}, '
    '"composition": {"ruleOfThirds": "boolean", "symmetry": "boolean", "leadingLines": "boolean"}, '
    '"technical": {"quality": "string", "lighting": "string", "focus": "string"}, '
    '"summary": "string", "tags": ["string"], '
    '"metadata": {"estimatedDate": "string", "location": "string", "camera": "string"}}. '
    "Be thorough and accurate in your analysis. Return only valid JSON."
)

BASE_USER_PROMPT = "Please analyze this image and provide a comprehensive analysis."


@dataclass(frozen=True, slots=True)
class DecodingParameters:
    temperature: float
    top_p: float


DOCUMENT_DECODING = DecodingParameters(temperature=0.1, top_p=0.1)
GENERAL_DECODING = DecodingParameters(temperature=0.2, top_p=0.9)


@dataclass(frozen=True, slots=True)
class PromptBundle:
    """Everything mode-dependent in a model request."""

    system: str
    user: str
    decoding: DecodingParameters
    document_mode: bool


def build_system_prompt(options: AnalysisOptions) -> str:
    if options.document_mode:
        return DOCUMENT_SYSTEM_PROMPT
    return GENERAL_SYSTEM_PROMPT


def build_user_prompt(options: AnalysisOptions) -> str:
    """Base request, then focus, questions and fields clauses in that order."""
    prompt = BASE_USER_PROMPT
    if options.analysis_type:
        prompt += f" Focus on {options.analysis_type} analysis."
    if options.specific_questions:
        questions = ", ".join(options.specific_questions)
        prompt += f" Please specifically address these questions: {questions}."
    if options.expected_fields:
        expected = ", ".join(options.expected_fields)
        prompt += f" Pay special attention to extracting these fields: {expected}."
    return prompt


def decoding_parameters(options: AnalysisOptions) -> DecodingParameters:
    """Only ``analysis_type`` picks the pair; ``document_type`` alone keeps general decoding."""
    if options.analysis_type == DOCUMENT_ANALYSIS:
        return DOCUMENT_DECODING
    return GENERAL_DECODING


def build_prompt(options: AnalysisOptions) -> PromptBundle:
    return PromptBundle(
        system=build_system_prompt(options),
        user=build_user_prompt(options),
        decoding=decoding_parameters(options),
        document_mode=options.document_mode,
    )


def parse_model_reply(text: str) -> dict[str, Any]:
    """Parse the model's reply as a JSON object.

    Replies that are not a JSON object (prose, truncated JSON, arrays) degrade to
    ``{"rawResponse": text}`` with the original text untouched.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _strip_markdown(cleaned)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.warning("Model reply is not valid JSON (%s); returning raw text.", exc)
        return {RAW_RESPONSE_KEY: text}
    if not isinstance(payload, dict):
        logger.warning("Model reply is JSON but not an object; returning raw text.")
        return {RAW_RESPONSE_KEY: text}
    return payload


def _strip_markdown(text: str) -> str:
    parts = text.split("```")
    # The second segment typically contains the JSON payload (possibly with a language tag).
    if len(parts) < 3:
        return text
    candidate = parts[1]
    if "\n" in candidate:
        _, remainder = candidate.split("\n", 1)
        return remainder.strip()
    return candidate.strip()
