"""Common interface for speech/LLM vendors."""

import json
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from sitevoice.errors import ProviderError, ProviderParseError
from sitevoice.services.audio import AudioFile
from sitevoice.services.http_client import RetryingHttpClient
from sitevoice.services.prompts import (
    DEFAULT_TRANSLATION_INSTRUCTION,
    language_name,
    render_template,
)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_BRACED_SPAN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class TranscriptionResult:
    """Speech-to-text output."""

    text: str
    language_code: str
    confidence: float | None = None


def extract_json_object(provider: str, text: str) -> dict[str, Any]:
    """Pull a JSON object out of LLM text that may be wrapped in markdown fences or prose."""
    candidate = (text or "").strip()
    fenced = _FENCED_BLOCK.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    if not candidate.startswith("{"):
        braced = _BRACED_SPAN.search(candidate)
        if not braced:
            raise ProviderParseError(provider, "no JSON object in response")
        candidate = braced.group(0)
    return load_json_object(provider, candidate)


def load_json_object(provider: str, text: str) -> dict[str, Any]:
    """Strict ``json.loads`` that only accepts an object."""
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ProviderParseError(provider, f"invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ProviderParseError(provider, f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def confidence_from_segments(segments: list[dict] | None) -> float | None:
    """Mean per-segment confidence as a 0-1 probability.

    Whisper-style vendors report ``avg_logprob`` (log space, <= 0); values above
    zero are taken to be probabilities already.
    """
    if not isinstance(segments, list):
        return None
    scores = []
    for segment in segments:
        if not isinstance(segment, dict):
            continue
        value = segment.get("avg_logprob", segment.get("confidence"))
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            continue
        value = float(value)
        scores.append(math.exp(value) if value <= 0 else value)
    if not scores:
        return None
    return round(min(1.0, max(0.0, sum(scores) / len(scores))), 4)


class SpeechProvider(ABC):
    """A vendor offering transcription, text translation and structured classification.

    Providers hold no state beyond their credential and HTTP client; every method
    is a request/response transform.
    """

    name = ""
    asr_model = ""
    chat_model = ""

    def __init__(self, api_key: str, http: RetryingHttpClient) -> None:
        self.api_key = api_key
        self.http = http

    @abstractmethod
    async def transcribe(
        self, audio: AudioFile, context_hint: str, language_hint: str | None = None
    ) -> TranscriptionResult:
        ...

    @abstractmethod
    async def translate_text(self, text: str, target_language_code: str, instruction: str | None = None) -> str:
        """Translate ``text``. ``instruction`` is a fully rendered prompt; a built-in one is used otherwise."""
        ...

    @abstractmethod
    async def classify(self, analysis_prompt: str, transcript: str, project_context: dict[str, Any]) -> dict:
        ...

    def parse_json(self, text: str) -> dict[str, Any]:
        """Turn the vendor's text output into a JSON object. Raises ProviderParseError."""
        return extract_json_object(self.name, text)

    def translation_instruction(self, text: str, target_language_code: str) -> str:
        return render_template(
            DEFAULT_TRANSLATION_INSTRUCTION, language=language_name(target_language_code), transcript=text
        )

    def check_response(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        """Raise ProviderError for non-success responses, else return the decoded body."""
        if not response.is_success:
            raise ProviderError(self.name, operation, response.status_code, response.text[:200])
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderParseError(self.name, f"{operation} returned non-JSON body") from exc
        if not isinstance(body, dict):
            raise ProviderParseError(self.name, f"{operation} returned {type(body).__name__}, expected an object")
        return body

    def first_entry(self, body: dict[str, Any], key: str, operation: str) -> dict[str, Any]:
        """First element of the list under ``key``; empty when the list is missing."""
        items = body.get(key) or [{}]
        if not isinstance(items, list) or not isinstance(items[0], dict):
            raise ProviderParseError(self.name, f"{operation} returned a malformed '{key}' field")
        return items[0]

    def text_of(self, value: Any, operation: str) -> str:
        """Stripped text of a reply field; anything but a string is a parse error."""
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ProviderParseError(self.name, f"{operation} returned {type(value).__name__} instead of text")
        return value.strip()
