"""Google Gemini: audio is sent inline as base64 to ``generateContent``."""

import logging
from typing import Any

from sitevoice.errors import ProviderParseError
from sitevoice.providers.base import SpeechProvider, TranscriptionResult
from sitevoice.services.audio import AudioFile
from sitevoice.services.prompts import (
    TRANSLATOR_SYSTEM_PROMPT,
    build_analysis_message,
    language_name,
    normalize_language_code,
)

logger = logging.getLogger("sitevoice.providers.gemini")


class GeminiProvider(SpeechProvider):
    """gemini-1.5-flash for all three capabilities."""

    name = "gemini"
    base_url = "https://generativelanguage.googleapis.com/v1beta"
    asr_model = "gemini-1.5-flash"
    chat_model = "gemini-1.5-flash"

    async def _generate(
        self,
        operation: str,
        parts: list[dict],
        temperature: float,
        max_tokens: int,
        system: str | None = None,
        json_response: bool = False,
    ) -> str:
        generation_config: dict[str, Any] = {"temperature": temperature, "maxOutputTokens": max_tokens}
        if json_response:
            generation_config["responseMimeType"] = "application/json"
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        response = await self.http.execute(
            "POST",
            f"{self.base_url}/models/{self.chat_model}:generateContent",
            headers={"x-goog-api-key": self.api_key},
            json=payload,
        )
        body = self.check_response(response, operation)
        content = self.first_entry(body, "candidates", operation).get("content") or {}
        if not isinstance(content, dict):
            raise ProviderParseError(self.name, f"{operation} returned malformed content")
        return self.text_of(self.first_entry(content, "parts", operation).get("text"), operation)

    async def transcribe(
        self, audio: AudioFile, context_hint: str, language_hint: str | None = None
    ) -> TranscriptionResult:
        instruction = (
            f"Transcribe this audio. Context: {context_hint} "
            'Return ONLY JSON: {"text": "<transcription in the spoken language>", '
            '"language": "<ISO 639-1 code, e.g. en, hi, te>"}'
        )
        if language_hint:
            instruction += f" The speaker usually talks in {language_name(language_hint)}."
        text = await self._generate(
            "transcription",
            [{"text": instruction}, {"inline_data": {"mime_type": audio.mime_type, "data": audio.base64}}],
            temperature=0.1,
            max_tokens=2000,
            json_response=True,
        )
        try:
            parsed = self.parse_json(text)
        except ProviderParseError:
            logger.warning("Gemini transcription was not JSON, using raw text")
            return TranscriptionResult(text=text, language_code="unknown")
        return TranscriptionResult(
            text=str(parsed.get("text") or "").strip(),
            language_code=normalize_language_code(parsed.get("language")),
        )

    async def translate_text(self, text: str, target_language_code: str, instruction: str | None = None) -> str:
        translated = await self._generate(
            "text translation",
            [{"text": instruction or self.translation_instruction(text, target_language_code)}],
            temperature=0.3,
            max_tokens=1000,
            system=TRANSLATOR_SYSTEM_PROMPT,
        )
        return translated or text

    async def classify(self, analysis_prompt: str, transcript: str, project_context: dict[str, Any]) -> dict:
        message = build_analysis_message(
            transcript, project_context.get("project_name"), project_context.get("speaker_role")
        )
        text = await self._generate(
            "classification",
            [{"text": message}],
            temperature=0.1,
            max_tokens=1500,
            system=analysis_prompt,
            json_response=True,
        )
        return self.parse_json(text)
