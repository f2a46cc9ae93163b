"""OpenAI and OpenAI-compatible vendors (Whisper transcription + chat completions)."""

from typing import Any

from sitevoice.errors import ProviderParseError
from sitevoice.providers.base import (
    SpeechProvider,
    TranscriptionResult,
    confidence_from_segments,
    load_json_object,
)
from sitevoice.services.audio import AudioFile
from sitevoice.services.prompts import TRANSLATOR_SYSTEM_PROMPT, build_analysis_message, normalize_language_code


class OpenAICompatibleProvider(SpeechProvider):
    """Shared request shapes for vendors exposing the OpenAI audio and chat endpoints."""

    base_url = ""
    json_mode = False

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def transcribe(
        self, audio: AudioFile, context_hint: str, language_hint: str | None = None
    ) -> TranscriptionResult:
        data = {
            "model": self.asr_model,
            "prompt": context_hint,
            "response_format": "verbose_json",
            "temperature": "0",
        }
        if language_hint:
            data["language"] = language_hint
        response = await self.http.execute(
            "POST",
            f"{self.base_url}/audio/transcriptions",
            headers=self._headers(),
            data=data,
            files={"file": (audio.file_name, audio.content, audio.mime_type)},
        )
        body = self.check_response(response, "transcription")
        return TranscriptionResult(
            text=self.text_of(body.get("text"), "transcription"),
            language_code=normalize_language_code(body.get("language") or language_hint),
            confidence=confidence_from_segments(body.get("segments")),
        )

    async def _chat(
        self, operation: str, messages: list[dict], temperature: float, max_tokens: int, json_mode: bool = False
    ) -> str:
        payload: dict[str, Any] = {
            "model": self.chat_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        response = await self.http.execute(
            "POST", f"{self.base_url}/chat/completions", headers=self._headers(), json=payload
        )
        body = self.check_response(response, operation)
        message = self.first_entry(body, "choices", operation).get("message") or {}
        if not isinstance(message, dict):
            raise ProviderParseError(self.name, f"{operation} returned a malformed message")
        return self.text_of(message.get("content"), operation)

    async def translate_text(self, text: str, target_language_code: str, instruction: str | None = None) -> str:
        content = await self._chat(
            "text translation",
            [
                {"role": "system", "content": TRANSLATOR_SYSTEM_PROMPT},
                {"role": "user", "content": instruction or self.translation_instruction(text, target_language_code)},
            ],
            temperature=0.3,
            max_tokens=1000,
        )
        return content or text

    async def classify(self, analysis_prompt: str, transcript: str, project_context: dict[str, Any]) -> dict:
        content = await self._chat(
            "classification",
            [
                {"role": "system", "content": analysis_prompt},
                {
                    "role": "user",
                    "content": build_analysis_message(
                        transcript, project_context.get("project_name"), project_context.get("speaker_role")
                    ),
                },
            ],
            temperature=0.1,
            max_tokens=1500,
            json_mode=self.json_mode,
        )
        return self.parse_json(content)


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI: whisper-1 and gpt-4o-mini in JSON mode."""

    name = "openai"
    base_url = "https://api.openai.com/v1"
    asr_model = "whisper-1"
    chat_model = "gpt-4o-mini"
    json_mode = True

    def parse_json(self, text: str) -> dict[str, Any]:
        # JSON mode guarantees a bare object; anything else is a vendor fault.
        return load_json_object(self.name, text)
