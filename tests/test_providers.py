"""Tests for the vendor adapters and their registry."""

import base64
import json
import math

import httpx
import pytest

from sitevoice.config import Settings
from sitevoice.errors import ConfigurationError, ProviderError, ProviderParseError
from sitevoice.providers import (
    PROVIDERS,
    GeminiProvider,
    GroqProvider,
    OpenAIProvider,
    SpeechProvider,
    TranscriptionResult,
    get_provider,
)
from sitevoice.providers.base import confidence_from_segments, extract_json_object, load_json_object
from sitevoice.services.audio import AudioFile
from sitevoice.services.http_client import RetryingHttpClient
from sitevoice.services.prompts import (
    ASR_CONTEXT_HINT,
    language_name,
    normalize_language_code,
    render_translation_prompt,
)

AUDIO = AudioFile(b"fake-audio", "note.m4a", "audio/mp4")


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestJsonExtraction:
    """Tests for pulling JSON objects out of model text."""

    def test_bare_object(self):
        assert extract_json_object("groq", '{"intent": "update"}') == {"intent": "update"}

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"intent": "approval", "priority": "High"}\n```\nThanks'
        assert extract_json_object("groq", text)["intent"] == "approval"

    def test_object_inside_prose(self):
        assert extract_json_object("groq", 'Result: {"intent": "information"} done') == {"intent": "information"}

    def test_no_object(self):
        with pytest.raises(ProviderParseError):
            extract_json_object("groq", "I cannot help with that.")

    def test_strict_rejects_fences(self):
        with pytest.raises(ProviderParseError):
            load_json_object("openai", '```json\n{"a": 1}\n```')

    def test_strict_rejects_array(self):
        with pytest.raises(ProviderParseError, match="list"):
            load_json_object("openai", "[1, 2]")


class TestConfidence:
    """Tests for segment confidence aggregation."""

    def test_log_probabilities(self):
        segments = [{"avg_logprob": -0.1}, {"avg_logprob": -0.3}]
        expected = round((math.exp(-0.1) + math.exp(-0.3)) / 2, 4)
        assert confidence_from_segments(segments) == expected

    def test_plain_probabilities(self):
        assert confidence_from_segments([{"confidence": 0.8}, {"confidence": 0.9}]) == 0.85

    def test_missing(self):
        assert confidence_from_segments(None) is None
        assert confidence_from_segments([]) is None
        assert confidence_from_segments([{"text": "no scores"}]) is None

    def test_malformed_segments_skipped(self):
        segments = ["text", {"avg_logprob": "high"}, {"avg_logprob": float("nan")}, {"confidence": 0.6}]
        assert confidence_from_segments(segments) == 0.6
        assert confidence_from_segments({"avg_logprob": -0.1}) is None


class TestLanguages:
    """Tests for language code handling."""

    @pytest.mark.parametrize(
        "value,expected",
        [("english", "en"), ("Hindi", "hi"), ("hi-IN", "hi"), ("te", "te"), ("", "unknown"), (None, "unknown")],
    )
    def test_normalize(self, value, expected):
        assert normalize_language_code(value) == expected

    def test_language_name(self):
        assert language_name("hi") == "Hindi"
        assert language_name("xx") == "XX"

    def test_render_translation_prompt(self):
        rendered = render_translation_prompt("To {{language}}: {{transcript}}", "te", "hello")
        assert rendered == "To Telugu: hello"


class TestSpeechProviderInterface:
    """Tests for the abstract provider interface."""

    def test_incomplete_provider_cannot_be_created(self):
        class TranscribeOnly(SpeechProvider):
            name = "partial"

            async def transcribe(self, audio, context_hint, language_hint=None):
                return TranscriptionResult("text", "en")

        with pytest.raises(TypeError):
            TranscribeOnly("key", RetryingHttpClient(httpx.AsyncClient()))

    def test_registered_providers_are_complete(self):
        for provider_cls in PROVIDERS.values():
            assert not provider_cls.__abstractmethods__


class TestRegistry:
    """Tests for get_provider."""

    def test_known_provider(self, settings: Settings):
        provider = get_provider("Groq", settings, RetryingHttpClient(httpx.AsyncClient()))
        assert isinstance(provider, GroqProvider)
        assert provider.api_key == "test-groq-key"

    def test_unknown_provider(self, settings: Settings):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            get_provider("deepgram", settings, RetryingHttpClient(httpx.AsyncClient()))

    def test_missing_credential(self, settings: Settings):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY not set"):
            get_provider("openai", settings, RetryingHttpClient(httpx.AsyncClient()))


class TestGroqProvider:
    """Tests for the OpenAI-compatible request shapes, through Groq."""

    async def test_transcribe_request_and_result(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"text": " Cement is low. ", "language": "english", "segments": [{"avg_logprob": 0.0}]},
            )

        async with _client(handler) as client:
            provider = GroqProvider("key", RetryingHttpClient(client))
            result = await provider.transcribe(AUDIO, ASR_CONTEXT_HINT, "hi")

        request = seen[0]
        assert str(request.url) == "https://api.groq.com/openai/v1/audio/transcriptions"
        assert request.headers["Authorization"] == "Bearer key"
        assert b"whisper-large-v3" in request.content
        assert b'name="language"' in request.content
        assert b"fake-audio" in request.content
        assert result.text == "Cement is low."
        assert result.language_code == "en"
        assert result.confidence == 1.0

    async def test_classify_parses_fenced_reply(self):
        reply = '```json\n{"intent": "approval", "priority": "Med"}\n```'

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert "response_format" not in body
            assert body["messages"][0]["content"] == "system prompt"
            assert "PROJECT: Tower B" in body["messages"][1]["content"]
            return httpx.Response(200, json={"choices": [{"message": {"content": reply}}]})

        async with _client(handler) as client:
            provider = GroqProvider("key", RetryingHttpClient(client))
            result = await provider.classify("system prompt", "Can we pour?", {"project_name": "Tower B"})
        assert result == {"intent": "approval", "priority": "Med"}

    async def test_translate_falls_back_to_source_on_empty_reply(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": ""}}]})

        async with _client(handler) as client:
            provider = GroqProvider("key", RetryingHttpClient(client))
            assert await provider.translate_text("namaste", "en") == "namaste"

    async def test_vendor_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid key"})

        async with _client(handler) as client:
            provider = GroqProvider("key", RetryingHttpClient(client))
            with pytest.raises(ProviderError) as exc_info:
                await provider.translate_text("namaste", "en")
        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "groq"


class TestMalformedReplies:
    """Successful responses with an unexpected shape raise typed parse errors."""

    @pytest.mark.parametrize(
        "body",
        [
            ["unexpected"],
            "just a string",
            {"choices": "none"},
            {"choices": ["not an object"]},
            {"choices": [{"message": "text"}]},
            {"choices": [{"message": {"content": 42}}]},
        ],
    )
    async def test_chat_reply(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with _client(handler) as client:
            provider = GroqProvider("key", RetryingHttpClient(client))
            with pytest.raises(ProviderParseError):
                await provider.translate_text("namaste", "en")

    @pytest.mark.parametrize("body", [[{"text": "hi"}], {"text": ["a", "b"]}])
    async def test_transcription_reply(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with _client(handler) as client:
            provider = OpenAIProvider("key", RetryingHttpClient(client))
            with pytest.raises(ProviderParseError):
                await provider.transcribe(AUDIO, ASR_CONTEXT_HINT)

    async def test_transcription_odd_language_and_segments(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"text": "ok", "language": 7, "segments": "none"})

        async with _client(handler) as client:
            provider = OpenAIProvider("key", RetryingHttpClient(client))
            result = await provider.transcribe(AUDIO, ASR_CONTEXT_HINT)
        assert result.language_code == "unknown"
        assert result.confidence is None

    @pytest.mark.parametrize(
        "body",
        [
            ["unexpected"],
            {"candidates": ["not an object"]},
            {"candidates": [{"content": "text"}]},
            {"candidates": [{"content": {"parts": ["text"]}}]},
            {"candidates": [{"content": {"parts": [{"text": {"nested": True}}]}}]},
        ],
    )
    async def test_gemini_reply(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with _client(handler) as client:
            provider = GeminiProvider("g-key", RetryingHttpClient(client))
            with pytest.raises(ProviderParseError):
                await provider.classify("analyse", "pump broken", {})


class TestOpenAIProvider:
    """Tests for OpenAI's JSON mode."""

    async def test_classify_uses_json_mode(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["model"] == "gpt-4o-mini"
            assert body["response_format"] == {"type": "json_object"}
            return httpx.Response(200, json={"choices": [{"message": {"content": '{"intent": "update"}'}}]})

        async with _client(handler) as client:
            provider = OpenAIProvider("key", RetryingHttpClient(client))
            assert await provider.classify("prompt", "text", {}) == {"intent": "update"}

    async def test_classify_rejects_non_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": "Sure! {\"intent\": 1}"}}]})

        async with _client(handler) as client:
            provider = OpenAIProvider("key", RetryingHttpClient(client))
            with pytest.raises(ProviderParseError):
                await provider.classify("prompt", "text", {})


class TestGeminiProvider:
    """Tests for Gemini's generateContent shapes."""

    @staticmethod
    def _reply(text: str) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    async def test_transcribe_sends_inline_audio(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return self._reply('{"text": "slab is ready", "language": "English"}')

        async with _client(handler) as client:
            provider = GeminiProvider("g-key", RetryingHttpClient(client))
            result = await provider.transcribe(AUDIO, ASR_CONTEXT_HINT, "te")

        request = seen[0]
        body = json.loads(request.content)
        inline = body["contents"][0]["parts"][1]["inline_data"]
        assert request.headers["x-goog-api-key"] == "g-key"
        assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
        assert inline == {"mime_type": "audio/mp4", "data": base64.b64encode(b"fake-audio").decode()}
        assert "Telugu" in body["contents"][0]["parts"][0]["text"]
        assert result.text == "slab is ready"
        assert result.language_code == "en"
        assert result.confidence is None

    async def test_transcribe_accepts_plain_text(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return self._reply("slab is ready")

        async with _client(handler) as client:
            provider = GeminiProvider("g-key", RetryingHttpClient(client))
            result = await provider.transcribe(AUDIO, ASR_CONTEXT_HINT)
        assert result.text == "slab is ready"
        assert result.language_code == "unknown"

    async def test_classify_requests_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["generationConfig"]["responseMimeType"] == "application/json"
            assert body["systemInstruction"]["parts"][0]["text"] == "analyse"
            return self._reply('{"intent": "action_required", "priority": "High"}')

        async with _client(handler) as client:
            provider = GeminiProvider("g-key", RetryingHttpClient(client))
            result = await provider.classify("analyse", "pump broken", {})
        assert result["intent"] == "action_required"
