"""Vendor adapters and the registry that selects one per account."""

from sitevoice.config import Settings
from sitevoice.errors import ConfigurationError
from sitevoice.providers.base import SpeechProvider, TranscriptionResult
from sitevoice.providers.gemini import GeminiProvider
from sitevoice.providers.groq import GroqProvider
from sitevoice.providers.openai import OpenAIProvider
from sitevoice.services.http_client import RetryingHttpClient

PROVIDERS: dict[str, type[SpeechProvider]] = {
    GroqProvider.name: GroqProvider,
    OpenAIProvider.name: OpenAIProvider,
    GeminiProvider.name: GeminiProvider,
}


def get_provider(name: str, settings: Settings, http: RetryingHttpClient) -> SpeechProvider:
    """Instantiate the provider registered under ``name`` with its credential."""
    key = (name or "").strip().lower()
    provider_cls = PROVIDERS.get(key)
    if provider_cls is None:
        raise ConfigurationError(f"Unknown provider: {name}")
    api_key = settings.api_key_for(key)
    if not api_key:
        raise ConfigurationError(f"{key.upper()}_API_KEY not set")
    return provider_cls(api_key, http)


__all__ = [
    "PROVIDERS",
    "GeminiProvider",
    "GroqProvider",
    "OpenAIProvider",
    "SpeechProvider",
    "TranscriptionResult",
    "get_provider",
]
