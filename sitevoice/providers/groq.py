"""Groq: Whisper large v3 and Llama over the OpenAI-compatible API."""

from sitevoice.providers.openai import OpenAICompatibleProvider


class GroqProvider(OpenAICompatibleProvider):
    """Groq's Llama replies are parsed out of fenced blocks rather than JSON mode."""

    name = "groq"
    base_url = "https://api.groq.com/openai/v1"
    asr_model = "whisper-large-v3"
    chat_model = "llama-3.3-70b-versatile"
