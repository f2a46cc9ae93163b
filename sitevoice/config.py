"""Configuration settings for SiteVoice."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

PROVIDER_KEY_NAMES = {
    "groq": "GROQ_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./sitevoice.db")

    # Provider credentials
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    DEFAULT_PROVIDER: str = os.getenv("DEFAULT_PROVIDER", "groq")

    # Audio storage (relative audio paths are resolved against this)
    STORAGE_BASE_URL: str = os.getenv("STORAGE_BASE_URL", "")

    # Outbound HTTP
    HTTP_FIRST_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_FIRST_TIMEOUT_SECONDS", "15"))
    HTTP_RETRY_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_RETRY_TIMEOUT_SECONDS", "60"))
    HTTP_MAX_ATTEMPTS: int = int(os.getenv("HTTP_MAX_ATTEMPTS", "3"))
    HTTP_BACKOFF_SECONDS: float = float(os.getenv("HTTP_BACKOFF_SECONDS", "1.0"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def api_key_for(self, provider: str) -> str | None:
        """Return the credential for a provider name, or None if unset or unknown."""
        key_name = PROVIDER_KEY_NAMES.get(provider.lower())
        if key_name is None:
            return None
        return getattr(self, key_name) or None

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        warnings = []
        if not any(getattr(self, name) for name in PROVIDER_KEY_NAMES.values()):
            warnings.append("No provider API key is set - every pipeline run will fail")
        if self.DEFAULT_PROVIDER.lower() not in PROVIDER_KEY_NAMES:
            warnings.append(f"DEFAULT_PROVIDER '{self.DEFAULT_PROVIDER}' is not a known provider")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
