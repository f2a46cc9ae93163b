"""Single-download audio cache for one pipeline run."""

import base64
import logging
from functools import cached_property
from pathlib import PurePosixPath
from urllib.parse import urljoin, urlparse

from sitevoice.errors import AudioDownloadError
from sitevoice.services.http_client import RetryingHttpClient

logger = logging.getLogger("sitevoice.audio")

DEFAULT_MIME_TYPE = "audio/mpeg"
MIME_TYPES = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".mp4": "audio/mp4",
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
}


def guess_mime_type(file_name: str) -> str:
    """Mime type from the file extension, defaulting to audio/mpeg."""
    return MIME_TYPES.get(PurePosixPath(file_name).suffix.lower(), DEFAULT_MIME_TYPE)


class AudioFile:
    """Downloaded audio bytes plus the metadata vendors need."""

    def __init__(self, content: bytes, file_name: str, mime_type: str) -> None:
        self.content = content
        self.file_name = file_name
        self.mime_type = mime_type

    @cached_property
    def base64(self) -> str:
        """Base64 encoding for vendors that take inline audio. Computed once."""
        return base64.b64encode(self.content).decode("ascii")

    def __len__(self) -> int:
        return len(self.content)


class AudioFetchCache:
    """Downloads each audio URL at most once per pipeline run."""

    def __init__(self, http: RetryingHttpClient, storage_base_url: str = "") -> None:
        self._http = http
        self._storage_base_url = storage_base_url
        self._files: dict[str, AudioFile] = {}

    def resolve_url(self, audio_url: str) -> str:
        """Absolute URLs pass through; storage paths are joined to the storage base URL."""
        if urlparse(audio_url).scheme:
            return audio_url
        if not self._storage_base_url:
            raise AudioDownloadError(f"Cannot resolve relative audio path without STORAGE_BASE_URL: {audio_url}")
        return urljoin(self._storage_base_url.rstrip("/") + "/", audio_url.lstrip("/"))

    async def fetch_once(self, audio_url: str) -> AudioFile:
        """Return the cached file for ``audio_url``, downloading it on first use."""
        cached = self._files.get(audio_url)
        if cached is not None:
            return cached

        url = self.resolve_url(audio_url)
        response = await self._http.execute("GET", url)
        if not response.is_success:
            raise AudioDownloadError(f"Download failed: HTTP {response.status_code} for {audio_url}")
        if not response.content:
            raise AudioDownloadError(f"Downloaded audio is empty: {audio_url}")

        file_name = PurePosixPath(urlparse(url).path).name or "audio.webm"
        audio = AudioFile(response.content, file_name, guess_mime_type(file_name))
        self._files[audio_url] = audio
        logger.info("Downloaded audio %s (%d bytes, %s)", file_name, len(audio), audio.mime_type)
        return audio
