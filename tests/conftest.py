"""Pytest configuration and fixtures."""

import json
from collections import Counter

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

from sitevoice.config import Settings
from sitevoice.database import Base, create_engine, create_session_factory, new_id
from sitevoice.models import Account, Project, Prompt, User, VoiceNote
from sitevoice.models.prompt import PURPOSE_ANALYSIS, PURPOSE_TRANSLATION
from sitevoice.services.http_client import RetryingHttpClient
from sitevoice.services.persistence import PersistenceGateway
from sitevoice.services.pipeline import VoiceNotePipeline
from sitevoice.services.prompts import TRANSLATOR_SYSTEM_PROMPT

HINDI_TEXT = "मचान हिल रहा है, असुरक्षित लग रहा है"
ENGLISH_TEXT = "The scaffolding is shaking, looks unsafe"


def chat_reply(content: str) -> httpx.Response:
    """OpenAI-style chat completion response."""
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class FakeVendor:
    """Audio storage and the Groq API behind an ``httpx.MockTransport``.

    Replies are plain attributes so a test can change what the vendor says.
    ``failures`` maps a URL fragment to status codes returned (in order) before
    the normal reply.
    ``replies`` maps a URL fragment to a (status, JSON body) pair that replaces the normal reply.
    """

    def __init__(self) -> None:
        self.audio = b"ID3-fake-audio-bytes"
        self.transcript = {"text": HINDI_TEXT, "language": "hindi", "segments": [{"avg_logprob": -0.05}]}
        self.translation = ENGLISH_TEXT
        self.analysis = json.dumps(
            {
                "intent": "update",
                "priority": "Low",
                "short_summary": "Report shaking scaffolding",
                "detailed_summary": "Scaffolding on site is shaking and looks unsafe.",
                "confidence": 0.95,
                "materials": [{"name": "scaffolding clamps", "quantity": "20 pcs", "unit": "pcs"}],
            }
        )
        self.failures: dict[str, list[int]] = {}
        self.replies: dict[str, tuple[int, object]] = {}
        self.calls: Counter = Counter()
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for fragment, statuses in self.failures.items():
            if fragment in url and statuses:
                return httpx.Response(statuses.pop(0))
        for fragment, (status, body) in self.replies.items():
            if fragment in url:
                return httpx.Response(status, json=body)

        if request.method == "GET" and "storage.test" in url:
            self.calls["audio"] += 1
            return httpx.Response(200, content=self.audio)
        if url.endswith("/audio/transcriptions"):
            self.calls["transcribe"] += 1
            return httpx.Response(200, json=self.transcript)
        if url.endswith("/chat/completions"):
            messages = json.loads(request.content)["messages"]
            if messages[0]["content"] == TRANSLATOR_SYSTEM_PROMPT:
                self.calls["translate"] += 1
                return chat_reply(self.translation)
            self.calls["classify"] += 1
            return chat_reply(self.analysis)
        return httpx.Response(404, json={"error": f"no route for {url}"})


@pytest.fixture(name="settings")
def settings_fixture(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file, with test credentials and no retry backoff."""
    settings = Settings()
    settings.DATABASE_URL = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    settings.GROQ_API_KEY = "test-groq-key"
    settings.OPENAI_API_KEY = ""
    settings.GEMINI_API_KEY = "test-gemini-key"
    settings.DEFAULT_PROVIDER = "groq"
    settings.STORAGE_BASE_URL = "https://storage.test/voice-notes"
    settings.HTTP_BACKOFF_SECONDS = 0.0
    settings.DEBUG = False
    return settings


@pytest_asyncio.fixture(name="session_factory")
async def session_factory_fixture(settings: Settings):
    """Async session factory over a fresh schema."""
    engine = create_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture(name="gateway")
def gateway_fixture(session_factory) -> PersistenceGateway:
    return PersistenceGateway(session_factory)


@pytest.fixture(name="vendor")
def vendor_fixture() -> FakeVendor:
    return FakeVendor()


@pytest_asyncio.fixture(name="http")
async def http_fixture(vendor: FakeVendor):
    """Retrying client whose transport is the fake vendor."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(vendor)) as client:
        yield RetryingHttpClient(client, backoff_seconds=0.0)


@pytest.fixture(name="pipeline")
def pipeline_fixture(settings: Settings, gateway: PersistenceGateway, http: RetryingHttpClient) -> VoiceNotePipeline:
    return VoiceNotePipeline(settings, gateway, http)


@pytest_asyncio.fixture(name="site")
async def site_fixture(session_factory) -> dict:
    """Seed one account with a manager, a Hindi-speaking worker, a project, Groq prompts and a new voice note."""
    ids = {name: new_id() for name in ("account", "manager", "worker", "project", "voice_note")}
    async with session_factory() as session, session.begin():
        session.add(Account(id=ids["account"], name="Acme Builders", transcription_provider="groq"))
        session.add(
            User(
                id=ids["manager"],
                account_id=ids["account"],
                email="manager@acme.test",
                full_name="Site Manager",
                role="manager",
                preferred_language="en",
            )
        )
        await session.flush()
        session.add(
            User(
                id=ids["worker"],
                account_id=ids["account"],
                email="worker@acme.test",
                full_name="Ravi",
                role="worker",
                preferred_language="hi",
                reports_to_id=ids["manager"],
            )
        )
        session.add(Project(id=ids["project"], account_id=ids["account"], name="Tower B", location="Pune"))
        session.add_all(
            [
                Prompt(
                    provider="groq",
                    purpose=PURPOSE_TRANSLATION,
                    version=1,
                    template="Translate this site message to {{language}}:\n{{transcript}}",
                ),
                Prompt(
                    provider="groq",
                    purpose=PURPOSE_ANALYSIS,
                    version=1,
                    template="You classify construction site voice notes.",
                ),
            ]
        )
        await session.flush()
        session.add(
            VoiceNote(
                id=ids["voice_note"],
                account_id=ids["account"],
                project_id=ids["project"],
                user_id=ids["worker"],
                audio_url="notes/2026/scaffold.m4a",
            )
        )
    return ids


@pytest.fixture(name="fetch_all")
def fetch_all_fixture(session_factory):
    """Return an async helper that loads every row of a model matching the filters."""

    async def fetch_all(model, **filters) -> list:
        async with session_factory() as session:
            return list((await session.execute(select(model).filter_by(**filters))).scalars())

    return fetch_all
