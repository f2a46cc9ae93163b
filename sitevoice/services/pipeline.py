"""Voice-note processing pipeline.

Takes a voice note from raw audio to a completed record:

    load -> prefetch -> ASR -> translation -> classification -> extraction/action routing -> finalize

Each phase whose output is already persisted is skipped, so a failed run can be
retried by simply invoking the pipeline again. ASR and translation results are
written as soon as they exist (progressive writes); extraction, the action item,
notifications and the final record update go out together as one parallel batch.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

import httpx

from sitevoice.config import Settings
from sitevoice.database import new_id, utcnow
from sitevoice.errors import ConfigurationError, PipelineError, VoiceNoteNotFoundError
from sitevoice.models.prompt import PURPOSE_ANALYSIS, PURPOSE_TRANSLATION, Prompt
from sitevoice.models.voice_note import (
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_TRANSCRIBED,
    STATUS_TRANSLATED,
    VoiceNote,
    status_predecessors,
)
from sitevoice.providers import SpeechProvider, get_provider
from sitevoice.services.audio import AudioFetchCache
from sitevoice.services.http_client import RetryingHttpClient
from sitevoice.services.persistence import PersistenceGateway
from sitevoice.services.policy import (
    FALLBACK_MODEL,
    AnalysisResult,
    detect_critical,
    fallback_classify,
    normalize_analysis,
    review_routing,
    route_action,
)
from sitevoice.services.prompts import ASR_CONTEXT_HINT, language_name, render_translation_prompt

logger = logging.getLogger("sitevoice.pipeline")

ENGLISH = "en"
VOICE_NOTE_RELATIONS = ("account", "user", "project")


@dataclass
class PipelineResult:
    """Outcome of one pipeline invocation, shaped like the HTTP response."""

    success: bool
    voice_note_id: str
    intent: str | None = None
    priority: str | None = None
    action_created: bool = False
    asr_confidence: float | None = None
    processing_time_ms: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PhaseState:
    """Which phases already have persisted output, evaluated once at load time."""

    has_transcript: bool
    has_translation: bool

    @classmethod
    def of(cls, note: VoiceNote) -> "PhaseState":
        return cls(
            has_transcript=note.transcript_raw_original is not None,
            has_translation=note.transcript_en_original is not None,
        )


@dataclass
class _Classification:
    analysis: AnalysisResult
    model: str
    prompt_version: int | None


def display_transcription(original: str, english: str, language_code: str) -> str:
    """Legacy display text: the original, followed by the English version when they differ."""
    if language_code == ENGLISH or not english or english == original:
        return original
    return f"[{language_name(language_code)}] {original}\n\n[English] {english}"


async def _resolved(value: Any = None) -> Any:
    return value


class VoiceNotePipeline:
    """Runs the processing phases for one voice note per call to :meth:`run`."""

    def __init__(self, settings: Settings, gateway: PersistenceGateway, http: RetryingHttpClient) -> None:
        self.settings = settings
        self.gateway = gateway
        self.http = http

    async def run(self, voice_note_id: str) -> PipelineResult:
        """Process a voice note. Never raises; failures come back as ``success=False``."""
        started = time.monotonic()
        try:
            result = await self._process(voice_note_id)
        except VoiceNoteNotFoundError as exc:
            logger.warning("%s", exc)
            result = PipelineResult(success=False, voice_note_id=voice_note_id, error=str(exc))
        except Exception as exc:
            logger.exception("Pipeline failed for voice note %s", voice_note_id)
            await self._mark_error(voice_note_id, exc)
            result = PipelineResult(success=False, voice_note_id=voice_note_id, error=str(exc) or type(exc).__name__)
        result.processing_time_ms = int((time.monotonic() - started) * 1000)
        return result

    async def _process(self, voice_note_id: str) -> PipelineResult:
        # 1. Load & guard
        note = await self.gateway.read_record("voice_notes", voice_note_id, relations=VOICE_NOTE_RELATIONS)
        if note is None:
            raise VoiceNoteNotFoundError(f"Voice note not found: {voice_note_id}")
        if note.status == STATUS_COMPLETED:
            logger.info("Voice note %s already completed, nothing to do", voice_note_id)
            return PipelineResult(
                success=True,
                voice_note_id=voice_note_id,
                intent=note.category,
                priority=note.priority,
                asr_confidence=note.asr_confidence,
            )

        account_provider = note.account.transcription_provider if note.account else None
        provider_name = account_provider or self.settings.DEFAULT_PROVIDER
        provider = get_provider(provider_name, self.settings, self.http)
        phases = PhaseState.of(note)
        logger.info(
            "Processing voice note %s with %s (status=%s, transcript=%s, english=%s)",
            voice_note_id,
            provider.name,
            note.status,
            phases.has_transcript,
            phases.has_translation,
        )

        # 2. Prefetch
        audio_cache = AudioFetchCache(self.http, self.settings.STORAGE_BASE_URL)
        audio, translation_prompt, analysis_prompt = await asyncio.gather(
            _resolved() if phases.has_transcript else audio_cache.fetch_once(note.audio_url),
            (
                _resolved()
                if phases.has_translation
                else self.gateway.get_active_prompt(provider.name, PURPOSE_TRANSLATION)
            ),
            self.gateway.get_active_prompt(provider.name, PURPOSE_ANALYSIS),
        )

        # 3. ASR
        if phases.has_transcript:
            raw_text = note.transcript_raw_current or note.transcript_raw_original
            language = note.detected_language_code or "unknown"
            confidence = note.asr_confidence
        else:
            language_hint = note.user.preferred_language if note.user else None
            transcription = await provider.transcribe(audio, ASR_CONTEXT_HINT, language_hint)
            if not transcription.text:
                raise PipelineError("Transcription returned no text")
            raw_text, language, confidence = transcription.text, transcription.language_code, transcription.confidence
            await self.gateway.update_record(
                "voice_notes",
                voice_note_id,
                {
                    "transcript_raw_current": raw_text,
                    "transcription": raw_text,
                    "detected_language_code": language,
                    "asr_confidence": confidence,
                    "status": STATUS_TRANSCRIBED,
                },
                first_write={"transcript_raw_original": raw_text},
                status_from=status_predecessors(STATUS_TRANSCRIBED),
            )
            logger.info("Transcribed %s: language=%s confidence=%s", voice_note_id, language, confidence)

        # 4. Translation
        if phases.has_translation:
            english = note.transcript_en_current or note.transcript_en_original
            english_source = "transcript_en_current" if note.transcript_en_current else "transcript_en_original"
        else:
            english, english_source = await self._translate_to_english(provider, translation_prompt, raw_text, language)
            await self.gateway.update_record(
                "voice_notes",
                voice_note_id,
                {"transcript_en_current": english, "status": STATUS_TRANSLATED},
                first_write={"transcript_en_original": english},
                status_from=status_predecessors(STATUS_TRANSLATED),
            )
            logger.info("English text ready for %s (%s)", voice_note_id, english_source)

        translations = await self._translate_for_recipients(provider, note, raw_text, english, language)

        # 5. Classification
        context = {
            "project_name": note.project.name if note.project else None,
            "speaker_role": note.user.role if note.user else None,
        }
        classification = await self._classify(provider, analysis_prompt, english, context)
        analysis = classification.analysis

        # 6. Extraction & action routing
        is_critical = detect_critical(english)
        routing = route_action(analysis.intent, analysis.priority, is_critical)
        priority = routing.priority if routing else analysis.priority
        owner = {"voice_note_id": voice_note_id, "account_id": note.account_id, "project_id": note.project_id}
        version = await self.gateway.next_analysis_version(voice_note_id)
        create_action = routing is not None
        if create_action and await self.gateway.exists("action_items", voice_note_id=voice_note_id):
            logger.info("Action item for %s exists from an earlier attempt, not creating another", voice_note_id)
            create_action = False
        assignee = await self.gateway.resolve_assignee(note.user) if create_action and note.user else None

        writes = {}
        for table, rows in (
            ("material_requests", analysis.materials),
            ("labor_requests", analysis.labor),
            ("approval_requests", analysis.approvals),
            ("project_events", analysis.events),
        ):
            if rows:
                writes[f"insert {table}"] = self.gateway.insert_batch(table, [{**owner, **row} for row in rows])

        writes["insert ai_analysis"] = self.gateway.insert_one(
            "ai_analysis",
            {
                "voice_note_id": voice_note_id,
                "version": version,
                "intent": analysis.intent,
                "priority": analysis.priority,
                "short_summary": analysis.short_summary,
                "detailed_summary": analysis.detailed_summary,
                "confidence_score": analysis.confidence,
                "model": classification.model,
                "prompt_version": classification.prompt_version,
                "source_transcript": english_source,
                "raw_response": analysis.raw,
            },
        )

        if create_action:
            review = review_routing(analysis.confidence, is_critical)
            action_item_id = new_id()
            writes["insert action_items"] = self.gateway.insert_one(
                "action_items",
                {
                    "id": action_item_id,
                    **owner,
                    "user_id": note.user_id,
                    "assigned_to": assignee,
                    "category": routing.category,
                    "priority": routing.priority,
                    "summary": analysis.short_summary,
                    "details": analysis.detailed_summary,
                    "status": "pending",
                    "confidence_score": analysis.confidence,
                    "needs_review": review.needs_review,
                    "review_status": review.review_status,
                    "is_critical_flag": is_critical,
                    "interaction_history": [
                        {"action": "created", "by": "system", "at": utcnow().isoformat(), "source": "voice_note"}
                    ],
                    "ai_analysis": {
                        "intent": analysis.intent,
                        "confidence": analysis.confidence,
                        "model": classification.model,
                        "prompt_version": classification.prompt_version,
                        "extracted": analysis.entity_counts(),
                    },
                },
            )
            if is_critical and assignee:
                writes["insert notifications"] = self.gateway.insert_one(
                    "notifications",
                    {
                        "user_id": assignee,
                        "account_id": note.account_id,
                        "voice_note_id": voice_note_id,
                        "action_item_id": action_item_id,
                        "type": "critical_action_item",
                        "priority": "high",
                        "title": "Critical safety issue reported",
                        "message": analysis.short_summary,
                    },
                )
            elif is_critical:
                logger.warning("Critical voice note %s has no manager to notify", voice_note_id)

        # 7. Finalize
        final_fields: dict[str, Any] = {
            "transcript_final": english,
            "transcription": display_transcription(raw_text, english, language),
            "translated_transcription": translations,
            "detected_language_code": language,
            "asr_confidence": confidence,
            "category": analysis.intent,
            "priority": priority,
            "error_message": None,
            "status": STATUS_COMPLETED,
        }
        first_write = {}
        if not phases.has_transcript:
            final_fields["transcript_raw_current"] = raw_text
            first_write["transcript_raw_original"] = raw_text
        if not phases.has_translation:
            final_fields["transcript_en_current"] = english
            first_write["transcript_en_original"] = english
        writes["finalize voice_notes"] = self.gateway.update_record(
            "voice_notes",
            voice_note_id,
            final_fields,
            first_write=first_write,
            status_from=status_predecessors(STATUS_COMPLETED),
        )

        await self.gateway.run_batch(writes)
        logger.info(
            "Completed voice note %s: intent=%s priority=%s critical=%s action_item=%s",
            voice_note_id,
            analysis.intent,
            priority,
            is_critical,
            create_action,
        )
        return PipelineResult(
            success=True,
            voice_note_id=voice_note_id,
            intent=analysis.intent,
            priority=priority,
            action_created=create_action,
            asr_confidence=confidence,
        )

    async def _translate_to_english(
        self, provider: SpeechProvider, prompt: Prompt | None, raw_text: str, language: str
    ) -> tuple[str, str]:
        """English text and the tag of the transcript it came from."""
        if language == ENGLISH:
            return raw_text, "transcript_en_current"
        if prompt is None:
            raise ConfigurationError(f"No active translation prompt for provider '{provider.name}'")
        instruction = render_translation_prompt(prompt.template, ENGLISH, raw_text)
        try:
            return await provider.translate_text(raw_text, ENGLISH, instruction), "transcript_en_current"
        except (PipelineError, httpx.HTTPError) as exc:
            logger.warning("Translation to English failed, keeping original text: %s", exc)
            return raw_text, "transcript_raw_current"

    async def _translate_for_recipients(
        self, provider: SpeechProvider, note: VoiceNote, raw_text: str, english: str, language: str
    ) -> dict[str, str]:
        """Best-effort translations into every language the account's other users prefer."""
        translations = {ENGLISH: english}
        if language not in (ENGLISH, "unknown"):
            translations[language] = raw_text

        wanted = sorted(await self.gateway.recipient_languages(note.account_id, note.user_id) - set(translations))

        async def translate(target: str) -> str:
            try:
                return await provider.translate_text(english, target)
            except (PipelineError, httpx.HTTPError) as exc:
                logger.warning("Translation to %s failed, using English: %s", target, exc)
                return english

        for target, text in zip(wanted, await asyncio.gather(*(translate(lang) for lang in wanted))):
            translations[target] = text
        return translations

    async def _classify(
        self, provider: SpeechProvider, prompt: Prompt | None, transcript: str, context: dict[str, Any]
    ) -> _Classification:
        if prompt is not None:
            try:
                raw = await provider.classify(prompt.template, transcript, context)
                analysis = normalize_analysis(raw, transcript)
                return _Classification(analysis, provider.chat_model, prompt.version)
            except (PipelineError, httpx.HTTPError) as exc:
                logger.warning("Classification with %s failed, using keyword fallback: %s", provider.name, exc)
        else:
            logger.warning("No active analysis prompt for %s, using keyword fallback", provider.name)
        return _Classification(normalize_analysis(fallback_classify(transcript), transcript), FALLBACK_MODEL, None)

    async def _mark_error(self, voice_note_id: str, exc: Exception) -> None:
        try:
            await self.gateway.update_record(
                "voice_notes",
                voice_note_id,
                {"status": STATUS_ERROR, "error_message": str(exc)[:2000] or type(exc).__name__},
                status_from=status_predecessors(STATUS_ERROR),
            )
        except Exception:
            logger.exception("Could not mark voice note %s as failed", voice_note_id)
