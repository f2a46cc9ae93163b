"""Pydantic schemas for the processing trigger."""

from pydantic import BaseModel, model_validator


class TriggerRecord(BaseModel):
    """Database-webhook shaped payload (``{"record": {...}}``)."""

    id: str | int
    account_id: str | None = None
    project_id: str | None = None
    user_id: str | None = None
    audio_url: str | None = None


class ProcessRequest(BaseModel):
    voice_note_id: str | int | None = None
    record: TriggerRecord | None = None

    @model_validator(mode="after")
    def require_identifier(self) -> "ProcessRequest":
        if self.voice_note_id is None and self.record is None:
            raise ValueError("Payload must contain 'voice_note_id' or 'record'")
        return self

    @property
    def target_id(self) -> str:
        """Voice note to process; an explicit id wins over the webhook record."""
        if self.voice_note_id is not None:
            return str(self.voice_note_id)
        return str(self.record.id)


class ProcessResponse(BaseModel):
    success: bool
    voice_note_id: str
    intent: str | None
    priority: str | None
    action_created: bool
    asr_confidence: float | None
    processing_time_ms: int


class ErrorResponse(BaseModel):
    error: str
