"""Voice note model and its status lifecycle."""

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from sitevoice.database import Base, new_id, utcnow

STATUS_RECEIVED = "received"
STATUS_TRANSCRIBED = "transcribed"
STATUS_TRANSLATED = "translated"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"

# Forward-only order; error is a side state reachable from anything but completed.
STATUS_FLOW = (STATUS_RECEIVED, STATUS_TRANSCRIBED, STATUS_TRANSLATED, STATUS_COMPLETED)


def status_predecessors(target: str) -> tuple[str, ...]:
    """Statuses from which a note may move to ``target``."""
    if target == STATUS_ERROR:
        return STATUS_FLOW[:-1] + (STATUS_ERROR,)
    index = STATUS_FLOW.index(target)
    return STATUS_FLOW[:index] + (STATUS_ERROR,)


class VoiceNote(Base):
    """Audio submission from a site worker and everything derived from it."""

    __tablename__ = "voice_notes"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    audio_url = Column(String(1024), nullable=False)
    status = Column(String(32), nullable=False, default=STATUS_RECEIVED)

    # *_original columns are first-write-wins; *_current columns are editable copies.
    transcript_raw_original = Column(Text, nullable=True)
    transcript_raw_current = Column(Text, nullable=True)
    transcript_en_original = Column(Text, nullable=True)
    transcript_en_current = Column(Text, nullable=True)
    transcript_final = Column(Text, nullable=True)
    detected_language_code = Column(String(16), nullable=True)
    asr_confidence = Column(Float, nullable=True)

    # Legacy display fields kept for older clients
    transcription = Column(Text, nullable=True)
    translated_transcription = Column(JSON, nullable=True)
    category = Column(String(32), nullable=True)
    priority = Column(String(16), nullable=True)

    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    account = relationship("Account", lazy="raise")
    user = relationship("User", lazy="raise")
    project = relationship("Project", lazy="raise")
