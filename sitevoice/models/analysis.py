"""AI analysis records and the entities extracted from a voice note."""

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint

from sitevoice.database import Base, new_id, utcnow


class AIAnalysis(Base):
    """One classification result for a voice note. Append-only; re-runs add a new version."""

    __tablename__ = "ai_analysis"
    __table_args__ = (UniqueConstraint("voice_note_id", "version", name="uq_ai_analysis_note_version"),)

    id = Column(String(36), primary_key=True, default=new_id)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    intent = Column(String(32), nullable=False)
    priority = Column(String(16), nullable=False)
    short_summary = Column(Text, nullable=False)
    detailed_summary = Column(Text, nullable=False)
    confidence_score = Column(Float, nullable=True)
    model = Column(String(128), nullable=False)
    prompt_version = Column(Integer, nullable=True)
    source_transcript = Column(String(64), nullable=False)
    raw_response = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class MaterialRequest(Base):
    """Material requested in a voice note."""

    __tablename__ = "material_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    material_name = Column(String(256), nullable=False)
    quantity = Column(Float, nullable=True)
    unit = Column(String(64), nullable=True)
    urgency = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)
    confidence_score = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class LaborRequest(Base):
    """Crew or trade requested in a voice note."""

    __tablename__ = "labor_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    trade = Column(String(128), nullable=False)
    headcount = Column(Integer, nullable=True)
    duration = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    confidence_score = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class ApprovalRequest(Base):
    """Permission or sign-off asked for in a voice note."""

    __tablename__ = "approval_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    approval_type = Column(String(64), nullable=False)
    description = Column(Text, nullable=False)
    amount = Column(Float, nullable=True)
    confidence_score = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class ProjectEvent(Base):
    """Site event reported in a voice note (delay, inspection, incident...)."""

    __tablename__ = "project_events"

    id = Column(String(36), primary_key=True, default=new_id)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    event_type = Column(String(64), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String(16), nullable=True)
    confidence_score = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
