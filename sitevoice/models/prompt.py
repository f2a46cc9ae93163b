"""Versioned prompt registry."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint

from sitevoice.database import Base, new_id, utcnow

PURPOSE_TRANSLATION = "translation"
PURPOSE_ANALYSIS = "analysis"


class Prompt(Base):
    """Instruction template keyed by (provider, purpose, version)."""

    __tablename__ = "prompts"
    __table_args__ = (UniqueConstraint("provider", "purpose", "version", name="uq_prompts_provider_purpose_version"),)

    id = Column(String(36), primary_key=True, default=new_id)
    provider = Column(String(32), nullable=False, index=True)
    purpose = Column(String(32), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    template = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
