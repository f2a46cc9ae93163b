"""Account, user and project models (read-only context for the pipeline)."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String

from sitevoice.database import Base, new_id, utcnow


class Account(Base):
    """Company account that owns projects, users and voice notes."""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(256), nullable=False)
    transcription_provider = Column(String(32), nullable=True)  # groq, openai, gemini
    created_at = Column(DateTime, nullable=False, default=utcnow)


class User(Base):
    """Site worker, manager or admin belonging to an account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    full_name = Column(String(256), nullable=True)
    role = Column(String(32), nullable=False, default="worker")  # worker, supervisor, manager, admin
    preferred_language = Column(String(8), nullable=False, default="en")
    reports_to_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Project(Base):
    """Construction project."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    location = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
