"""Action items and notifications created from actionable voice notes."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, String, Text

from sitevoice.database import Base, new_id, utcnow


class ActionItem(Base):
    """Task derived from a voice note."""

    __tablename__ = "action_items"

    id = Column(String(36), primary_key=True, default=new_id)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    category = Column(String(32), nullable=False)  # approval, action_required
    priority = Column(String(16), nullable=False)
    summary = Column(Text, nullable=False)
    details = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="pending")
    confidence_score = Column(Float, nullable=True)
    needs_review = Column(Boolean, nullable=False, default=False)
    review_status = Column(String(32), nullable=True)  # pending_review, flagged
    is_critical_flag = Column(Boolean, nullable=False, default=False)
    interaction_history = Column(JSON, nullable=False, default=list)
    ai_analysis = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Notification(Base):
    """In-app notification queued for a user."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    voice_note_id = Column(String(36), ForeignKey("voice_notes.id"), nullable=True)
    # Written in the same batch as the action item, so no FK constraint here.
    action_item_id = Column(String(36), nullable=True, index=True)
    type = Column(String(64), nullable=False)
    priority = Column(String(16), nullable=False, default="normal")
    title = Column(String(256), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
