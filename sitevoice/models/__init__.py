"""Database models. Importing this package registers every table with ``Base.metadata``."""

from sitevoice.models.account import Account, Project, User
from sitevoice.models.action_item import ActionItem, Notification
from sitevoice.models.analysis import AIAnalysis, ApprovalRequest, LaborRequest, MaterialRequest, ProjectEvent
from sitevoice.models.prompt import Prompt
from sitevoice.models.voice_note import VoiceNote

__all__ = [
    "AIAnalysis",
    "Account",
    "ActionItem",
    "ApprovalRequest",
    "LaborRequest",
    "MaterialRequest",
    "Notification",
    "Project",
    "ProjectEvent",
    "Prompt",
    "User",
    "VoiceNote",
]
