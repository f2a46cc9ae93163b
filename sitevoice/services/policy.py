"""Classification and extraction policy.

Pure functions that turn free-form model output into the constrained taxonomy
used downstream: intent, priority, action category, critical-keyword override
and confidence-based review routing. Nothing here does I/O.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from sitevoice.errors import ProviderParseError

INTENT_UPDATE = "update"
INTENT_APPROVAL = "approval"
INTENT_ACTION_REQUIRED = "action_required"
INTENT_INFORMATION = "information"

PRIORITY_LOW = "Low"
PRIORITY_MED = "Med"
PRIORITY_HIGH = "High"
PRIORITY_CRITICAL = "Critical"

REVIEW_PENDING = "pending_review"
REVIEW_FLAGGED = "flagged"

AUTO_APPROVE_CONFIDENCE = 0.85
REVIEW_CONFIDENCE = 0.70
SUMMARY_BACKFILL_CHARS = 100
FALLBACK_CONFIDENCE = 0.5
FALLBACK_MODEL = "local-keyword-classifier"

_INTENT_SYNONYMS = {
    INTENT_UPDATE: {
        "update", "progress", "progress_update", "status", "status_update", "ambient", "ambient_update",
        "report", "daily_update",
    },
    INTENT_APPROVAL: {
        "approval", "approve", "approval_request", "request_approval", "permission", "authorization",
        "authorisation", "sign_off", "signoff",
    },
    INTENT_ACTION_REQUIRED: {
        "action_required", "action", "action_item", "actionable", "issue", "problem", "concern", "urgent",
        "safety", "safety_issue", "task", "request", "material_request", "labor_request", "labour_request",
        "escalation",
    },
    INTENT_INFORMATION: {
        "information", "info", "informational", "general", "fyi", "question", "other", "note",
    },
}
_INTENT_LOOKUP = {synonym: intent for intent, synonyms in _INTENT_SYNONYMS.items() for synonym in synonyms}

_PRIORITY_SYNONYMS = {
    PRIORITY_LOW: {"low", "l", "minor", "p3", "p4"},
    PRIORITY_MED: {"med", "medium", "m", "normal", "moderate", "p2"},
    PRIORITY_HIGH: {"high", "h", "urgent", "important", "p1"},
    PRIORITY_CRITICAL: {"critical", "emergency", "severe", "p0", "blocker"},
}
_PRIORITY_LOOKUP = {synonym: priority for priority, synonyms in _PRIORITY_SYNONYMS.items() for synonym in synonyms}

_ACTION_CATEGORIES = {
    INTENT_APPROVAL: INTENT_APPROVAL,
    INTENT_ACTION_REQUIRED: INTENT_ACTION_REQUIRED,
}

# Matched as lower-case substrings of the English transcript.
CRITICAL_KEYWORDS = (
    "unsafe",
    "danger",
    "emergency",
    "injury",
    "injured",
    "accident",
    "collapse",
    "electrocut",
    "gas leak",
    "on fire",
    "caught fire",
    "fell from",
    "fallen from",
    "bleeding",
    "unconscious",
    "structural failure",
)

_FALLBACK_APPROVAL_KEYWORDS = (
    "please approve", "approve", "shall we", "can we", "should we", "may we", "permission", "authorize",
    "thinking of", "planning to", "want to", "would like to", "requesting", "need approval",
)
_FALLBACK_PROBLEM_KEYWORDS = (
    "problem", "issue", "urgent", "danger", "weak", "broken", "collapsed", "unsafe", "fix", "help",
    "emergency", "shortage", "delay",
)


def _label(raw: Any) -> str:
    return re.sub(r"[\s\-]+", "_", str(raw or "").strip().lower())


def map_intent(raw: Any) -> str:
    """Map a model's intent label onto the taxonomy; anything unrecognised is informational."""
    return _INTENT_LOOKUP.get(_label(raw), INTENT_INFORMATION)


def map_priority(raw: Any) -> str:
    """Map a model's priority label onto Low/Med/High/Critical; anything unrecognised is Med."""
    return _PRIORITY_LOOKUP.get(_label(raw), PRIORITY_MED)


def action_category(intent: str) -> str | None:
    """Action-item category for an intent; updates and information are ambient."""
    return _ACTION_CATEGORIES.get(intent)


def detect_critical(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in CRITICAL_KEYWORDS)


@dataclass(frozen=True)
class ReviewRouting:
    needs_review: bool
    review_status: str | None


def review_routing(confidence: float | None, is_critical: bool) -> ReviewRouting:
    """Decide whether a human has to look at an action item before it is trusted."""
    if is_critical:
        return ReviewRouting(True, REVIEW_PENDING)
    score = confidence if confidence is not None else 0.0
    if score >= AUTO_APPROVE_CONFIDENCE:
        return ReviewRouting(False, None)
    if score >= REVIEW_CONFIDENCE:
        return ReviewRouting(True, REVIEW_PENDING)
    return ReviewRouting(True, REVIEW_FLAGGED)


def should_create_action_item(intent: str, is_critical: bool) -> bool:
    return action_category(intent) is not None or is_critical


@dataclass(frozen=True)
class ActionRouting:
    category: str
    priority: str


def route_action(intent: str, priority: str, is_critical: bool) -> ActionRouting | None:
    """Category and priority for the action item, or None when the note is ambient.

    A critical safety signal overrides the classifier: the item is always
    ``action_required`` at High priority.
    """
    if is_critical:
        return ActionRouting(INTENT_ACTION_REQUIRED, PRIORITY_HIGH)
    category = action_category(intent)
    if category is None:
        return None
    return ActionRouting(category, priority)


def truncate_summary(text: str | None, limit: int = SUMMARY_BACKFILL_CHARS) -> str:
    return (text or "").strip()[:limit]


# --- Vendor payload validation ---


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return None
    text = str(value).strip()
    return text or None


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = re.search(r"-?\d+(?:\.\d+)?", str(value))
        if not match:
            return None
        number = float(match.group(0))
    # json.loads accepts NaN and Infinity
    return number if math.isfinite(number) else None


def _to_score(value: Any) -> float | None:
    number = _to_number(value)
    if number is None:
        return None
    if number > 1.0:
        number = number / 100.0  # "85" or "85%"
    return min(1.0, max(0.0, number))


def _to_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


Text = Annotated[str | None, BeforeValidator(_to_text)]
Number = Annotated[float | None, BeforeValidator(_to_number)]
Score = Annotated[float | None, BeforeValidator(_to_score)]


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class MaterialItem(_Lenient):
    name: Text = Field(default=None, validation_alias=AliasChoices("name", "material", "material_name", "item"))
    quantity: Number = None
    unit: Text = None
    urgency: Text = None
    notes: Text = None
    confidence: Score = None


class LaborItem(_Lenient):
    trade: Text = Field(default=None, validation_alias=AliasChoices("trade", "role", "skill", "type"))
    headcount: Number = Field(default=None, validation_alias=AliasChoices("headcount", "count", "workers", "quantity"))
    duration: Text = None
    notes: Text = None
    confidence: Score = None


class ApprovalItem(_Lenient):
    type: Text = Field(default=None, validation_alias=AliasChoices("type", "approval_type", "subject"))
    description: Text = None
    amount: Number = None
    confidence: Score = None


class EventItem(_Lenient):
    type: Text = Field(default=None, validation_alias=AliasChoices("type", "event_type"))
    description: Text = None
    severity: Text = None
    confidence: Score = None


class AnalysisPayload(_Lenient):
    """The extraction schema every provider's classify output is validated against."""

    intent: Text = Field(default=None, validation_alias=AliasChoices("intent", "category"))
    priority: Text = None
    short_summary: Text = Field(default=None, validation_alias=AliasChoices("short_summary", "summary"))
    detailed_summary: Text = Field(
        default=None, validation_alias=AliasChoices("detailed_summary", "details", "analysis")
    )
    confidence: Score = Field(default=None, validation_alias=AliasChoices("confidence", "confidence_score"))
    materials: Annotated[list[MaterialItem], BeforeValidator(_to_list)] = Field(
        default_factory=list, validation_alias=AliasChoices("materials", "material_requests")
    )
    labor: Annotated[list[LaborItem], BeforeValidator(_to_list)] = Field(
        default_factory=list, validation_alias=AliasChoices("labor", "labour", "labor_requests")
    )
    approvals: Annotated[list[ApprovalItem], BeforeValidator(_to_list)] = Field(
        default_factory=list, validation_alias=AliasChoices("approvals", "approval_requests")
    )
    events: Annotated[list[EventItem], BeforeValidator(_to_list)] = Field(
        default_factory=list, validation_alias=AliasChoices("events", "project_events")
    )


@dataclass
class AnalysisResult:
    """Normalised classification output, ready to be persisted."""

    intent: str
    priority: str
    short_summary: str
    detailed_summary: str
    confidence: float | None
    materials: list[dict] = field(default_factory=list)
    labor: list[dict] = field(default_factory=list)
    approvals: list[dict] = field(default_factory=list)
    events: list[dict] = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    def entity_counts(self) -> dict[str, int]:
        return {
            "materials": len(self.materials),
            "labor": len(self.labor),
            "approvals": len(self.approvals),
            "events": len(self.events),
        }


def normalize_analysis(raw: dict[str, Any], transcript: str) -> AnalysisResult:
    """Validate a classify payload, map it onto the taxonomy and backfill missing summaries.

    Raises ProviderParseError when the payload does not fit the extraction schema.
    """
    try:
        payload = AnalysisPayload.model_validate(raw)
    except ValidationError as exc:
        raise ProviderParseError("analysis", f"payload does not match extraction schema: {exc}") from exc

    overall = payload.confidence

    def score(item_confidence: float | None) -> float | None:
        return item_confidence if item_confidence is not None else overall

    materials = [
        {
            "material_name": item.name,
            "quantity": item.quantity,
            "unit": item.unit,
            "urgency": item.urgency,
            "notes": item.notes,
            "confidence_score": score(item.confidence),
        }
        for item in payload.materials
        if item.name
    ]
    labor = [
        {
            "trade": item.trade,
            "headcount": int(item.headcount) if item.headcount is not None else None,
            "duration": item.duration,
            "notes": item.notes,
            "confidence_score": score(item.confidence),
        }
        for item in payload.labor
        if item.trade
    ]
    approvals = [
        {
            "approval_type": item.type or "general",
            "description": item.description or item.type,
            "amount": item.amount,
            "confidence_score": score(item.confidence),
        }
        for item in payload.approvals
        if item.description or item.type
    ]
    events = [
        {
            "event_type": item.type or "general",
            "description": item.description or item.type,
            "severity": item.severity,
            "confidence_score": score(item.confidence),
        }
        for item in payload.events
        if item.description or item.type
    ]

    backfill = truncate_summary(transcript)
    return AnalysisResult(
        intent=map_intent(payload.intent),
        priority=map_priority(payload.priority),
        short_summary=payload.short_summary or backfill,
        detailed_summary=payload.detailed_summary or backfill,
        confidence=overall,
        materials=materials,
        labor=labor,
        approvals=approvals,
        events=events,
        raw=raw,
    )


def fallback_classify(text: str) -> dict[str, Any]:
    """Keyword classifier used when no model classification is available."""
    lowered = (text or "").lower()
    if any(keyword in lowered for keyword in _FALLBACK_APPROVAL_KEYWORDS):
        intent, priority = INTENT_APPROVAL, PRIORITY_MED
    elif any(keyword in lowered for keyword in _FALLBACK_PROBLEM_KEYWORDS):
        intent, priority = INTENT_ACTION_REQUIRED, PRIORITY_HIGH
    else:
        intent, priority = INTENT_UPDATE, PRIORITY_LOW
    return {
        "intent": intent,
        "priority": priority,
        "short_summary": "",
        "detailed_summary": "",
        "confidence": FALLBACK_CONFIDENCE,
    }
