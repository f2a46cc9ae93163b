"""Prompt text for the ASR, translation and analysis steps."""

import json
from typing import Any

ASR_CONTEXT_HINT = (
    "This is a voice note from a construction site shared between project stakeholders. "
    "It may contain updates, requests for approval, or action items. "
    "Common terms: concrete, scaffolding, safety, foundation, rebar, excavation, slab work, formwork, "
    "shuttering, curing, plaster, cement bags, TMT bars. "
    "The audio may be in English, Hindi, Telugu, Tamil, Kannada, Malayalam, or other languages."
)

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "hi": "Hindi",
    "te": "Telugu",
    "ta": "Tamil",
    "mr": "Marathi",
    "bn": "Bengali",
    "kn": "Kannada",
    "ml": "Malayalam",
    "gu": "Gujarati",
    "pa": "Punjabi",
    "ur": "Urdu",
    "pt": "Portuguese",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
    "ru": "Russian",
    "it": "Italian",
}
_CODES_BY_NAME = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}

DEFAULT_TRANSLATION_INSTRUCTION = (
    "Translate this construction site message to {{language}}. Keep technical construction terms in English "
    "if they don't have direct translations. Return ONLY the translation, no explanations:\n\n"
    '"{{transcript}}"'
)

TRANSLATOR_SYSTEM_PROMPT = (
    "You are a professional translator specializing in construction industry terminology. "
    "Translate accurately while keeping technical terms clear."
)

ANALYSIS_SCHEMA_HINT = """Respond with a single JSON object, no markdown:
{
  "intent": "update" | "approval" | "action_required" | "information",
  "priority": "Low" | "Med" | "High" | "Critical",
  "short_summary": "Direct summary starting with a verb (max 15 words)",
  "detailed_summary": "Two or three sentences with the specifics",
  "confidence": 0.0-1.0,
  "materials": [{"name": "", "quantity": null, "unit": "", "urgency": "", "confidence": 0.0}],
  "labor": [{"trade": "", "headcount": null, "duration": "", "confidence": 0.0}],
  "approvals": [{"type": "", "description": "", "amount": null, "confidence": 0.0}],
  "events": [{"type": "", "description": "", "severity": "", "confidence": 0.0}]
}"""

FEW_SHOT_EXAMPLES = [
    {
        "transcript": "We need 50 bags of cement and 2 tons of TMT bars at block B by tomorrow morning.",
        "output": {
            "intent": "action_required",
            "priority": "High",
            "short_summary": "Deliver 50 cement bags and 2 tons of TMT bars to block B",
            "detailed_summary": "Site needs 50 bags of cement and 2 tons of TMT bars at block B before tomorrow "
            "morning to continue work.",
            "confidence": 0.92,
            "materials": [
                {"name": "cement", "quantity": 50, "unit": "bags", "urgency": "high", "confidence": 0.95},
                {"name": "TMT bars", "quantity": 2, "unit": "tons", "urgency": "high", "confidence": 0.9},
            ],
            "labor": [],
            "approvals": [],
            "events": [],
        },
    },
    {
        "transcript": "Can we start the slab pour on the third floor on Monday? The formwork inspection passed.",
        "output": {
            "intent": "approval",
            "priority": "Med",
            "short_summary": "Approve third floor slab pour for Monday",
            "detailed_summary": "Formwork inspection on the third floor passed and the team is asking for "
            "approval to pour the slab on Monday.",
            "confidence": 0.9,
            "materials": [],
            "labor": [],
            "approvals": [
                {"type": "work_start", "description": "Third floor slab pour on Monday", "amount": None,
                 "confidence": 0.9}
            ],
            "events": [{"type": "inspection", "description": "Formwork inspection passed", "severity": "low",
                        "confidence": 0.85}],
        },
    },
    {
        "transcript": "Plastering on the second floor is finished, moving to the staircase today.",
        "output": {
            "intent": "update",
            "priority": "Low",
            "short_summary": "Finished second floor plastering, starting staircase",
            "detailed_summary": "Plastering on the second floor is complete and the crew moves to the staircase "
            "today.",
            "confidence": 0.95,
            "materials": [],
            "labor": [],
            "approvals": [],
            "events": [{"type": "milestone", "description": "Second floor plastering completed",
                        "severity": "low", "confidence": 0.9}],
        },
    },
]


def language_name(code: str | None) -> str:
    """Display name for a language code ("hi" -> "Hindi"); unknown codes are upper-cased."""
    if not code:
        return "Unknown"
    return LANGUAGE_NAMES.get(code.lower(), code.upper())


def normalize_language_code(value: Any) -> str:
    """Map vendor language labels ("english", "Hindi", "hi-IN") to ISO 639-1 codes."""
    if not isinstance(value, str) or not value.strip():
        return "unknown"
    label = value.strip().lower()
    if label in _CODES_BY_NAME:
        return _CODES_BY_NAME[label]
    label = label.replace("_", "-").split("-", 1)[0]
    return label or "unknown"


def render_template(template: str, **values: str) -> str:
    """Substitute ``{{name}}`` placeholders."""
    rendered = template
    for name, value in values.items():
        rendered = rendered.replace("{{" + name + "}}", value)
    return rendered


def render_translation_prompt(template: str, language_code: str, transcript: str) -> str:
    return render_template(template, language=language_name(language_code), transcript=transcript)


def build_analysis_message(transcript: str, project_name: str | None, speaker_role: str | None) -> str:
    """User message for the classification call: project context, few-shot examples, transcript."""
    examples = "\n\n".join(
        f"Voice note: \"{example['transcript']}\"\nOutput: {json.dumps(example['output'])}"
        for example in FEW_SHOT_EXAMPLES
    )
    return (
        f"PROJECT: {project_name or 'Unknown project'}\n"
        f"SPEAKER ROLE: {speaker_role or 'worker'}\n\n"
        f"EXAMPLES:\n{examples}\n\n"
        f"VOICE NOTE TEXT: \"{transcript}\"\n\n"
        f"{ANALYSIS_SCHEMA_HINT}"
    )
