"""Tests for the classification and routing policy."""

import json

import pytest

from sitevoice.errors import ProviderParseError
from sitevoice.services.policy import (
    FALLBACK_CONFIDENCE,
    action_category,
    detect_critical,
    fallback_classify,
    map_intent,
    map_priority,
    normalize_analysis,
    review_routing,
    route_action,
    should_create_action_item,
    truncate_summary,
)


class TestTaxonomyMapping:
    """Tests for intent and priority mapping."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("update", "update"),
            ("Progress Update", "update"),
            ("approval-request", "approval"),
            ("ACTION_REQUIRED", "action_required"),
            ("safety issue", "action_required"),
            ("question", "information"),
            ("something odd", "information"),
            (None, "information"),
            (42, "information"),
        ],
    )
    def test_intent(self, raw, expected):
        assert map_intent(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("low", "Low"),
            ("Medium", "Med"),
            ("HIGH", "High"),
            ("urgent", "High"),
            ("critical", "Critical"),
            ("whenever", "Med"),
            (None, "Med"),
        ],
    )
    def test_priority(self, raw, expected):
        assert map_priority(raw) == expected

    def test_action_category(self):
        assert action_category("approval") == "approval"
        assert action_category("action_required") == "action_required"
        assert action_category("update") is None
        assert action_category("information") is None


class TestCriticalDetection:
    """Tests for the critical keyword override."""

    @pytest.mark.parametrize(
        "text",
        [
            "The scaffolding is shaking, looks unsafe",
            "Worker INJURED near the crane",
            "Possible gas leak in basement",
            "Labourer fell from the second floor",
        ],
    )
    def test_critical(self, text: str):
        assert detect_critical(text)

    @pytest.mark.parametrize("text", ["Slab work finished", "Need 20 bags of cement", "", None])
    def test_not_critical(self, text):
        assert not detect_critical(text)


class TestReviewRouting:
    """Tests for confidence-based review routing."""

    def test_high_confidence_auto_approved(self):
        routing = review_routing(0.95, is_critical=False)
        assert routing.needs_review is False
        assert routing.review_status is None

    def test_medium_confidence_pending_review(self):
        routing = review_routing(0.75, is_critical=False)
        assert routing.needs_review is True
        assert routing.review_status == "pending_review"

    def test_low_confidence_flagged(self):
        routing = review_routing(0.50, is_critical=False)
        assert routing.needs_review is True
        assert routing.review_status == "flagged"

    def test_thresholds_inclusive(self):
        assert review_routing(0.85, False).needs_review is False
        assert review_routing(0.70, False).review_status == "pending_review"

    def test_missing_confidence_flagged(self):
        assert review_routing(None, False).review_status == "flagged"

    def test_critical_always_reviewed(self):
        routing = review_routing(0.99, is_critical=True)
        assert routing.needs_review is True
        assert routing.review_status == "pending_review"


class TestActionRouting:
    """Tests for action item creation and override."""

    def test_ambient_intents_create_nothing(self):
        assert route_action("update", "Low", is_critical=False) is None
        assert route_action("information", "Med", is_critical=False) is None
        assert not should_create_action_item("update", False)

    def test_actionable_intent_keeps_priority(self):
        routing = route_action("approval", "Med", is_critical=False)
        assert routing.category == "approval"
        assert routing.priority == "Med"
        assert should_create_action_item("approval", False)

    def test_critical_overrides_ambient_intent(self):
        routing = route_action("update", "Low", is_critical=True)
        assert routing.category == "action_required"
        assert routing.priority == "High"
        assert should_create_action_item("update", True)

    def test_critical_overrides_classifier_priority(self):
        assert route_action("approval", "Critical", is_critical=True).priority == "High"


class TestNormalizeAnalysis:
    """Tests for validating and normalising classify payloads."""

    def test_full_payload(self):
        raw = {
            "intent": "Approval Request",
            "priority": "medium",
            "short_summary": "Approve overtime for pour",
            "detailed_summary": "Supervisor asks for overtime to finish the slab pour.",
            "confidence": "85%",
            "materials": [{"material": "cement", "quantity": "40 bags", "unit": "bags", "confidence": 0.9}],
            "labor": {"role": "mason", "count": "6"},
            "approvals": [{"type": "overtime", "amount": "12000"}],
            "events": [{"event_type": "delay", "description": "Pump arrived late", "severity": "low"}],
        }
        result = normalize_analysis(raw, "transcript")
        assert result.intent == "approval"
        assert result.priority == "Med"
        assert result.confidence == pytest.approx(0.85)
        assert result.materials == [
            {
                "material_name": "cement",
                "quantity": 40.0,
                "unit": "bags",
                "urgency": None,
                "notes": None,
                "confidence_score": 0.9,
            }
        ]
        assert result.labor[0]["trade"] == "mason"
        assert result.labor[0]["headcount"] == 6
        assert result.labor[0]["confidence_score"] == pytest.approx(0.85)
        assert result.approvals[0] == {
            "approval_type": "overtime",
            "description": "overtime",
            "amount": 12000.0,
            "confidence_score": pytest.approx(0.85),
        }
        assert result.events[0]["event_type"] == "delay"
        assert result.entity_counts() == {"materials": 1, "labor": 1, "approvals": 1, "events": 1}
        assert result.raw is raw

    def test_missing_fields_backfilled(self):
        transcript = "x" * 150
        result = normalize_analysis({}, transcript)
        assert result.intent == "information"
        assert result.priority == "Med"
        assert result.short_summary == "x" * 100
        assert result.detailed_summary == "x" * 100
        assert result.confidence is None

    def test_empty_entities_dropped(self):
        raw = {"materials": [{"quantity": 3}, "cement", {"name": "sand"}], "labor": "two masons"}
        result = normalize_analysis(raw, "t")
        assert [m["material_name"] for m in result.materials] == ["sand"]
        assert result.labor == []

    def test_wrong_shape_raises(self):
        with pytest.raises(ProviderParseError):
            normalize_analysis(["not", "an", "object"], "t")

    @pytest.mark.parametrize("number", ["NaN", "Infinity", "-Infinity", "1e999"])
    def test_non_finite_numbers_dropped(self, number: str):
        """Numbers json.loads turns into nan or inf are treated as missing."""
        raw = json.loads(
            '{"intent": "action_required", "confidence": ' + number + ','
            ' "labor": [{"trade": "mason", "headcount": ' + number + '}],'
            ' "materials": [{"name": "cement", "quantity": ' + number + '}]}'
        )
        result = normalize_analysis(raw, "Need masons")
        assert result.labor[0]["headcount"] is None
        assert result.materials[0]["quantity"] is None
        assert result.confidence is None

    def test_oversized_integer_dropped(self):
        result = normalize_analysis({"labor": [{"trade": "mason", "headcount": 10**400}]}, "t")
        assert result.labor[0]["headcount"] is None

    def test_truncate_summary(self):
        assert truncate_summary("  short  ") == "short"
        assert truncate_summary(None) == ""


class TestFallbackClassifier:
    """Tests for the keyword classifier."""

    def test_approval(self):
        result = fallback_classify("Can we start the second floor slab tomorrow?")
        assert result["intent"] == "approval"
        assert result["priority"] == "Med"

    def test_problem(self):
        result = fallback_classify("The pump is broken, need help")
        assert result["intent"] == "action_required"
        assert result["priority"] == "High"

    def test_default_update(self):
        result = fallback_classify("Plastering on level two is done")
        assert result["intent"] == "update"
        assert result["priority"] == "Low"
        assert result["confidence"] == FALLBACK_CONFIDENCE

    def test_normalizes_cleanly(self):
        result = normalize_analysis(fallback_classify("Plastering done"), "Plastering done")
        assert result.short_summary == "Plastering done"
        assert result.confidence == 0.5
