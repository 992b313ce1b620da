"""
Unit tests for the sectioned category prescription.
"""

import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pipeline.category_prescriber import (
    CategoryPrescriber,
    build_category_prompt,
    format_category_prescription,
    parse_category_response,
)
from pipeline.request_validation import ValidationError

SAMPLE = """SEVERITY LEVEL: HIGH

ROOT CAUSE ANALYSIS:
Students face heavy assessment load in the same week and see little consequence.
Academic integrity norms are rarely discussed in class.

RECOMMENDED INTERVENTIONS:

1. Immediate Classroom Response
   Timeline: Immediate
   Responsible Party: Subject teachers
   Steps:
   - Review seating during exams
   - Vary test versions
   Expected Outcome: Fewer incidents during assessments

2. Integrity Workshops
   Timeline: Short-term
   Responsible Party: Guidance office
   Steps:
   - Schedule homeroom sessions
   Resources Needed: Slides and facilitator

IMMEDIATE ACTIONS (This Week):
- Brief all teachers
- Post the honor code

PREVENTION STRATEGIES:
- Stagger major deadlines
"""


class StubLLM:
    is_configured = True

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def query(self, prompt, **kwargs):
        self.calls.append((prompt, kwargs))
        return self.reply


def test_parse_full_response():
    result = parse_category_response(SAMPLE)
    assert result["severity"] == "HIGH"
    assert result["rootCause"].startswith("Students face heavy assessment load")
    assert "Academic integrity norms" in result["rootCause"]

    first, second = result["interventions"]
    assert first["name"] == "Immediate Classroom Response"
    assert first["timeline"] == "Immediate"
    assert first["responsibleParty"] == "Subject teachers"
    assert first["steps"] == ["Review seating during exams", "Vary test versions"]
    assert first["expectedOutcome"] == "Fewer incidents during assessments"
    assert second["resourcesNeeded"] == "Slides and facilitator"

    assert result["immediateActions"] == ["Brief all teachers", "Post the honor code"]
    assert result["preventionStrategies"] == ["Stagger major deadlines"]
    assert result["successMetrics"] == []


def test_parse_unstructured_text_defaults():
    result = parse_category_response("I cannot help with that.")
    assert result["severity"] == "MEDIUM"
    assert result["interventions"] == []
    assert result["rootCause"] == ""


def test_prompt_includes_stats():
    prompt = build_category_prompt("Bullying", {
        "trend": "stable", "totalReferrals": 12, "affectedGrades": [9, 10], "urgency": "High",
    })
    assert "Issue Category: Bullying" in prompt
    assert "Trend: stable" in prompt
    assert "Total Referrals: 12" in prompt
    assert "Affected Grades: 9, 10" in prompt
    assert "Urgency: High" in prompt
    assert "appropriate for a school setting" in prompt


def test_generate_uses_category_budget():
    llm = StubLLM(SAMPLE)
    result = CategoryPrescriber(llm).generate("Cheating", {"trend": "increasing"})

    assert result["category"] == "Cheating"
    assert result["stats"] == {"trend": "increasing"}
    assert result["generatedAt"]
    _, kwargs = llm.calls[0]
    assert kwargs == {"max_tokens": 2500, "temperature": 0.7}


def test_generate_rejects_blank_category():
    llm = StubLLM(SAMPLE)
    with pytest.raises(ValidationError):
        CategoryPrescriber(llm).generate("   ")
    assert llm.calls == []


def test_format_prescription():
    result = parse_category_response(SAMPLE)
    result.update({"category": "Cheating", "stats": {"trend": "increasing"}, "generatedAt": "now"})
    text = format_category_prescription(result)
    assert "PRESCRIPTION FOR: CHEATING" in text
    assert "SEVERITY: HIGH" in text
    assert "→ Vary test versions" in text
    assert "• Post the honor code" in text
