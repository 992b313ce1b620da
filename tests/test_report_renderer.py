"""
Tests for Markdown / Word rendering of a weekly prescription.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from report_renderer import render_docx, render_report

RECORD = {
    "issue": "Rising absenteeism in Grade 10",
    "context": {"grade": "10", "cases": 14},
    "solution": {
        "severity": "medium",
        "root_cause": "Transport disruptions and low engagement after midterms.",
        "solutions": [
            {"title": "Attendance Outreach", "steps": ["Call families", "Weekly check-in"], "impact": "Earlier contact"},
        ],
        "quick_wins": ["Morning greeting at the gate"],
    },
    "timestamp": "2025-02-12T10:00:00.000Z",
    "weekKey": "2025-W7",
    "aiModel": "claude-sonnet-4",
    "createdBy": "u-100",
}


def test_render_markdown(tmp_path):
    path = render_report(RECORD, str(tmp_path))
    assert os.path.basename(path) == "WEEK_2025-W7.md"

    md = open(path, encoding="utf-8").read()
    assert "# Weekly AI Prescription: 2025-W7" in md
    assert "> Rising absenteeism in Grade 10" in md
    assert "| grade | 10 |" in md
    assert "**Severity: MEDIUM**" in md
    assert "### 1. Attendance Outreach" in md
    assert "2. Weekly check-in" in md
    assert "- Morning greeting at the gate" in md


def test_render_without_solutions(tmp_path):
    record = dict(RECORD, solution={"severity": "low"}, context={})
    md = open(render_report(record, str(tmp_path)), encoding="utf-8").read()
    assert "None returned." in md
    assert "Quick Wins" not in md
    assert "| Context |" not in md


def test_render_docx(tmp_path):
    md_path = render_report(RECORD, str(tmp_path))
    docx_path = render_docx(md_path)
    assert docx_path.endswith("WEEK_2025-W7.docx")
    assert os.path.getsize(docx_path) > 0
