"""
Category Prescriber (LLM → sectioned text)
============================================
Longer intervention plan for a referral category ("Cheating", "Bullying", ...).
Not subject to the weekly limit.

The model is asked for a fixed plain-text layout which is parsed line by line:

  SEVERITY LEVEL: HIGH
  ROOT CAUSE ANALYSIS:
  RECOMMENDED INTERVENTIONS:
    1. <name> / Timeline: / Responsible Party: / Steps: / - step / Expected Outcome:
  IMMEDIATE ACTIONS (This Week):
  PREVENTION STRATEGIES:
  SUCCESS METRICS:          (optional)
  FOLLOW-UP TIMELINE:       (optional)

Missing sections simply stay empty; severity defaults to MEDIUM.
"""

import logging
import re
from datetime import datetime, timezone

from config import CATEGORY_MAX_TOKENS, CATEGORY_TEMPERATURE
from llm_client import LLMClient
from pipeline.request_validation import validate_issue
from prompts.prescription_prompts import CATEGORY_PRESCRIPTION

logger = logging.getLogger("guidance_rx.category")

_NUMBERED_RE = re.compile(r"^\d+\.\s*")
_BULLET_RE = re.compile(r"^-\s*")

_LIST_SECTIONS = {
    "IMMEDIATE ACTIONS": "immediateActions",
    "PREVENTION STRATEGIES": "preventionStrategies",
    "SUCCESS METRICS": "successMetrics",
    "FOLLOW-UP TIMELINE": "followUpTimeline",
}

_INTERVENTION_FIELDS = {
    "Timeline:": "timeline",
    "Responsible Party:": "responsibleParty",
    "Expected Outcome:": "expectedOutcome",
    "Resources Needed:": "resourcesNeeded",
}


def build_category_prompt(category: str, stats: dict) -> str:
    grades = stats.get("affectedGrades") or []
    extra = []
    if stats.get("urgency"):
        extra.append(f"Urgency: {stats['urgency']}")
    if stats.get("constraints"):
        extra.append(f"Constraints: {stats['constraints']}")

    return CATEGORY_PRESCRIPTION.format(
        category=category,
        trend=stats.get("trend", "increasing"),
        setting=stats.get("setting") or "school",
        timeframe=stats.get("timeframe", "this week"),
        total_referrals=stats.get("totalReferrals", 0),
        affected_grades=", ".join(str(g) for g in grades) if grades else "Not specified",
        extra_info="".join(f"\n{line}" for line in extra),
    )


def _new_intervention(line: str) -> dict:
    return {
        "name": _NUMBERED_RE.sub("", line),
        "timeline": "",
        "responsibleParty": "",
        "steps": [],
        "expectedOutcome": "",
        "resourcesNeeded": "",
    }


def parse_category_response(text: str) -> dict:
    """Parse the sectioned plain-text plan into a dict."""
    result = {
        "severity": "MEDIUM",
        "rootCause": "",
        "interventions": [],
        "immediateActions": [],
        "preventionStrategies": [],
        "successMetrics": [],
        "followUpTimeline": [],
    }

    section = ""
    current = None
    in_steps = False

    for line in (l.strip() for l in (text or "").split("\n")):
        if not line:
            continue

        if line.startswith("SEVERITY LEVEL:"):
            result["severity"] = line[len("SEVERITY LEVEL:"):].strip() or "MEDIUM"
            continue
        if line == "ROOT CAUSE ANALYSIS:":
            section = "rootCause"
            continue
        if line == "RECOMMENDED INTERVENTIONS:":
            section = "interventions"
            continue

        list_key = next((k for h, k in _LIST_SECTIONS.items() if line.startswith(h)), None)
        if list_key:
            if current:
                result["interventions"].append(current)
                current = None
            section = list_key
            continue

        if section == "rootCause":
            # Short lines are usually stray labels, not analysis
            if len(line) > 10:
                result["rootCause"] = f"{result['rootCause']} {line}".strip()
        elif section == "interventions":
            if _NUMBERED_RE.match(line):
                if current:
                    result["interventions"].append(current)
                current = _new_intervention(line)
                in_steps = False
            elif current is None:
                continue
            elif line == "Steps:":
                in_steps = True
            elif line.startswith("-") and in_steps:
                current["steps"].append(_BULLET_RE.sub("", line))
            else:
                for label, key in _INTERVENTION_FIELDS.items():
                    if line.startswith(label):
                        current[key] = line[len(label):].strip()
                        if key in ("expectedOutcome", "resourcesNeeded"):
                            in_steps = False
                        break
        elif section in _LIST_SECTIONS.values() and line.startswith("-"):
            result[section].append(_BULLET_RE.sub("", line))

    if current:
        result["interventions"].append(current)

    return result


def format_category_prescription(result: dict) -> str:
    """Plain-text rendering for terminals and the dashboard's preformatted view."""
    rule = "=" * 60
    thin = "-" * 60
    out = [rule, f"PRESCRIPTION FOR: {result.get('category', '').upper()}", rule, ""]

    stats = result.get("stats") or {}
    if stats:
        out.append("SITUATION:")
        out.append(f"   • Trend: {stats.get('trend', 'increasing')}")
        if stats.get("totalReferrals"):
            out.append(f"   • Referrals: {stats['totalReferrals']}")
        out.append("")

    out.append(f"SEVERITY: {result.get('severity', 'MEDIUM')}")
    out.append("")
    out.append("ROOT CAUSE:")
    out.append(result.get("rootCause", ""))
    out.append("")
    out.append("RECOMMENDED INTERVENTIONS")
    out.append(thin)
    for idx, item in enumerate(result.get("interventions", []), start=1):
        out.append(f"\n{idx}. {item['name']}")
        if item.get("timeline"):
            out.append(f"   Timeline: {item['timeline']}")
        if item.get("responsibleParty"):
            out.append(f"   Responsible: {item['responsibleParty']}")
        out.append("   Steps:")
        out.extend(f"      → {step}" for step in item.get("steps", []))
        if item.get("expectedOutcome"):
            out.append(f"   ✓ Expected Outcome: {item['expectedOutcome']}")

    for title, key in (("IMMEDIATE ACTIONS (THIS WEEK)", "immediateActions"),
                       ("PREVENTION STRATEGIES", "preventionStrategies")):
        if result.get(key):
            out.append(f"\n{title}")
            out.append(thin)
            out.extend(f"  • {entry}" for entry in result[key])

    out.append(f"\n{rule}")
    out.append(f"Generated: {result.get('generatedAt', '')}")
    out.append(rule)
    return "\n".join(out)


class CategoryPrescriber:
    """Ungated, sectioned intervention plan for a referral category."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def generate(self, category, stats: dict | None = None) -> dict:
        """
        Raises:
            ValidationError: blank or over-long category
            GatewayError: provider failure
        """
        category = validate_issue(category)
        stats = dict(stats or {})
        prompt = build_category_prompt(category, stats)

        logger.info(f"Category prescription requested: {category[:120]}")
        text = self.llm.query(
            prompt, max_tokens=CATEGORY_MAX_TOKENS, temperature=CATEGORY_TEMPERATURE
        )

        result = parse_category_response(text)
        result["category"] = category
        result["stats"] = stats
        result["generatedAt"] = datetime.now(timezone.utc).isoformat()
        logger.info(
            f"Category prescription parsed: severity={result['severity']}, "
            f"{len(result['interventions'])} interventions"
        )
        return result
