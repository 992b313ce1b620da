"""
Prompt Builder
===============
Renders the weekly prescription prompt. Pure function, no I/O.

The optional context mapping is serialised compactly and appended verbatim on
a "Context:" line. Inputs come from authenticated staff, so no escaping is done.
"""

import json

from prompts.prescription_prompts import WEEKLY_PRESCRIPTION


def format_context(context: dict | None) -> str:
    """Return "\\nContext: {...}" for a non-empty mapping, else ""."""
    if not context:
        return ""
    return "\nContext: " + json.dumps(context, ensure_ascii=False, separators=(",", ":"))


def build_prompt(issue: str, context: dict | None = None) -> str:
    """
    Build the weekly prescription prompt.

    Args:
        issue: Free-text description of this week's trending issue
        context: Optional descriptive fields (grade, case count, trend, category)

    Returns:
        Prompt instructing the model to reply with a single JSON object.
    """
    return WEEKLY_PRESCRIPTION.format(issue=issue, context_info=format_context(context))
