"""Request validation shared by the weekly and category prescription paths."""

from config import MAX_ISSUE_LENGTH


class ValidationError(Exception):
    """Caller input is missing or invalid. Nothing has been done yet."""


def validate_issue(issue, max_length: int = MAX_ISSUE_LENGTH) -> str:
    """Return the stripped issue text or raise ValidationError."""
    if not isinstance(issue, str) or not issue.strip():
        raise ValidationError("Issue description is required")
    issue = issue.strip()
    if len(issue) > max_length:
        raise ValidationError(
            f"Issue description is too long (max {max_length} characters)"
        )
    return issue


def validate_context(context) -> dict:
    """None → {}; anything other than a mapping is rejected."""
    if context is None:
        return {}
    if not isinstance(context, dict):
        raise ValidationError("Context must be an object")
    return context
