"""Validation of raw model text into an AuditResult"""

import logging
import re

from pydantic import ValidationError as PydanticValidationError

from invoice_auditor.models.audit import AuditResult
from invoice_auditor.services.errors import ResultParseError

logger = logging.getLogger(__name__)

# Whole-text fence, optional language tag: ```json\n{...}\n```
_FENCED = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")

DIFFERENCE_TOLERANCE = 0.01


def strip_code_fence(text: str) -> str:
    """Remove a single fenced code block wrapping the whole text, if any."""
    text = text.strip()
    match = _FENCED.match(text)
    if match:
        return match.group(1).strip()
    if text.startswith("```"):
        # Truncated output: opening fence without a closing one
        return _OPENING_FENCE.sub("", text, count=1).strip()
    return text


def parse_audit_result(text: str) -> AuditResult:
    """Parse model text into a validated AuditResult.

    Strict validation: required keys must be present, enums must use their
    declared values and numbers must be JSON numbers (or null where allowed).
    Raises ResultParseError on any failure.
    """
    body = strip_code_fence(text)
    if not body:
        raise ResultParseError(text, "empty response body")

    try:
        result = AuditResult.model_validate_json(body, strict=True)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_input=False)
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        reason = f"{e.error_count()} error(s), first at {location}: {first.get('msg', 'invalid')}"
        logger.warning(f"AI response rejected: {reason} (length={len(text)})")
        raise ResultParseError(text, reason) from e

    _check_total_difference(result)
    return result


def _check_total_difference(result: AuditResult) -> None:
    summary = result.summary
    expected = summary.total_invoiced - summary.total_contracted
    if abs(summary.total_difference - expected) > DIFFERENCE_TOLERANCE:
        logger.warning(
            f"Model total_difference {summary.total_difference} does not equal "
            f"total_invoiced - total_contracted ({expected:.2f}); keeping model value"
        )
