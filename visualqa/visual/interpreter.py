"""Response interpreter: turns a model's free-text reply into a verdict.

The model is not guaranteed to follow the JSON-only instruction, so this
module applies a fixed sequence of best-effort clean-ups and never raises:
every failure comes back as ``Interpretation(passed=False, ok=False)`` with
a diagnostic reason.
"""

from __future__ import annotations

import json
import logging
import re

from visualqa.models.visual_result import Interpretation

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
# "passed": true "reason": ...  (comma missing between the two fields)
_MISSING_COMMA_RE = re.compile(r'("passed"\s*:\s*(?:true|false))(\s*"reason"\s*:)')


def _excerpt(text: str, limit: int) -> str:
    return f"{text[:limit]}..."


def extract_json_object(text: str) -> str | None:
    """Strip fences and return the text between the first '{' and last '}'."""
    cleaned = _FENCE_RE.sub("", text).strip()
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace == -1 or last_brace == -1 or last_brace < first_brace:
        return None
    return cleaned[first_brace:last_brace + 1]


def repair_json(candidate: str) -> str:
    """Flatten line breaks and insert the comma models often drop after "passed"."""
    candidate = candidate.replace("\n", " ").replace("\r", " ")
    return _MISSING_COMMA_RE.sub(r"\1,\2", candidate)


def interpret_verdict_response(response_text: str) -> Interpretation:
    """Extract ``{"passed": bool, "reason": str}`` from a model reply."""
    candidate = extract_json_object(response_text)
    if candidate is None:
        logger.error("No JSON object found in AI response: %s", response_text[:200])
        return Interpretation.failure(
            "No JSON object found in AI response "
            f"(Original: {_excerpt(response_text, 100)})"
        )

    candidate = repair_json(candidate)
    logger.debug("Attempting to parse JSON: %s", candidate)

    try:
        parsed = json.loads(candidate)
    except (ValueError, RecursionError) as e:
        logger.error("Failed to parse AI response as JSON: %s", e)
        logger.error("Original response text that failed parsing: %s", response_text)
        return Interpretation.failure(
            f"AI response could not be parsed as valid JSON: {e} "
            f"(Original: {_excerpt(response_text, 100)})"
        )

    if (
        not isinstance(parsed, dict)
        or not isinstance(parsed.get("passed"), bool)
        or not isinstance(parsed.get("reason"), str)
    ):
        logger.warning("Parsed JSON response lacked expected 'passed' or 'reason' fields: %s", parsed)
        return Interpretation.failure(
            "AI response was valid JSON but is missing the expected fields "
            f"'passed' (boolean) and 'reason' (string): {_excerpt(response_text, 200)}"
        )

    logger.info("Parsed AI verdict: passed=%s, reason=%r", parsed["passed"], parsed["reason"][:50])
    return Interpretation(passed=parsed["passed"], reason=parsed["reason"])
