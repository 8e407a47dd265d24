"""
Turning model replies into verdicts.

Models asked for JSON still like to wrap it in a markdown code fence, so
the extractor strips an optional fence before parsing. Anything that does
not parse, or parses into something without all three verdict fields,
yields None. Callers decide how to report that; this module never raises
for bad input.
"""

import json
import logging
import re
from typing import Any, Optional

from .models import Verdict

logger = logging.getLogger(__name__)

# Whole-string fence with an optional language tag, e.g. ```json ... ```
FENCE_PATTERN = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """
    Return the body of a fenced block, or the trimmed text unchanged.

    Only a fence wrapping the entire text counts. A fence buried in the
    middle of prose is left alone.
    """
    stripped = text.strip()
    match = FENCE_PATTERN.match(stripped)
    if match and match.group(2):
        return match.group(2).strip()
    return stripped


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_number(value: Any) -> bool:
    # bool is an int subclass but JSON true/false are not numbers
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_verdict(raw_text: str) -> Optional[Verdict]:
    """Parse a model reply into a Verdict, or return None."""
    if not isinstance(raw_text, str):
        return None

    body = strip_code_fence(raw_text)

    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(
            "Model reply is not valid JSON",
            extra={"error": str(e), "raw_length": len(raw_text)},
        )
        logger.debug("Raw model reply: %s", raw_text)
        return None

    if not isinstance(parsed, dict):
        logger.warning("Model reply is not a JSON object", extra={"type": type(parsed).__name__})
        return None

    determination = parsed.get("determination")
    confidence = parsed.get("confidence")
    rationale = parsed.get("rationale")

    if not _is_text(determination) or not _is_number(confidence) or not _is_text(rationale):
        logger.warning(
            "Model reply is missing verdict fields",
            extra={"keys": sorted(parsed.keys())},
        )
        return None

    return Verdict(
        determination=determination,
        confidence=confidence,
        rationale=rationale,
    )


class ResponseExtractor:
    """
    Object wrapper around extract_verdict.

    Handy where a collaborator wants something injectable; the function
    is the real implementation.
    """

    def extract(self, raw_text: str) -> Optional[Verdict]:
        return extract_verdict(raw_text)
