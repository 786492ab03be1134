"""
response_parser.py — LLM completion → validated PlanExtraction.

parse_extraction_response() never raises for bad LLM output; it returns a
tagged result:

  ParseSuccess(extraction)           — JSON found, parsed, plans present
  ParseFailure(kind, message, ...)   — one of ParseFailureKind

Algorithm:
  a. strip ```json / ``` fence markers
  b. greedy brace match (first "{" to last "}")      → NO_JSON_FOUND
  c. json.loads                                       → INVALID_JSON
  d. "plans" must be a non-empty list                 → EMPTY_OR_MISSING_PLANS
  e. each plan validated/repaired as ExtractedPlan    → SCHEMA_MISMATCH
  f. null/absent provider_name → "Unknown Provider" (not a failure)
"""
from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from insurai.errors import AIExtractionError
from insurai.ingestion.schemas import (
    PROVIDER_NAME_MAX,
    ExtractedPlan,
    PlanExtraction,
    clip_text,
)

logger = logging.getLogger(__name__)

UNKNOWN_PROVIDER = "Unknown Provider"
SNIPPET_LENGTH = 200

_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE_ANY = re.compile(r"```\s*")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ParseFailureKind(str, Enum):
    no_json_found = "no_json_found"
    invalid_json = "invalid_json"
    empty_or_missing_plans = "empty_or_missing_plans"
    schema_mismatch = "schema_mismatch"


class ParseSuccess(BaseModel):
    ok: bool = True
    extraction: PlanExtraction


class ParseFailure(BaseModel):
    ok: bool = False
    kind: ParseFailureKind
    message: str
    snippet: str = ""

    def to_error(self, results: Optional[dict] = None) -> AIExtractionError:
        """Convert to the exception the coordinator raises for the whole request."""
        details = [{"kind": self.kind.value, "issue": self.message}]
        if self.snippet:
            details.append({"kind": "snippet", "issue": self.snippet})
        return AIExtractionError(
            f"Failed to extract plan data from document: {self.message}",
            kind=self.kind.value,
            details=details,
            results=results,
        )


ParseResult = Union[ParseSuccess, ParseFailure]


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers, keeping the fenced content."""
    return _FENCE_ANY.sub("", _FENCE_OPEN.sub("", text))


def parse_extraction_response(raw_text: str) -> ParseResult:
    """Turn a raw completion into a ParseSuccess or a named ParseFailure."""
    text = strip_code_fences(raw_text or "")

    match = _JSON_OBJECT.search(text)
    if match is None:
        logger.warning("No JSON object in LLM response (len=%d)", len(text))
        return ParseFailure(
            kind=ParseFailureKind.no_json_found,
            message="Failed to extract valid JSON from AI response",
            snippet=text[:SNIPPET_LENGTH],
        )

    candidate = match.group(0)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("LLM response JSON parse error: %s", exc)
        return ParseFailure(
            kind=ParseFailureKind.invalid_json,
            message=f"Failed to parse JSON from AI response: {exc}",
            snippet=candidate[:SNIPPET_LENGTH],
        )

    raw_plans = data.get("plans") if isinstance(data, dict) else None
    if not isinstance(raw_plans, list) or not raw_plans:
        return ParseFailure(
            kind=ParseFailureKind.empty_or_missing_plans,
            message=(
                "No plans found in document"
                if isinstance(raw_plans, list)
                else "Invalid plan data structure - missing plans array"
            ),
            snippet=candidate[:SNIPPET_LENGTH],
        )

    try:
        plans = [ExtractedPlan.model_validate(plan) for plan in raw_plans]
    except ValidationError as exc:
        return ParseFailure(
            kind=ParseFailureKind.schema_mismatch,
            message=f"Plan entries do not match the expected schema: {exc.error_count()} error(s)",
            snippet=candidate[:SNIPPET_LENGTH],
        )

    provider_name = data.get("provider_name")
    fallback_used = not isinstance(provider_name, str) or not provider_name.strip()
    if fallback_used:
        logger.warning("Provider name not found in document, using %r", UNKNOWN_PROVIDER)
        provider_name = UNKNOWN_PROVIDER

    extraction = PlanExtraction(
        provider_name=provider_name.strip(),
        plans=plans,
        provider_fallback_used=fallback_used,
    )
    logger.info(
        "Parsed %d plan(s) for provider=%s fallback=%s",
        len(plans), extraction.provider_name, fallback_used,
    )
    return ParseSuccess(extraction=extraction)


def apply_provider_override(
    extraction: PlanExtraction,
    manual_provider_name: Optional[str],
) -> PlanExtraction:
    """
    Replace the provider with an admin-supplied name only when the parser had
    to fall back to "Unknown Provider". An LLM-identified name always wins.
    """
    name = clip_text((manual_provider_name or "").strip(), PROVIDER_NAME_MAX)
    if not name or not extraction.provider_fallback_used:
        return extraction
    logger.info("Using manual provider name override")
    return extraction.model_copy(update={"provider_name": name, "provider_fallback_used": False})
