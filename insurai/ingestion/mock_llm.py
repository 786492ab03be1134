"""
mock_llm.py — Deterministic stand-in for the plan extraction LLM call.

Used when settings.mock_llm is true (tests, demos without an API key).
Output is JSON *text*, exactly like a real completion, so it still goes
through response_parser — the mock replaces the remote call, not the
validation.

Seed inputs:
  - provider: first "=== FILE: name ===" header, name split on . _ - (first part)
  - max_coverage: "max coverage: 1,000,000" style pattern in the text
  - age bands: rows of the first CSV table (header row skipped)
Same input → byte-identical output.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from insurai.ingestion.schemas import SheetTable, coerce_number

MOCK_PROVIDER = "Mock Provider"

_FILE_HEADER = re.compile(r"=== FILE: (.+?) ===")
_MAX_COVERAGE = re.compile(r"max\s*coverage\s*[:\-]?\s*([0-9,]+)", re.IGNORECASE)
_NAME_SPLIT = re.compile(r"[._-]")


def _provider_from_text(document_text: str) -> str:
    match = _FILE_HEADER.search(document_text or "")
    if match is None:
        return MOCK_PROVIDER
    first = _NAME_SPLIT.split(match.group(1).strip())[0].strip()
    return first or MOCK_PROVIDER


def _max_coverage(document_text: str) -> Optional[int]:
    match = _MAX_COVERAGE.search(document_text or "")
    if match is None:
        return None
    digits = match.group(1).replace(",", "")
    return int(digits) if digits else None


def _age_bands(tables: list[SheetTable]) -> list[dict[str, Any]]:
    rows = [line.split(",") for line in tables[0].csv.splitlines() if line.strip()]
    bands = []
    for row in rows[1:]:
        if len(row) < 2 or not row[0].strip():
            continue
        bands.append({"age_range": row[0].strip(), "premium": coerce_number(row[1])})
    return bands


def mock_plan_extraction(
    document_text: str,
    tables: Optional[list[SheetTable]] = None,
) -> str:
    """Return the JSON completion a real model would have produced for this batch."""
    provider = _provider_from_text(document_text)
    features: list[str] = []
    age_based_pricing = None

    if tables:
        bands = _age_bands(tables)
        if bands:
            age_based_pricing = bands
            lines = [f"{b['age_range']}: {b['premium'] if b['premium'] is not None else ''}" for b in bands]
            features.append("Age-based pricing: " + " | ".join(lines))
        else:
            features.append("Age-based pricing available in attached table")

    plan = {
        "plan_name": f"Mock Plan from {provider}",
        "plan_type": "Health",
        "monthly_cost": None,
        "annual_cost": None,
        "deductible": None,
        "max_coverage": _max_coverage(document_text),
        "coverage_type": "Family",
        "features": features or ["Standard benefits as listed in document"],
        "eligibility_criteria": None,
        "exclusions": None,
        "benefits_table": None,
        "age_based_pricing": age_based_pricing,
        "structured_features": {},
    }
    return json.dumps({"provider_name": provider, "plans": [plan]})
