"""
prompt_builder.py — Plan extraction prompt assembly.

Components:
  STRUCTURED_FEATURE_KEYS   — the fixed 23-key comparison map, in schema order
  PLAN_EXTRACTION_PROMPT    — instruction block enumerating the exact JSON schema
  combine_documents()       — "=== FILE: name ===" delimited concatenation
  build_extraction_prompt() — instructions + CSV table excerpts + document text

The whole document is sent in one request regardless of length; there is no
chunking. Only table excerpts are capped (TABLE_EXCERPT_LIMIT characters each).
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from insurai.ingestion.schemas import SheetTable

TABLE_EXCERPT_LIMIT = 2000
TRUNCATION_MARKER = "\n... (truncated)"

STRUCTURED_FEATURE_KEYS: tuple[str, ...] = (
    "network_hospitals_count",
    "network_type",
    "uae_coverage",
    "gcc_coverage",
    "international_coverage",
    "outpatient_coverage",
    "inpatient_coverage",
    "dental_coverage",
    "optical_coverage",
    "maternity_coverage",
    "pre_existing_conditions",
    "pharmacy_coverage",
    "emergency_coverage",
    "ambulance_service",
    "preventive_care",
    "chronic_conditions_covered",
    "mental_health_coverage",
    "physiotherapy_coverage",
    "alternative_medicine",
    "waiting_period_days",
    "copay_percentage",
    "room_type",
    "cashless_claims",
)


PLAN_EXTRACTION_PROMPT = """You are an expert insurance document analyzer. Your task is to extract structured insurance plan information from the provided document.

Extract the following information:
1. Provider/Company name (look for company logos, headers, footers, or mentions in the document. If not found, set to null)
2. Plan name (if not explicitly stated, create a descriptive name based on coverage type and features)
3. Plan type (Health, Auto, Life, Property, Travel) - default to Health if unclear
4. Monthly cost (if available)
5. Annual cost (if available)
6. Deductible amount
7. Maximum coverage amount (look for "aggregate limit", "annual limit", "max coverage")
8. Coverage type (Individual, Family, etc.)
9. Key features (as an array of strings) - include hospitals, benefits, perks, network coverage
10. Eligibility criteria
11. Exclusions
12. Benefits table (if present in the document)
13. Age-based pricing (if present in tables or CSV data)

STRUCTURED FEATURE EXTRACTION (CRITICAL):
Extract these specific features for comparison purposes:
- network_hospitals_count: Number of hospitals in network (integer or null)
- network_type: Type of network (e.g., "Network", "PPO", "HMO", "Direct Billing", "Reimbursement") or null
- uae_coverage: Does the plan cover all UAE emirates? (true/false/null)
- gcc_coverage: Does the plan cover GCC countries? (true/false/null)
- international_coverage: Does the plan have international coverage? (true/false/null)
- outpatient_coverage: Is outpatient covered? (true/false/null)
- inpatient_coverage: Is inpatient covered? (true/false/null)
- dental_coverage: Is dental covered? (true/false/null)
- optical_coverage: Is optical/vision covered? (true/false/null)
- maternity_coverage: Is maternity covered? (true/false/null)
- pre_existing_conditions: Are pre-existing conditions covered? (true/false/null)
- pharmacy_coverage: Is pharmacy/medication covered? (true/false/null)
- emergency_coverage: Are emergency services covered? (true/false/null)
- ambulance_service: Is ambulance service included? (true/false/null)
- preventive_care: Is preventive/wellness care included? (true/false/null)
- chronic_conditions_covered: Are chronic conditions covered? (true/false/null)
- mental_health_coverage: Is mental health covered? (true/false/null)
- physiotherapy_coverage: Is physiotherapy covered? (true/false/null)
- alternative_medicine: Is alternative medicine covered? (true/false/null)
- waiting_period_days: Waiting period in days (integer or null)
- copay_percentage: Co-payment percentage (integer 0-100 or null)
- room_type: Type of room covered (e.g., "Private", "Semi-Private", "Shared", "Ward") or null
- cashless_claims: Does the plan support cashless claims? (true/false/null)

CRITICAL INSTRUCTIONS FOR TABLES:
- If you see a benefits table, extract ALL rows and present them clearly in the features array
- For age-based pricing tables, extract EVERY age band with its corresponding premium, in document order
- Include table headers and all data rows
- If tables are in CSV format (provided separately), parse them completely
- Look for hospital network lists and count them

CRITICAL: Return ONLY valid JSON with NO markdown formatting, NO code blocks, NO explanations.

Return the data in EXACTLY this JSON format:
{
  "provider_name": "string or null",
  "plans": [
    {
      "plan_name": "string",
      "plan_type": "Health",
      "monthly_cost": number or null,
      "annual_cost": number or null,
      "deductible": number or null,
      "max_coverage": number or null,
      "coverage_type": "string or null",
      "features": ["feature1", "feature2", "feature3"],
      "eligibility_criteria": "string or null",
      "exclusions": "string or null",
      "benefits_table": "string or null",
      "age_based_pricing": [
        {"age_range": "0-17", "premium": 320},
        {"age_range": "18-45", "premium": 320}
      ],
      "structured_features": {
        "network_hospitals_count": number or null,
        "network_type": "string or null",
        "uae_coverage": boolean or null,
        "gcc_coverage": boolean or null,
        "international_coverage": boolean or null,
        "outpatient_coverage": boolean or null,
        "inpatient_coverage": boolean or null,
        "dental_coverage": boolean or null,
        "optical_coverage": boolean or null,
        "maternity_coverage": boolean or null,
        "pre_existing_conditions": boolean or null,
        "pharmacy_coverage": boolean or null,
        "emergency_coverage": boolean or null,
        "ambulance_service": boolean or null,
        "preventive_care": boolean or null,
        "chronic_conditions_covered": boolean or null,
        "mental_health_coverage": boolean or null,
        "physiotherapy_coverage": boolean or null,
        "alternative_medicine": boolean or null,
        "waiting_period_days": number or null,
        "copay_percentage": number or null,
        "room_type": "string or null",
        "cashless_claims": boolean or null
      }
    }
  ]
}

Important:
- If information is not available, use null
- Extract all monetary values as numbers (without currency symbols, commas, or text like "AED")
- For premium tables with multiple age bands, include BOTH the base premium in annual_cost AND the complete age_based_pricing array
- For benefits tables, create detailed feature entries like "Benefit: [name] - Coverage: [amount] - Copay: [amount]"
- If multiple distinct plans are in the document, include all of them in the plans array
- Return ONLY the JSON object, nothing else
"""

CLOSING_INSTRUCTION = "Extract the insurance plan data and return ONLY valid JSON, no markdown formatting:"


def file_header(filename: str) -> str:
    """Delimiter placed before each file's text in a combined batch."""
    return f"=== FILE: {filename} ==="


def combine_documents(documents: Iterable[tuple[str, str]]) -> str:
    """Concatenate (filename, text) pairs, each prefixed with its file header."""
    return "".join(f"\n\n{file_header(name)}\n\n{text}" for name, text in documents)


def _table_excerpt(csv_text: str) -> str:
    if len(csv_text) <= TABLE_EXCERPT_LIMIT:
        return csv_text
    return csv_text[:TABLE_EXCERPT_LIMIT] + TRUNCATION_MARKER


def build_extraction_prompt(
    document_text: str,
    tables: Optional[list["SheetTable"]] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Build the single completion request for a batch.

    Layout: instruction block, optional Filename line, optional CSV table
    excerpts (one [Sheet: name] block each), then the full document text.
    """
    metadata = ""
    if filename:
        metadata += f"Filename: {filename}\n"
    if tables:
        metadata += "\n-- TABLES (CSV) INCLUDED BELOW --\n"
        for table in tables:
            metadata += f"\n[Sheet: {table.sheet_name}]\n"
            metadata += _table_excerpt(table.csv or "") + "\n"
        metadata += "\n-- END TABLES --\n\n"

    return (
        f"{PLAN_EXTRACTION_PROMPT}\n\n{metadata}"
        f"Document Content:\n{document_text}\n\n{CLOSING_INSTRUCTION}"
    )
