"""Unit tests for insurai.ingestion.prompt_builder."""
from __future__ import annotations

from insurai.ingestion.prompt_builder import (
    CLOSING_INSTRUCTION,
    PLAN_EXTRACTION_PROMPT,
    STRUCTURED_FEATURE_KEYS,
    TABLE_EXCERPT_LIMIT,
    TRUNCATION_MARKER,
    build_extraction_prompt,
    combine_documents,
)
from insurai.ingestion.schemas import SheetTable


def test_combine_documents_prefixes_each_file_header() -> None:
    combined = combine_documents([("a.pdf", "alpha"), ("b.xlsx", "beta")])

    assert combined == "\n\n=== FILE: a.pdf ===\n\nalpha\n\n=== FILE: b.xlsx ===\n\nbeta"


def test_prompt_layout_without_tables() -> None:
    prompt = build_extraction_prompt("Plan text here", filename="Combined_1_files")

    assert prompt.startswith(PLAN_EXTRACTION_PROMPT)
    assert "Filename: Combined_1_files" in prompt
    assert "-- TABLES (CSV) INCLUDED BELOW --" not in prompt
    assert prompt.endswith(f"Document Content:\nPlan text here\n\n{CLOSING_INSTRUCTION}")


def test_tables_are_listed_before_document_content() -> None:
    tables = [
        SheetTable(sheet_name="Rates", csv="Age,Premium\n18-25,1200\n"),
        SheetTable(sheet_name="Network", csv="Hospital\nMediclinic\n"),
    ]

    prompt = build_extraction_prompt("body", tables)

    start = prompt.index("-- TABLES (CSV) INCLUDED BELOW --")
    end = prompt.index("-- END TABLES --")
    block = prompt[start:end]
    assert "[Sheet: Rates]\nAge,Premium\n18-25,1200" in block
    assert block.index("[Sheet: Rates]") < block.index("[Sheet: Network]")
    assert end < prompt.index("Document Content:")


def test_long_table_is_truncated_with_marker() -> None:
    csv = "x" * (TABLE_EXCERPT_LIMIT + 500)

    prompt = build_extraction_prompt("body", [SheetTable(sheet_name="Big", csv=csv)])

    assert ("x" * TABLE_EXCERPT_LIMIT + TRUNCATION_MARKER) in prompt
    assert "x" * (TABLE_EXCERPT_LIMIT + 1) not in prompt


def test_instruction_names_every_structured_feature_key() -> None:
    assert len(STRUCTURED_FEATURE_KEYS) == 23
    for key in STRUCTURED_FEATURE_KEYS:
        assert f'"{key}"' in PLAN_EXTRACTION_PROMPT
