"""
extractor.py — Document → text (+ CSV tables) extraction engine.

Pure function module — no FastAPI dependencies.
Entry point: extract_document(file_path, mime_type) -> ExtractionResult

Format dispatch (MIME first, then extension):
  PDF          → pdfplumber page text, no tables
  Word         → python-docx paragraphs (+ table rows " | " joined), no tables
  Excel / CSV  → pandas (CSV rows read with csv, padded to the widest row):
                 every sheet rendered twice — pipe-delimited rows into
                 the plain text, and an independent CSV kept as a SheetTable

Synchronous and blocking — the coordinator runs it via asyncio.to_thread().
The source file is only ever opened for reading.
"""
from __future__ import annotations

import csv
import logging
from pathlib import Path

import pandas as pd
import pdfplumber
from docx import Document

from insurai.errors import ExtractionError, UnsupportedFileType
from insurai.ingestion.schemas import ExtractionResult, SheetTable

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = {".pdf"}
WORD_EXTENSIONS = {".doc", ".docx"}
SPREADSHEET_EXTENSIONS = {".xls", ".xlsx", ".csv"}
SUPPORTED_EXTENSIONS = PDF_EXTENSIONS | WORD_EXTENSIONS | SPREADSHEET_EXTENSIONS


# ---------------------------------------------------------------------------
# Per-format extractors
# ---------------------------------------------------------------------------

def _extract_text_pdf(file_path: str) -> str:
    """Concatenate the text of every page; image-only pages contribute nothing."""
    parts: list[str] = []
    with pdfplumber.open(file_path) as pdf:
        for page in pdf.pages:
            text = page.extract_text(x_tolerance=3, y_tolerance=3)
            if text:
                parts.append(text)
    return "\n".join(parts)


def _extract_text_word(file_path: str) -> str:
    doc = Document(file_path)
    lines = [p.text for p in doc.paragraphs if p.text and p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            row_text = " | ".join(value for value in cells if value)
            if row_text:
                lines.append(row_text)
    return "\n".join(lines)


def _read_csv(file_path: str) -> pd.DataFrame:
    """
    Rate sheets often carry a title row above the table, so rows differ in
    width; short rows are padded with empty cells to the widest row.
    """
    with open(file_path, newline="", encoding="utf-8-sig") as fh:
        rows = [row for row in csv.reader(fh) if row]
    return pd.DataFrame(rows, dtype=object).fillna("")


def _read_sheets(file_path: str) -> dict[str, pd.DataFrame]:
    """Load every sheet as an all-string frame with no header inference."""
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return {Path(file_path).stem: _read_csv(file_path)}
    engine = "xlrd" if suffix == ".xls" else "openpyxl"
    return pd.read_excel(
        file_path,
        sheet_name=None,
        header=None,
        dtype=str,
        keep_default_na=False,
        engine=engine,
    )


def _rows_as_text(frame: pd.DataFrame) -> str:
    lines = []
    for row in frame.itertuples(index=False, name=None):
        lines.append(" | ".join("" if cell is None else str(cell) for cell in row))
    return "\n".join(lines) + ("\n" if lines else "")


def _extract_spreadsheet(file_path: str) -> ExtractionResult:
    text = ""
    tables: list[SheetTable] = []
    for sheet_name, frame in _read_sheets(file_path).items():
        text += _rows_as_text(frame)
        try:
            csv_text = frame.to_csv(index=False, header=False)
        except (ValueError, TypeError, UnicodeError) as exc:
            logger.warning("CSV conversion failed for sheet=%s: %s", sheet_name, exc)
            continue
        tables.append(SheetTable(sheet_name=str(sheet_name), csv=csv_text))
    return ExtractionResult(text=text, tables=tables)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def detect_kind(file_path: str, mime_type: str = "") -> str:
    """
    Return "pdf", "word" or "spreadsheet" for a file, or raise UnsupportedFileType.
    """
    mime = (mime_type or "").lower()
    ext = Path(file_path).suffix.lower()

    if "pdf" in mime or ext in PDF_EXTENSIONS:
        return "pdf"
    if "word" in mime or ext in WORD_EXTENSIONS:
        return "word"
    if any(k in mime for k in ("spreadsheet", "excel", "csv")) or ext in SPREADSHEET_EXTENSIONS:
        return "spreadsheet"
    raise UnsupportedFileType(f"Unsupported file type: {ext or mime or 'unknown'}")


def extract_document(file_path: str, mime_type: str = "") -> ExtractionResult:
    """
    Extract plain text (and, for spreadsheets, CSV tables) from one file.

    Raises:
        UnsupportedFileType: extension and MIME type both outside the supported set.
        ExtractionError: the file is a supported type but could not be read.
    """
    kind = detect_kind(file_path, mime_type)
    name = Path(file_path).name

    try:
        if kind == "pdf":
            result = ExtractionResult(text=_extract_text_pdf(file_path))
        elif kind == "word":
            result = ExtractionResult(text=_extract_text_word(file_path))
        else:
            result = _extract_spreadsheet(file_path)
    except Exception as exc:
        # pdfminer / zipfile / xlrd raise a zoo of unrelated types for corrupt input
        logger.warning("Extraction failed kind=%s file=%s: %s", kind, name, exc)
        raise ExtractionError(f"Could not read {kind} document '{name}': {exc}") from exc

    logger.debug(
        "extract_document: kind=%s chars=%d tables=%d file=%s",
        kind, len(result.text), len(result.tables), name,
    )
    return result
