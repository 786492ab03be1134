"""
Document builders for tests — every fixture file is generated on the fly.

  make_pdf   reportlab canvas, one text line per entry
  make_docx  python-docx paragraphs plus an optional table
  make_xlsx  openpyxl workbook, one sheet per dict entry

Also: fake_mistral (scripted SDK stand-in) and seed_plans (direct inserts).
"""
from __future__ import annotations

import io
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

from docx import Document
from openpyxl import Workbook
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from insurai.models.plan import PlanORM
from insurai.models.provider import ProviderORM

CORRUPT_PDF = b"%PDF-1.4\nthis is not really a pdf\n"

RATE_SHEET = [
    ["Age Band", "Annual Premium"],
    ["18-25", "1200"],
    ["26-35", "1500"],
    ["36-45", "2100"],
]


def make_pdf(lines: list[str]) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    y = 800
    for line in lines:
        pdf.drawString(72, y, line)
        y -= 18
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def make_docx(paragraphs: list[str], table: Optional[list[list[str]]] = None) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table:
        grid = doc.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def make_xlsx(sheets: dict[str, list[list[str]]]) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(title=name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def fake_mistral(*texts: str) -> MagicMock:
    """
    Stand-in for mistralai.Mistral: chat.complete_async returns each text in
    turn (the last one repeats).
    """
    responses = []
    for text in texts:
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = text
        responses.append(response)

    client = MagicMock()
    if len(responses) == 1:
        client.chat.complete_async = AsyncMock(return_value=responses[0])
    else:
        client.chat.complete_async = AsyncMock(side_effect=responses)
    return client


async def seed_plans(database, state_id: int, plans: list[dict], provider: str = "Daman") -> list[int]:
    """
    Insert plans directly, bypassing ingestion. Each dict overrides the
    defaults; all plans share one provider named "{provider}-{state_id}".
    """
    async with database.session() as session:
        row = ProviderORM(name=f"{provider}-{state_id}")
        session.add(row)
        await session.flush()
        created = []
        for overrides in plans:
            values = {
                "plan_name": "Plan",
                "plan_type": "Health",
                "features": [],
                "structured_features": {},
                "is_active": True,
            }
            values.update(overrides)
            created.append(PlanORM(provider_id=row.id, state_id=state_id, **values))
        session.add_all(created)
        await session.commit()
        return [p.id for p in created]
