"""
coordinator.py — One upload batch, end to end.

    Accepted → Extracting → Summarizing → Parsing → Persisting → CleaningUp → Done
                                                                           ↘ Failed

  Accepted     at least one file and a known state id
  Extracting   every file saved under a UUID temp name, extracted in a worker
               thread; a per-file failure is recorded and the batch continues
  Summarizing  ONE LLM call for the whole batch (mock mode: mock_llm)
  Parsing      response_parser → ParseSuccess / ParseFailure
  Persisting   one transaction: provider upsert, delete (provider, state),
               insert every plan, commit
  CleaningUp   temp files removed on every exit path

No HTTP concerns here — the admin route turns uploads into UploadedDocument
objects and AppError subclasses into responses.
"""
import asyncio
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from insurai.database import Database
from insurai.errors import (
    AllExtractionsFailedError,
    AppError,
    BadRequestError,
    InvalidStateError,
    LLMRequestFailed,
    PersistenceError,
)
from insurai.ingestion.extractor import extract_document
from insurai.ingestion.mock_llm import mock_plan_extraction
from insurai.ingestion.prompt_builder import build_extraction_prompt, combine_documents
from insurai.ingestion.response_parser import (
    ParseFailure,
    apply_provider_override,
    parse_extraction_response,
)
from insurai.ingestion.schemas import (
    FileOutcome,
    IngestionResults,
    IngestionSummary,
    PlanExtraction,
    SheetTable,
    UploadedDocument,
)
from insurai.llm_client import LLMClient
from insurai.store import get_or_create_provider, get_state, replace_plans

logger = logging.getLogger(__name__)

TEMP_PREFIX = "insurai_"


class IngestionCoordinator:
    """Runs one ingestion request. Stateless between calls — safe to share."""

    def __init__(
        self,
        db: Database,
        llm: LLMClient,
        transaction_warn_seconds: float = 5.0,
    ) -> None:
        self.db = db
        self.llm = llm
        self.transaction_warn_seconds = transaction_warn_seconds

    async def ingest(
        self,
        uploads: list[UploadedDocument],
        state_id: Optional[int],
        provider_name: Optional[str] = None,
    ) -> IngestionSummary:
        """
        Turn a batch of uploaded documents into the replacement plan set for
        (provider, state).

        Raises:
            BadRequestError / InvalidStateError: request rejected before any work.
            AllExtractionsFailedError: no file yielded text.
            AIExtractionError / LLMRequestFailed: LLM call or its output failed.
            PersistenceError: the transaction failed and was rolled back.
        """
        # --- Accepted ---
        if not uploads:
            raise BadRequestError("No files uploaded")
        if state_id is None:
            raise BadRequestError("State ID is required")

        async with self.db.session() as session:
            state = await get_state(session, state_id)
        if state is None:
            raise InvalidStateError("Invalid state ID")
        state_name = state.state_name

        logger.info(
            "Ingestion accepted files=%d state_id=%s", len(uploads), state_id
        )
        results = IngestionResults(total_files=len(uploads))
        temp_paths: list[str] = []

        try:
            # --- Extracting ---
            logger.info("Ingestion extracting files=%d", len(uploads))
            texts, tables, sources = await self._extract_all(uploads, results, temp_paths)
            if not texts:
                logger.warning("Ingestion failed: no file could be extracted")
                raise AllExtractionsFailedError(
                    "Failed to extract text from all files",
                    results=results.model_dump(),
                )

            # --- Summarizing ---
            combined = combine_documents(texts)
            logger.info(
                "Ingestion summarizing chars=%d tables=%d", len(combined), len(tables)
            )
            raw = await self._summarize(combined, tables, len(uploads), results)

            # --- Parsing ---
            logger.info("Ingestion parsing response len=%d", len(raw))
            parsed = parse_extraction_response(raw)
            if isinstance(parsed, ParseFailure):
                logger.warning("Ingestion failed: parse error kind=%s", parsed.kind.value)
                raise parsed.to_error(results=results.model_dump())
            extraction = apply_provider_override(parsed.extraction, provider_name)

            # --- Persisting ---
            logger.info(
                "Ingestion persisting plans=%d state_id=%s",
                len(extraction.plans), state_id,
            )
            await self._persist(extraction, state_id, sources, results)
        finally:
            # --- CleaningUp ---
            self._cleanup(temp_paths)

        replaced = results.deleted > 0
        message = (
            f"Processed {results.total_files} file(s): "
            f"{results.successful} successful, {results.failed} failed. "
        )
        if replaced:
            message += (
                f"Replaced existing plans with {results.total_plans_added} "
                "new plan(s) from uploaded documents."
            )
        else:
            message += f"Created {results.total_plans_added} new plan(s)."

        logger.info(
            "Ingestion done plans=%d deleted=%d failed_files=%d",
            results.total_plans_added, results.deleted, results.failed,
        )
        return IngestionSummary(
            message=message.strip(),
            state=state_name,
            total_plans=results.total_plans_added,
            results=results,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _extract_all(
        self,
        uploads: list[UploadedDocument],
        results: IngestionResults,
        temp_paths: list[str],
    ) -> tuple[list[tuple[str, str]], list[SheetTable], list[str]]:
        texts: list[tuple[str, str]] = []
        tables: list[SheetTable] = []
        sources: list[str] = []

        for index, upload in enumerate(uploads, start=1):
            temp_path = os.path.join(
                tempfile.gettempdir(),
                f"{TEMP_PREFIX}{uuid.uuid4().hex}{Path(upload.filename).suffix.lower()}",
            )
            temp_paths.append(temp_path)
            try:
                with open(temp_path, "wb") as fh:
                    fh.write(upload.content)
                extracted = await asyncio.to_thread(
                    extract_document, temp_path, upload.mime_type
                )
            except (AppError, OSError) as exc:
                message = exc.message if isinstance(exc, AppError) else str(exc)
                logger.warning(
                    "[%d/%d] extraction failed file=%s: %s",
                    index, len(uploads), upload.filename, message,
                )
                results.failed += 1
                results.details.append(
                    FileOutcome(
                        file=upload.filename,
                        status="failed",
                        error=f"Text extraction failed: {message}",
                    ).model_dump()
                )
                continue

            logger.info(
                "[%d/%d] extracted file=%s chars=%d tables=%d",
                index, len(uploads), upload.filename,
                len(extracted.text), len(extracted.tables),
            )
            texts.append((upload.filename, extracted.text))
            temp_stem = Path(temp_path).stem
            for table in extracted.tables:
                # CSV uploads are keyed by file stem, which is the temp name here
                sheet_name = (
                    Path(upload.filename).stem if table.sheet_name == temp_stem else table.sheet_name
                )
                tables.append(
                    table.model_copy(update={"sheet_name": sheet_name, "source_file": upload.filename})
                )
            sources.append(upload.filename)
            results.successful += 1

        return texts, tables, sources

    async def _summarize(
        self,
        combined: str,
        tables: list[SheetTable],
        file_count: int,
        results: IngestionResults,
    ) -> str:
        if self.llm.mock:
            logger.info("Mock mode: deterministic plan extraction")
            return mock_plan_extraction(combined, tables)

        prompt = build_extraction_prompt(
            combined, tables, filename=f"Combined_{file_count}_files"
        )
        try:
            return await self.llm.complete(prompt)
        except LLMRequestFailed as exc:
            exc.results = results.model_dump()
            raise

    async def _persist(
        self,
        extraction: PlanExtraction,
        state_id: int,
        sources: list[str],
        results: IngestionResults,
    ) -> None:
        document_source = ", ".join(sources)
        loop = asyncio.get_running_loop()
        slow_warning = loop.call_later(
            self.transaction_warn_seconds,
            logger.warning,
            "Ingestion transaction open longer than %.1fs (state_id=%s)",
            self.transaction_warn_seconds,
            state_id,
        )
        try:
            async with self.db.session() as session:
                try:
                    provider, _ = await get_or_create_provider(session, extraction.provider_name)
                    deleted, rows = await replace_plans(
                        session, provider.id, state_id, extraction.plans, document_source
                    )
                    await session.commit()
                except Exception as exc:
                    await session.rollback()
                    logger.error("Ingestion failed: transaction rolled back: %s", exc)
                    raise PersistenceError(
                        f"Failed to save extracted plans: {exc}",
                        results=results.model_dump(),
                    ) from exc
        finally:
            slow_warning.cancel()

        results.deleted = deleted
        results.total_plans_added = len(rows)
        results.details.append(
            {
                "files": list(sources),
                "status": "success",
                "provider": extraction.provider_name,
                "plans_processed": len(rows),
                "plans": [
                    {
                        "id": row.id,
                        "plan_name": row.plan_name,
                        "plan_type": row.plan_type,
                        "monthly_cost": row.monthly_cost,
                        "updated": deleted > 0,
                    }
                    for row in rows
                ],
            }
        )

    @staticmethod
    def _cleanup(temp_paths: list[str]) -> None:
        for path in temp_paths:
            try:
                os.unlink(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not remove temp file %s: %s", path, exc)
