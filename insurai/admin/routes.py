"""
Admin HTTP routes — POST /api/admin/upload-plans, GET /api/admin/plans,
                    PUT /api/admin/plans/{plan_id}, DELETE /api/admin/plans/{plan_id},
                    GET /api/admin/stats

Every route requires role "admin". Upload size is checked here, before any
disk write; everything after that belongs to IngestionCoordinator.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from insurai.admin.schemas import PlanUpdateRequest
from insurai.auth.dependencies import AuthContext, require_admin
from insurai.config import settings
from insurai.database import get_db
from insurai.errors import BadRequestError, FileTooLargeError, InvalidStateError, NotFoundError
from insurai.ingestion.coordinator import IngestionCoordinator
from insurai.ingestion.schemas import UploadedDocument
from insurai.store import admin_list_plans, delete_plan, get_stats, update_plan

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# POST /api/admin/upload-plans
# ---------------------------------------------------------------------------

@router.post("/upload-plans")
async def upload_plans(
    request: Request,
    files: Optional[list[UploadFile]] = File(default=None),
    file: Optional[UploadFile] = File(default=None),
    state_id: Optional[str] = Form(default=None),
    provider_name: Optional[str] = Form(default=None),
    admin: AuthContext = Depends(require_admin),
) -> dict:
    """
    Multipart upload of one or more plan documents (field "files", or a single
    "file") for one emirate.

    Returns:
        200: {message, state, total_plans, results}
        400: no files, missing / unknown state, every file failed extraction
        413: a file exceeds max_upload_size
        500: LLM or persistence failure (error body carries results)
    """
    uploaded = list(files or [])
    if not uploaded and file is not None:
        uploaded = [file]
    if not uploaded:
        raise BadRequestError("No files uploaded")

    if state_id is None or not state_id.strip():
        raise BadRequestError("State ID is required")
    try:
        state_id_value = int(state_id)
    except ValueError:
        raise InvalidStateError("Invalid state ID")

    documents: list[UploadedDocument] = []
    for upload in uploaded:
        # Read all bytes first — never write to disk before the size check
        contents = await upload.read()
        if len(contents) > settings.max_upload_size:
            raise FileTooLargeError(
                f"File '{upload.filename}' exceeds maximum allowed size of "
                f"{settings.max_upload_size // (1024 * 1024)} MB"
            )
        documents.append(
            UploadedDocument(
                filename=upload.filename or "upload",
                content=contents,
                mime_type=upload.content_type or "",
            )
        )

    logger.info(
        "Admin upload admin_id=%s files=%d state_id=%s",
        admin.id, len(documents), state_id_value,
    )
    coordinator = IngestionCoordinator(
        request.app.state.db,
        request.app.state.llm,
        transaction_warn_seconds=settings.transaction_warn_seconds,
    )
    summary = await coordinator.ingest(documents, state_id_value, provider_name)
    return summary.model_dump()


# ---------------------------------------------------------------------------
# Plan management
# ---------------------------------------------------------------------------

@router.get("/plans")
async def list_plans(
    state_id: Optional[int] = None,
    is_active: Optional[str] = None,
    limit: int = Query(default=100, ge=0),
    offset: int = Query(default=0, ge=0),
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """All plans, inactive included. is_active=true keeps active plans; any other value keeps inactive."""
    active = None if is_active is None else is_active.lower() == "true"
    plans = await admin_list_plans(db, state_id, active, limit, offset)
    return {"plans": plans, "count": len(plans)}


@router.put("/plans/{plan_id}")
async def edit_plan(
    plan_id: int,
    body: PlanUpdateRequest,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    changes = body.changes()
    if not changes:
        raise BadRequestError("No fields to update")

    plan = await update_plan(db, plan_id, changes)
    if plan is None:
        raise NotFoundError("Plan not found")
    return {"message": "Plan updated successfully", "plan": plan}


@router.delete("/plans/{plan_id}")
async def remove_plan(
    plan_id: int,
    hard_delete: bool = False,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not await delete_plan(db, plan_id, hard_delete):
        raise NotFoundError("Plan not found")
    return {"message": "Plan deleted successfully"}


@router.get("/stats")
async def stats(
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await get_stats(db)
