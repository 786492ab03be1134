"""
Chat HTTP routes — POST /api/chat, GET /api/chat/history,
                   DELETE /api/chat/history/{session_id}

Every query is scoped to the authenticated user; a session id belonging to
someone else simply matches nothing.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from insurai.auth.dependencies import AuthContext, get_current_user
from insurai.chat.advisor import chat_with_advisor
from insurai.chat.schemas import ChatRequest
from insurai.database import get_db
from insurai.store import delete_chat_session, get_chat_history

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post("")
async def chat(
    body: ChatRequest,
    request: Request,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await chat_with_advisor(
        db, request.app.state.llm, user, body.message, body.session_id
    )


@router.get("/history")
async def history(
    session_id: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    entries = await get_chat_history(db, user.id, session_id, limit=limit)
    return {"history": entries, "count": len(entries)}


@router.delete("/history/{session_id}")
async def clear_history(
    session_id: str,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await delete_chat_session(db, user.id, session_id)
    return {"message": "Chat history cleared successfully"}
