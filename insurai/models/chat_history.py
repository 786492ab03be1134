"""
models/chat_history.py — SQLAlchemy ORM model for advisor chat history.

Table: chat_history
One row per exchange, append-only. Scoped by (user_id, session_id).
Rows are never updated; a user may delete a whole session.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from insurai.database import Base


class ChatHistoryORM(Base):
    """
    ORM model for a single message/response exchange within a session.

    (user_id, session_id) is indexed for the "last N messages" lookup that
    precedes every reply.
    """
    __tablename__ = "chat_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    session_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Client-supplied or server-generated session_{user_id}_{epoch_ms}",
    )
    message: Mapped[str] = mapped_column(Text, nullable=False, comment="User message text")
    response: Mapped[str] = mapped_column(Text, nullable=False, comment="Advisor reply text")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
