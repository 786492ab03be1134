"""
models/user.py — SQLAlchemy ORM model for registered accounts.

Table: users
email is stored lower-cased and is unique.
role is fixed at creation: registration always writes 'user'; admins are
created out-of-band by scripts/create_admin.py.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from insurai.database import Base
from insurai.models.state import StateORM


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash — never logged, never returned",
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="user",
        comment="'user' or 'admin'",
    )
    state_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("states.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    state: Mapped[Optional[StateORM]] = relationship(lazy="joined")
