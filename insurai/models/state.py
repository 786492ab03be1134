"""
models/state.py — SQLAlchemy ORM model for the UAE emirates reference list.

Table: states
Seed data only (inserted by 001_initial_schema). Never written by the API.
"""
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from insurai.database import Base

# (state_code, state_name) — the seven emirates
UAE_STATES: list[tuple[str, str]] = [
    ("AD", "Abu Dhabi"),
    ("DU", "Dubai"),
    ("SH", "Sharjah"),
    ("AJ", "Ajman"),
    ("UAQ", "Umm Al Quwain"),
    ("RAK", "Ras Al Khaimah"),
    ("FU", "Fujairah"),
]


class StateORM(Base):
    """One emirate. Referenced by users (home state) and plans."""
    __tablename__ = "states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    state_code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    state_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "state_name": self.state_name, "state_code": self.state_code}
