"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 12:00:00.000000 UTC

Creates the five InsurAI tables and seeds the emirates:
  - states        (reference list, seeded below)
  - users         (accounts; role 'user' or 'admin')
  - providers     (insurance companies, created by ingestion)
  - plans         (extracted plans; JSONB blobs for features / pricing)
  - chat_history  (advisor exchanges, one row each)
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_BLOB = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")

UAE_STATES = [
    ("AD", "Abu Dhabi"),
    ("DU", "Dubai"),
    ("SH", "Sharjah"),
    ("AJ", "Ajman"),
    ("UAQ", "Umm Al Quwain"),
    ("RAK", "Ras Al Khaimah"),
    ("FU", "Fujairah"),
]


def upgrade() -> None:
    # --- states table ---
    states = op.create_table(
        "states",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("state_code", sa.String(length=10), nullable=False),
        sa.Column("state_name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("state_code"),
        sa.UniqueConstraint("state_name"),
    )
    op.bulk_insert(
        states,
        [{"state_code": code, "state_name": name} for code, name in UAE_STATES],
    )

    # --- users table ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False, comment="bcrypt hash — never logged, never returned"),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=10), nullable=False, server_default="user", comment="'user' or 'admin'"),
        sa.Column("state_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["state_id"], ["states.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    # --- providers table ---
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # --- plans table ---
    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("provider_id", sa.Integer(), nullable=False),
        sa.Column("state_id", sa.Integer(), nullable=False),
        sa.Column("plan_name", sa.String(length=255), nullable=False),
        sa.Column("plan_type", sa.String(length=20), nullable=False, comment="Health, Auto, Life, Property or Travel"),
        sa.Column("monthly_cost", sa.Float(), nullable=True),
        sa.Column("annual_cost", sa.Float(), nullable=True),
        sa.Column("deductible", sa.Float(), nullable=True),
        sa.Column("max_coverage", sa.Float(), nullable=True),
        sa.Column("coverage_type", sa.String(length=100), nullable=True),
        sa.Column("features", JSON_BLOB, nullable=False),
        sa.Column("eligibility_criteria", sa.Text(), nullable=True),
        sa.Column("exclusions", sa.Text(), nullable=True),
        sa.Column("benefits_table", sa.Text(), nullable=True),
        sa.Column("age_based_pricing", JSON_BLOB, nullable=True, comment="Ordered [{age_range, premium}] — order is preserved exactly as extracted"),
        sa.Column("structured_features", JSON_BLOB, nullable=False, comment="Fixed 23-key comparison map, every value independently nullable"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("document_source", sa.Text(), nullable=True, comment="Comma-joined original filenames of the ingestion batch"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["provider_id"], ["providers.id"]),
        sa.ForeignKeyConstraint(["state_id"], ["states.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_plans_provider_id"), "plans", ["provider_id"], unique=False)
    op.create_index(op.f("ix_plans_state_id"), "plans", ["state_id"], unique=False)
    op.create_index(op.f("ix_plans_is_active"), "plans", ["is_active"], unique=False)

    # --- chat_history table ---
    op.create_table(
        "chat_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.String(length=100), nullable=False, comment="Client-supplied or server-generated session_{user_id}_{epoch_ms}"),
        sa.Column("message", sa.Text(), nullable=False, comment="User message text"),
        sa.Column("response", sa.Text(), nullable=False, comment="Advisor reply text"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_chat_history_user_id"), "chat_history", ["user_id"], unique=False)
    op.create_index(op.f("ix_chat_history_session_id"), "chat_history", ["session_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_chat_history_session_id"), table_name="chat_history")
    op.drop_index(op.f("ix_chat_history_user_id"), table_name="chat_history")
    op.drop_table("chat_history")
    op.drop_index(op.f("ix_plans_is_active"), table_name="plans")
    op.drop_index(op.f("ix_plans_state_id"), table_name="plans")
    op.drop_index(op.f("ix_plans_provider_id"), table_name="plans")
    op.drop_table("plans")
    op.drop_table("providers")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
    op.drop_table("states")
