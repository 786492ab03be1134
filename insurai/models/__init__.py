"""
models/__init__.py — imports all ORM models so Alembic's env.py
sees them via Base.metadata when generating migrations.

Import order follows FK dependencies: states → users/providers → plans → chat_history.
"""
from insurai.models.state import StateORM
from insurai.models.user import UserORM
from insurai.models.provider import ProviderORM
from insurai.models.plan import PlanORM
from insurai.models.chat_history import ChatHistoryORM

__all__ = ["StateORM", "UserORM", "ProviderORM", "PlanORM", "ChatHistoryORM"]
