"""Backward-compatible database session helpers.

This module maintains the short import path (``rpage.db.session``) while
delegating to the infrastructure layer under ``rpage.infrastructure.database``.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from rpage.infrastructure.database import Base, get_session as get_db, init_db, session_scope  # noqa: F401
from rpage.infrastructure.database import session as _db_session

__all__ = [
    "Base",
    "AsyncSession",
    "get_db",
    "init_db",
    "get_engine",
    "session_scope",
]

get_engine = _db_session.get_engine
