"""Dialect-specific INSERT constructs.

``INSERT ... ON CONFLICT`` exists on both PostgreSQL and SQLite but lives in
each dialect's module; pick the one matching the session's engine.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model: Any) -> Any:  # noqa: ANN401
    """Return an ``Insert`` supporting ``on_conflict_do_nothing`` for the bound dialect."""
    if db.bind is not None and db.bind.dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)
