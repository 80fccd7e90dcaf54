"""Savepoint-based transaction scope for per-item isolation (sweeps)."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession


class SqlTransactionScope:
    """ITransactionScope implementation over SAVEPOINTs of the current session transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def savepoint(self) -> AbstractAsyncContextManager[Any]:
        """Return a nested transaction; an exception inside rolls back to the savepoint."""
        return self.db.begin_nested()
