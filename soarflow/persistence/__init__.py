"""Persistence layer for soarflow execution history."""

from __future__ import annotations

import os
from typing import Optional

from ..config import SoarflowConfig, load_config
from .inmemory import InMemoryExecutionRepository
from .repository import ExecutionRepository
from .sqlite import SQLiteExecutionRepository


def get_repository(
    database_url: Optional[str] = None, config: Optional[SoarflowConfig] = None
) -> ExecutionRepository:
    """Factory function to obtain an execution repository.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``SOARFLOW_DATABASE_URL``, or from
    loaded configuration. When no database is configured, a fresh in-memory
    repository is returned.
    """

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("SOARFLOW_DATABASE_URL")
        or getattr(config, "database_url", None)
    )

    if not database_url:
        return InMemoryExecutionRepository()

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        return SQLiteExecutionRepository(path)
    raise ValueError(f"Unsupported database backend: {database_url}")


__all__ = [
    "ExecutionRepository",
    "InMemoryExecutionRepository",
    "SQLiteExecutionRepository",
    "get_repository",
]
