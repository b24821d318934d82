"""Repository abstraction for execution history."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import Execution


class ExecutionRepository(Protocol):
    """Protocol for execution audit-trail backends."""

    async def save_execution(self, execution: Execution) -> None:
        """Insert or replace the stored snapshot of ``execution``."""

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        """Retrieve the latest snapshot by id."""

    async def list_executions(
        self, workflow_id: Optional[str] = None, incident_id: Optional[str] = None
    ) -> list[Execution]:
        """Return stored snapshots ordered by start time, optionally filtered."""
