"""In-memory implementation of the execution repository."""

from __future__ import annotations

from typing import Dict, Optional

from ..contracts import Execution
from .repository import ExecutionRepository


class InMemoryExecutionRepository(ExecutionRepository):
    """Store execution snapshots in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._executions: Dict[str, Execution] = {}

    async def save_execution(self, execution: Execution) -> None:
        self._executions[execution.id] = execution.model_copy(deep=True)

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        stored = self._executions.get(execution_id)
        return stored.model_copy(deep=True) if stored else None

    async def list_executions(
        self, workflow_id: Optional[str] = None, incident_id: Optional[str] = None
    ) -> list[Execution]:
        found = [
            ex.model_copy(deep=True)
            for ex in self._executions.values()
            if (workflow_id is None or ex.workflow_id == workflow_id)
            and (incident_id is None or ex.incident_id == incident_id)
        ]
        return sorted(found, key=lambda ex: ex.started_at)
