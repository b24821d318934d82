"""SQLite implementation of the execution repository."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional

from ..contracts import Execution
from .repository import ExecutionRepository


class SQLiteExecutionRepository(ExecutionRepository):
    """Persist execution snapshots using SQLite.

    Each execution is one row holding its JSON document; lookup columns are
    duplicated out of the document for filtering.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                incident_id TEXT NOT NULL,
                status TEXT NOT NULL,
                started_at TEXT NOT NULL,
                document TEXT NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Repository API
    async def save_execution(self, execution: Execution) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT OR REPLACE INTO executions
                (id, workflow_id, incident_id, status, started_at, document)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            execution.id,
            execution.workflow_id,
            execution.incident_id,
            execution.status,
            execution.started_at.isoformat(),
            execution.model_dump_json(),
        )

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM executions WHERE id = ?",
            execution_id,
        )
        if not row:
            return None
        return Execution.model_validate_json(row["document"])

    async def list_executions(
        self, workflow_id: Optional[str] = None, incident_id: Optional[str] = None
    ) -> list[Execution]:
        clauses: list[str] = []
        params: list[Any] = []
        if workflow_id is not None:
            clauses.append("workflow_id = ?")
            params.append(workflow_id)
        if incident_id is not None:
            clauses.append("incident_id = ?")
            params.append(incident_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT document FROM executions{where} ORDER BY started_at",
            *params,
        )
        return [Execution.model_validate_json(row["document"]) for row in rows]
