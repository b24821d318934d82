from datetime import datetime, timedelta, timezone

import pytest

from soarflow.contracts import Execution, StepResult
from soarflow.persistence import (
    InMemoryExecutionRepository,
    SQLiteExecutionRepository,
    get_repository,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _execution(execution_id: str, workflow_id: str, incident_id: str, offset: int) -> Execution:
    return Execution(
        id=execution_id,
        workflow_id=workflow_id,
        incident_id=incident_id,
        total_steps=2,
        started_at=T0 + timedelta(seconds=offset),
    )


@pytest.mark.asyncio
async def test_sqlite_repository_crud(tmp_path):
    repo = SQLiteExecutionRepository(tmp_path / "executions.db")

    execution = _execution("exec_1", "wf_a", "inc_1", 0)
    await repo.save_execution(execution)

    execution.advance()
    execution.step_results.append(
        StepResult(success=True, message="blocked", details={"ip": "10.0.0.1"}, step_id="step_1")
    )
    execution.status = "failed"
    execution.errors.append("Step Block failed: timeout")
    await repo.save_execution(execution)

    stored = await repo.get_execution("exec_1")
    assert stored is not None
    assert stored.status == "failed"
    assert stored.progress == 50
    assert stored.step_results[0].details == {"ip": "10.0.0.1"}
    assert stored.errors == ["Step Block failed: timeout"]
    assert stored.started_at == T0

    assert await repo.get_execution("exec_missing") is None
    repo.close()


@pytest.mark.asyncio
async def test_sqlite_repository_survives_reopen(tmp_path):
    db_path = tmp_path / "executions.db"
    repo = SQLiteExecutionRepository(db_path)
    await repo.save_execution(_execution("exec_1", "wf_a", "inc_1", 0))
    repo.close()

    reopened = SQLiteExecutionRepository(db_path)
    assert [ex.id for ex in await reopened.list_executions()] == ["exec_1"]
    reopened.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", ["memory", "sqlite"])
async def test_list_executions_filters_and_orders(tmp_path, backend):
    if backend == "memory":
        repo = InMemoryExecutionRepository()
    else:
        repo = SQLiteExecutionRepository(tmp_path / "executions.db")

    await repo.save_execution(_execution("exec_3", "wf_a", "inc_2", 30))
    await repo.save_execution(_execution("exec_1", "wf_a", "inc_1", 10))
    await repo.save_execution(_execution("exec_2", "wf_b", "inc_1", 20))

    assert [ex.id for ex in await repo.list_executions()] == ["exec_1", "exec_2", "exec_3"]
    assert [ex.id for ex in await repo.list_executions(workflow_id="wf_a")] == ["exec_1", "exec_3"]
    assert [ex.id for ex in await repo.list_executions(incident_id="inc_1")] == ["exec_1", "exec_2"]
    assert [
        ex.id for ex in await repo.list_executions(workflow_id="wf_b", incident_id="inc_2")
    ] == []


@pytest.mark.asyncio
async def test_inmemory_repository_returns_copies():
    repo = InMemoryExecutionRepository()
    execution = _execution("exec_1", "wf_a", "inc_1", 0)
    await repo.save_execution(execution)

    execution.errors.append("changed after save")
    stored = await repo.get_execution("exec_1")
    stored.errors.append("changed after read")

    assert (await repo.get_execution("exec_1")).errors == []


def test_get_repository_backends(tmp_path, monkeypatch):
    monkeypatch.delenv("SOARFLOW_DATABASE_URL", raising=False)
    monkeypatch.setenv("SOARFLOW_CONFIG", str(tmp_path / "absent.yaml"))

    assert isinstance(get_repository(), InMemoryExecutionRepository)

    repo = get_repository(f"sqlite://{tmp_path / 'x.db'}")
    assert isinstance(repo, SQLiteExecutionRepository)
    repo.close()

    with pytest.raises(ValueError):
        get_repository("postgresql://localhost/soar")
