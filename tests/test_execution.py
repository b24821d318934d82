"""Execution controller lifecycle tests."""

import asyncio

import pytest

from soarflow.actions import ActionDispatcher
from soarflow.constants import (
    WORKFLOW_COMPLETED,
    WORKFLOW_EXECUTED,
    WORKFLOW_FAILED,
    WORKFLOW_PAUSED,
    WORKFLOW_RESUMED,
    WORKFLOW_STOPPED,
)
from soarflow.events import EventEmitter
from soarflow.execute import ExecutionController


def _controller(workflow, dispatcher, emitter=None, **kwargs):
    return ExecutionController(workflow, "inc_1", dispatcher, emitter=emitter, **kwargs)


@pytest.mark.asyncio
async def test_successful_run_completes_every_step(make_workflow, dispatcher):
    controller = _controller(make_workflow(), dispatcher, params={"ip": "10.1.1.1"})

    execution = await controller.run()

    assert execution.status == "completed"
    assert execution.current_step == 3
    assert execution.progress == 100
    assert [r.step_id for r in execution.step_results] == ["step_1", "step_2", "step_3"]
    assert execution.step_results[0].details == {"incident": "inc_1", "ip": "10.1.1.1"}
    assert execution.errors == []
    assert execution.completed_at is not None and execution.finished_at is not None


@pytest.mark.asyncio
async def test_failing_step_stops_the_sequence(make_workflow, dispatcher):
    calls = []

    async def third(incident_id, params):
        calls.append(incident_id)
        return {"success": True}

    dispatcher.register("third", third)
    controller = _controller(make_workflow(actions=("ok", "fail", "third")), dispatcher)

    execution = await controller.run()

    assert execution.status == "failed"
    assert len(execution.step_results) == 2
    assert execution.errors == ["Step Step 2 failed: backend refused"]
    assert execution.current_step == 2
    assert calls == []


@pytest.mark.asyncio
async def test_progress_is_reported_per_step(make_workflow, dispatcher):
    emitter = EventEmitter()
    events = emitter.subscribe(WORKFLOW_EXECUTED)
    controller = _controller(make_workflow(), dispatcher, emitter)

    await controller.run()

    payloads = [event.payload for event in events.pending()]
    assert [p["currentStep"] for p in payloads] == [1, 2, 3]
    assert [p["progress"] for p in payloads] == [33, 67, 100]
    assert all(p["totalSteps"] == 3 for p in payloads)
    assert payloads[0]["stepName"] == "Step 1"


@pytest.mark.asyncio
async def test_pause_takes_effect_at_the_next_step_boundary(
    make_workflow, dispatcher, gated_action, wait_until
):
    gate = gated_action()
    dispatcher.register("gate", gate)
    controller = _controller(make_workflow(actions=("gate", "ok", "ok")), dispatcher)
    task = asyncio.create_task(controller.run())

    await asyncio.wait_for(gate.started.wait(), 1)
    assert controller.pause().success is True
    assert controller.status == "paused"

    gate.release.set()
    await wait_until(lambda: len(controller.snapshot().step_results) == 1)
    await asyncio.sleep(0.05)

    snapshot = controller.snapshot()
    assert snapshot.status == "paused"
    assert snapshot.current_step == 1
    assert snapshot.paused_at is not None
    assert not task.done()

    assert controller.resume().success is True
    execution = await asyncio.wait_for(task, 1)
    assert execution.status == "completed"
    assert len(execution.step_results) == 3
    assert execution.resumed_at is not None


@pytest.mark.asyncio
async def test_pause_during_last_step_lets_the_run_complete(
    make_workflow, dispatcher, gated_action
):
    gate = gated_action()
    dispatcher.register("gate", gate)
    controller = _controller(make_workflow(actions=("ok", "gate")), dispatcher)
    task = asyncio.create_task(controller.run())

    await asyncio.wait_for(gate.started.wait(), 1)
    controller.pause()
    gate.release.set()

    execution = await asyncio.wait_for(task, 1)
    assert execution.status == "completed"
    assert len(execution.step_results) == 2


@pytest.mark.asyncio
async def test_stop_while_paused_ends_the_run(make_workflow, dispatcher, gated_action, wait_until):
    gate = gated_action()
    dispatcher.register("gate", gate)
    emitter = EventEmitter()
    events = emitter.subscribe()
    controller = _controller(make_workflow(actions=("gate", "ok", "ok")), dispatcher, emitter)
    task = asyncio.create_task(controller.run())

    await asyncio.wait_for(gate.started.wait(), 1)
    controller.pause()
    gate.release.set()
    await wait_until(lambda: len(controller.snapshot().step_results) == 1)

    assert controller.stop().success is True
    execution = await asyncio.wait_for(task, 1)

    assert execution.status == "stopped"
    assert execution.current_step == 1
    assert len(execution.step_results) == 1
    assert execution.stopped_at is not None

    names = [event.name for event in events.pending()]
    assert names.index(WORKFLOW_PAUSED) < names.index(WORKFLOW_STOPPED)
    assert names[-1] == WORKFLOW_COMPLETED


@pytest.mark.asyncio
async def test_stop_during_step_keeps_its_result(make_workflow, dispatcher, gated_action):
    gate = gated_action()
    dispatcher.register("gate", gate)
    controller = _controller(make_workflow(actions=("gate", "ok")), dispatcher)
    task = asyncio.create_task(controller.run())

    await asyncio.wait_for(gate.started.wait(), 1)
    controller.stop()
    gate.release.set()

    execution = await asyncio.wait_for(task, 1)
    assert execution.status == "stopped"
    assert len(execution.step_results) == 1
    assert execution.step_results[0].success is True


@pytest.mark.asyncio
async def test_control_operations_on_finished_run_fail_cleanly(make_workflow, dispatcher):
    controller = _controller(make_workflow(), dispatcher)
    await controller.run()

    for operation in (controller.pause, controller.resume, controller.stop):
        result = operation()
        assert result.success is False
        assert result.error.startswith("Illegal execution transition: completed ->")
    assert controller.status == "completed"


@pytest.mark.asyncio
async def test_second_stop_is_rejected(make_workflow, dispatcher, gated_action):
    gate = gated_action()
    dispatcher.register("gate", gate)
    controller = _controller(make_workflow(actions=("gate",)), dispatcher)
    task = asyncio.create_task(controller.run())
    await asyncio.wait_for(gate.started.wait(), 1)

    assert controller.stop().success is True
    second = controller.stop()
    assert second.success is False
    assert second.error == "Illegal execution transition: stopped -> stopped"

    gate.release.set()
    await asyncio.wait_for(task, 1)


@pytest.mark.asyncio
async def test_resume_requires_a_paused_run(make_workflow, dispatcher, gated_action):
    gate = gated_action()
    dispatcher.register("gate", gate)
    controller = _controller(make_workflow(actions=("gate",)), dispatcher)
    task = asyncio.create_task(controller.run())
    await asyncio.wait_for(gate.started.wait(), 1)

    result = controller.resume()
    assert result.success is False
    assert result.error == "Illegal execution transition: running -> running"

    gate.release.set()
    await asyncio.wait_for(task, 1)


@pytest.mark.asyncio
async def test_unexpected_error_fails_the_run_and_emits(make_workflow):
    class ExplodingDispatcher(ActionDispatcher):
        async def execute(self, step, incident_id, params=None):
            raise RuntimeError("dispatcher blew up")

    emitter = EventEmitter()
    events = emitter.subscribe(WORKFLOW_FAILED, WORKFLOW_COMPLETED)
    controller = _controller(make_workflow(), ExplodingDispatcher(), emitter)

    execution = await controller.run()

    assert execution.status == "failed"
    assert execution.errors == ["dispatcher blew up"]
    emitted = events.pending()
    assert [e.name for e in emitted] == [WORKFLOW_FAILED, WORKFLOW_COMPLETED]
    assert emitted[1].payload["status"] == "failed"


@pytest.mark.asyncio
async def test_cancelled_run_is_recorded_as_stopped(make_workflow, dispatcher, gated_action):
    gate = gated_action()
    dispatcher.register("gate", gate)
    finished = []

    async def on_finished(execution):
        finished.append(execution)

    controller = _controller(
        make_workflow(actions=("gate", "ok")), dispatcher, on_finished=on_finished
    )
    task = asyncio.create_task(controller.run())
    await asyncio.wait_for(gate.started.wait(), 1)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert controller.status == "stopped"
    assert finished and finished[0].status == "stopped"
    assert finished[0].errors == ["Execution cancelled"]


@pytest.mark.asyncio
async def test_finish_hook_failure_does_not_break_the_run(make_workflow, dispatcher):
    async def broken_hook(execution):
        raise RuntimeError("repository offline")

    controller = _controller(make_workflow(), dispatcher, on_finished=broken_hook)
    execution = await controller.run()
    assert execution.status == "completed"


@pytest.mark.asyncio
async def test_resume_event_is_emitted(make_workflow, dispatcher, gated_action):
    gate = gated_action()
    dispatcher.register("gate", gate)
    emitter = EventEmitter()
    events = emitter.subscribe(WORKFLOW_PAUSED, WORKFLOW_RESUMED)
    controller = _controller(make_workflow(actions=("gate", "ok")), dispatcher, emitter)
    task = asyncio.create_task(controller.run())
    await asyncio.wait_for(gate.started.wait(), 1)

    controller.pause()
    controller.resume()
    gate.release.set()
    await asyncio.wait_for(task, 1)

    emitted = events.pending()
    assert [e.name for e in emitted] == [WORKFLOW_PAUSED, WORKFLOW_RESUMED]
    assert all(e.payload["executionId"] == controller.execution_id for e in emitted)


@pytest.mark.asyncio
async def test_pause_then_resume_restores_running_without_changing_progress(
    make_workflow, dispatcher, gated_action
):
    gate = gated_action()
    dispatcher.register("gate", gate)
    controller = _controller(make_workflow(actions=("ok", "gate", "ok")), dispatcher)
    task = asyncio.create_task(controller.run())
    await asyncio.wait_for(gate.started.wait(), 1)
    before = controller.snapshot()

    assert controller.pause().success is True
    assert controller.resume().success is True

    after = controller.snapshot()
    assert after.status == "running"
    assert after.current_step == before.current_step == 2
    assert after.progress == before.progress
    assert after.step_results == before.step_results

    gate.release.set()
    execution = await asyncio.wait_for(task, 1)
    assert execution.status == "completed"
    assert len(execution.step_results) == 3


@pytest.mark.asyncio
async def test_persist_writes_latest_state_in_order(make_workflow, dispatcher, gated_action):
    saved = []

    async def slow_save(execution):
        if execution.finished_at is None:
            await asyncio.sleep(0.05)
        saved.append(execution.status)

    gate = gated_action()
    dispatcher.register("gate", gate)

    async def on_finished(execution):
        await controller.persist(slow_save)

    controller = _controller(
        make_workflow(actions=("gate",)), dispatcher, on_finished=on_finished
    )
    task = asyncio.create_task(controller.run())
    await asyncio.wait_for(gate.started.wait(), 1)

    controller.pause()
    pausing = asyncio.create_task(controller.persist(slow_save))
    await asyncio.sleep(0)
    gate.release.set()
    await asyncio.wait_for(asyncio.gather(task, pausing), 1)

    assert saved == ["paused", "completed"]
