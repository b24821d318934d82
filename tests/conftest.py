"""Shared fixtures for soarflow tests."""

import asyncio
from typing import Any, Callable, Dict, Iterable, Optional

import pytest

from soarflow import ActionDispatcher, OrchestrationEngine, SoarflowConfig
from soarflow.contracts import StepDefinition, TriggerSpec, WorkflowDefinition
from soarflow.persistence import InMemoryExecutionRepository


class GatedAction:
    """Action handler that blocks until released, for driving step boundaries."""

    def __init__(self, result: Optional[Dict[str, Any]] = None) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0
        self.result = result or {"success": True, "message": "gated step done"}

    async def __call__(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return self.result


async def ok_action(incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "message": "ok", "details": {"incident": incident_id, **params}}


async def failing_action(incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": False, "error": "backend refused"}


@pytest.fixture
def config() -> SoarflowConfig:
    return SoarflowConfig(step_delay=0, action_latency_scale=0)


@pytest.fixture
def make_workflow() -> Callable[..., WorkflowDefinition]:
    def _make(
        workflow_id: str = "wf_test",
        actions: Iterable[str] = ("ok", "ok", "ok"),
        trigger: Optional[TriggerSpec] = None,
        **overrides: Any,
    ) -> WorkflowDefinition:
        steps = [
            StepDefinition(id=f"step_{i}", name=f"Step {i}", action=action, timeout=5)
            for i, action in enumerate(actions, start=1)
        ]
        return WorkflowDefinition(
            id=workflow_id,
            name=overrides.pop("name", f"Workflow {workflow_id}"),
            trigger=trigger or TriggerSpec(type="authentication"),
            steps=steps,
            **overrides,
        )

    return _make


@pytest.fixture
def dispatcher() -> ActionDispatcher:
    dispatcher = ActionDispatcher()
    dispatcher.register("ok", ok_action)
    dispatcher.register("fail", failing_action)
    return dispatcher


@pytest.fixture
def engine(config, dispatcher) -> OrchestrationEngine:
    return OrchestrationEngine(
        config=config,
        dispatcher=dispatcher,
        repository=InMemoryExecutionRepository(),
        seed_defaults=False,
    )


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.01)

    return _wait


@pytest.fixture
def gated_action() -> Callable[..., GatedAction]:
    """Factory for :class:`GatedAction`; call it inside the running test loop."""
    return GatedAction
