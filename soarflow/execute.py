"""Execution controller: runs one workflow instance step by step."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .actions import ActionDispatcher
from .constants import (
    COMPLETED,
    FAILED,
    PAUSED,
    RUNNING,
    STOPPED,
    WORKFLOW_COMPLETED,
    WORKFLOW_EXECUTED,
    WORKFLOW_FAILED,
    WORKFLOW_PAUSED,
    WORKFLOW_RESUMED,
    WORKFLOW_STOPPED,
)
from .contracts import Execution, OperationResult, WorkflowDefinition, utcnow
from .errors import InvalidTransition
from .events import EventEmitter
from .utils.ids import new_id

logger = logging.getLogger(__name__)

# A pause that lands while the final (or a failing) step is in flight lets
# that step's outcome settle the run, hence paused -> completed/failed.
ALLOWED_TRANSITIONS: Dict[str, set[str]] = {
    RUNNING: {COMPLETED, FAILED, PAUSED, STOPPED},
    PAUSED: {RUNNING, STOPPED, COMPLETED, FAILED},
    COMPLETED: set(),
    FAILED: set(),
    STOPPED: set(),
}

FinishedCallback = Callable[[Execution], Awaitable[None]]
SaveCallback = Callable[[Execution], Awaitable[None]]


class ExecutionController:
    """Owns the lifecycle of one running workflow instance.

    The controller is the only writer of its :class:`Execution`. Control
    requests (pause, resume, stop) change state immediately but only take
    effect on the step sequence at the next step boundary; an action call
    already in flight is never interrupted.
    """

    def __init__(
        self,
        workflow: WorkflowDefinition,
        incident_id: str,
        dispatcher: ActionDispatcher,
        emitter: Optional[EventEmitter] = None,
        params: Optional[Mapping[str, Any]] = None,
        step_delay: float = 0.0,
        on_finished: Optional[FinishedCallback] = None,
        execution_id: Optional[str] = None,
    ) -> None:
        self._workflow = workflow
        self._dispatcher = dispatcher
        self._emitter = emitter or EventEmitter()
        self._step_delay = step_delay
        self._on_finished = on_finished
        self._execution = Execution(
            id=execution_id or new_id("exec"),
            workflow_id=workflow.id,
            incident_id=incident_id,
            total_steps=len(workflow.steps),
            params=dict(params or {}),
        )
        self._resume_gate = asyncio.Event()
        self._resume_gate.set()
        self._persist_lock = asyncio.Lock()

    @property
    def execution_id(self) -> str:
        return self._execution.id

    @property
    def workflow(self) -> WorkflowDefinition:
        return self._workflow

    @property
    def status(self) -> str:
        return self._execution.status

    def snapshot(self) -> Execution:
        """Return a deep copy safe to hand to readers."""
        return self._execution.model_copy(deep=True)

    async def persist(self, save: SaveCallback) -> None:
        """Write the current snapshot through ``save``.

        Saves are serialised and the snapshot is taken once the lock is held,
        so a slow earlier write can never land after a newer state.
        """
        async with self._persist_lock:
            await save(self.snapshot())

    # ------------------------------------------------------------------
    # State machine
    def _transition(self, target: str) -> None:
        current = self._execution.status
        if target not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current, target)
        self._execution.status = target

    def _emit(self, name: str, **payload: Any) -> None:
        payload.setdefault("workflowId", self._workflow.id)
        payload.setdefault("executionId", self._execution.id)
        self._emitter.emit(name, payload)

    def pause(self) -> OperationResult:
        """Request a pause; honoured before the next step starts."""
        try:
            self._transition(PAUSED)
        except InvalidTransition as exc:
            logger.warning(f"Cannot pause {self.execution_id}: {exc}")
            return OperationResult(success=False, error=str(exc))
        self._execution.paused_at = utcnow()
        self._resume_gate.clear()
        logger.info(f"Execution {self.execution_id} paused at step {self._execution.current_step}")
        self._emit(WORKFLOW_PAUSED)
        return OperationResult(success=True)

    def resume(self) -> OperationResult:
        try:
            self._transition(RUNNING)
        except InvalidTransition as exc:
            logger.warning(f"Cannot resume {self.execution_id}: {exc}")
            return OperationResult(success=False, error=str(exc))
        self._execution.resumed_at = utcnow()
        self._resume_gate.set()
        logger.info(f"Execution {self.execution_id} resumed")
        self._emit(WORKFLOW_RESUMED)
        return OperationResult(success=True)

    def stop(self) -> OperationResult:
        """Stop the run for good; no further steps will start."""
        try:
            self._transition(STOPPED)
        except InvalidTransition as exc:
            logger.warning(f"Cannot stop {self.execution_id}: {exc}")
            return OperationResult(success=False, error=str(exc))
        self._execution.stopped_at = utcnow()
        # wake a paused run loop so it can observe the stop and exit
        self._resume_gate.set()
        logger.info(f"Execution {self.execution_id} stopped")
        self._emit(WORKFLOW_STOPPED)
        return OperationResult(success=True)

    async def _checkpoint(self) -> bool:
        """Block while paused; return ``False`` once the run is stopped."""
        await self._resume_gate.wait()
        return self._execution.status == RUNNING

    # ------------------------------------------------------------------
    async def run(self) -> Execution:
        """Execute every step in order and return the final snapshot.

        Always reaches a terminal state; step failures and unexpected errors
        are recorded on the execution rather than raised.
        """
        execution = self._execution
        steps = self._workflow.steps
        logger.info(
            f"Starting workflow {self._workflow.id} as {execution.id} "
            f"for incident {execution.incident_id} ({len(steps)} steps)"
        )

        try:
            for index, step in enumerate(steps):
                if not await self._checkpoint():
                    break

                execution.advance()
                self._emit(
                    WORKFLOW_EXECUTED,
                    currentStep=execution.current_step,
                    totalSteps=execution.total_steps,
                    progress=execution.progress,
                    stepName=step.name,
                )

                result = await self._dispatcher.execute(step, execution.incident_id, execution.params)
                execution.step_results.append(result)

                if not result.success:
                    execution.errors.append(f"Step {step.name} failed: {result.error}")
                    logger.info(f"Execution {execution.id} failed at step {step.id}: {result.error}")
                    if execution.status != STOPPED:
                        self._transition(FAILED)
                    break

                logger.debug(f"Execution {execution.id} finished step {step.id}")
                if self._step_delay > 0 and index < len(steps) - 1:
                    await asyncio.sleep(self._step_delay)

            if execution.status in (RUNNING, PAUSED):
                self._transition(COMPLETED)
                execution.completed_at = utcnow()
                self._resume_gate.set()
        except asyncio.CancelledError:
            self._abandon(STOPPED, "Execution cancelled")
            await self._finish()
            raise
        except Exception as exc:
            logger.exception(f"Execution {execution.id} crashed")
            self._abandon(FAILED, str(exc) or type(exc).__name__)
            self._emit(WORKFLOW_FAILED, error=execution.errors[-1])

        await self._finish()
        return self.snapshot()

    def _abandon(self, status: str, error: str) -> None:
        execution = self._execution
        execution.errors.append(error)
        if not execution.is_terminal:
            execution.status = status
            if status == STOPPED:
                execution.stopped_at = utcnow()
        self._resume_gate.set()

    async def _finish(self) -> None:
        execution = self._execution
        execution.finished_at = utcnow()
        if self._on_finished is not None:
            try:
                await self._on_finished(self.snapshot())
            except Exception:
                logger.exception(f"Finish hook failed for execution {execution.id}")
        logger.info(
            f"Workflow {self._workflow.id} execution {execution.id} ended {execution.status}"
        )
        self._emit(
            WORKFLOW_COMPLETED,
            status=execution.status,
            duration=execution.duration,
        )
