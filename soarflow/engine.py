"""Orchestration engine: incidents in, workflow executions out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from .actions import ActionDispatcher, create_default_dispatcher
from .catalog import default_integrations, default_playbooks, default_workflows, sample_incidents
from .config import SoarflowConfig, load_config
from .constants import (
    ACTIVE_STATES,
    AUTOMATION_TRIGGERED,
    COMPLETED,
    FAILED,
    INCIDENT_CREATED,
    PAUSED,
    RUNNING,
    STOPPED,
)
from .contracts import (
    INCIDENT_TRANSITIONS,
    ActiveExecution,
    AutomationStatistics,
    Execution,
    Incident,
    Integration,
    OperationResult,
    Playbook,
    WorkflowDefinition,
    utcnow,
)
from .errors import (
    ExecutionNotFound,
    IncidentNotFound,
    InvalidIncident,
    InvalidTransition,
    WorkflowDisabled,
)
from .events import EventEmitter, Listener, Subscription
from .execute import ExecutionController
from .persistence import ExecutionRepository, get_repository
from .registry import WorkflowRegistry
from .statistics import compute_statistics
from .triggers import matches
from .utils.ids import new_id

logger = logging.getLogger(__name__)


class OrchestrationEngine:
    """Composition root owning workflows, incidents and executions.

    Every workflow run is an independent asyncio task; there is no mutual
    exclusion between runs, even for the same incident and workflow.
    """

    def __init__(
        self,
        config: Optional[SoarflowConfig] = None,
        registry: Optional[WorkflowRegistry] = None,
        dispatcher: Optional[ActionDispatcher] = None,
        repository: Optional[ExecutionRepository] = None,
        emitter: Optional[EventEmitter] = None,
        seed_defaults: bool = True,
    ) -> None:
        self.config = config or load_config()
        self.events = emitter or EventEmitter()
        self.registry = registry or WorkflowRegistry()
        self.repository = repository or get_repository(config=self.config)
        self.dispatcher = dispatcher or create_default_dispatcher(
            latency_scale=self.config.action_latency_scale
        )
        self._playbooks: Dict[str, Playbook] = {}
        self._incidents: Dict[str, Incident] = {}
        self._controllers: Dict[str, ExecutionController] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

        if seed_defaults:
            self._seed_defaults()

    def _seed_defaults(self) -> None:
        for workflow in default_workflows():
            if workflow.id not in self.registry:
                self.registry.register(workflow)
        for playbook in default_playbooks():
            self._playbooks[playbook.id] = playbook
        for incident in sample_incidents():
            self._incidents[incident.id] = incident
        for integration in default_integrations():
            self.dispatcher.add_integration(integration)

    # ------------------------------------------------------------------
    # Events
    def on(self, name: str, listener: Listener) -> Listener:
        return self.events.on(name, listener)

    def subscribe(self, *names: str) -> Subscription:
        return self.events.subscribe(*names)

    # ------------------------------------------------------------------
    # Incidents
    async def create_incident(self, data: Mapping[str, Any]) -> Incident:
        """Record a new incident and launch every enabled workflow it triggers.

        Accepts snake_case or camelCase keys. Matching workflows start as
        background tasks; use :meth:`wait_for_executions` to await them.

        Raises:
            InvalidIncident: If required fields are missing or invalid.
        """
        try:
            incident = Incident(
                id=new_id("inc"),
                title=data.get("title"),
                description=data.get("description") or "",
                type=data.get("type"),
                severity=data.get("severity"),
                status="open",
                created_at=utcnow(),
                assigned_to=data.get("assigned_to")
                or data.get("assignedTo")
                or self.config.default_assignee,
                affected_assets=list(
                    data.get("affected_assets") or data.get("affectedAssets") or []
                ),
            )
        except ValidationError as exc:
            raise InvalidIncident(f"Invalid incident data: {exc}") from exc

        self._incidents[incident.id] = incident
        logger.info(f"Incident {incident.id} created: {incident.title} ({incident.severity})")

        await self._check_automation_triggers(incident)
        self.events.emit(INCIDENT_CREATED, incident.model_dump(mode="json", by_alias=True))
        return incident

    async def _check_automation_triggers(self, incident: Incident) -> List[str]:
        started: List[str] = []
        for workflow in self.registry.enabled():
            if not matches(workflow.trigger, incident):
                continue
            execution_id = await self._launch(workflow, incident.id, {})
            started.append(execution_id)
            logger.info(f"Incident {incident.id} triggered workflow {workflow.id}")
            self.events.emit(
                AUTOMATION_TRIGGERED,
                {
                    "workflowId": workflow.id,
                    "incidentId": incident.id,
                    "executionId": execution_id,
                    "trigger": workflow.trigger.model_dump(by_alias=True),
                },
            )
        return started

    def get_incidents(self, include_archived: bool = True) -> List[Incident]:
        """Return incidents newest first."""
        incidents = [
            inc for inc in self._incidents.values() if include_archived or not inc.archived
        ]
        return sorted(incidents, key=lambda inc: inc.created_at, reverse=True)

    def get_incident(self, incident_id: str) -> Incident:
        incident = self._incidents.get(incident_id)
        if incident is None:
            raise IncidentNotFound(incident_id)
        return incident

    def update_incident_status(self, incident_id: str, status: str) -> Incident:
        """Move an incident along ``open -> investigating/mitigating -> resolved``.

        Raises:
            IncidentNotFound: Unknown incident id.
            InvalidTransition: The move is not allowed from the current status.
        """
        incident = self.get_incident(incident_id)
        if status not in INCIDENT_TRANSITIONS.get(incident.status, set()):
            raise InvalidTransition(incident.status, status, subject="incident")
        update: Dict[str, Any] = {"status": status}
        if status == "resolved":
            update["resolved_at"] = utcnow()
        updated = incident.model_copy(update=update)
        self._incidents[incident_id] = updated
        logger.info(f"Incident {incident_id} moved {incident.status} -> {status}")
        return updated

    def archive_incident(self, incident_id: str) -> Incident:
        updated = self.get_incident(incident_id).model_copy(update={"archived": True})
        self._incidents[incident_id] = updated
        return updated

    # ------------------------------------------------------------------
    # Workflow execution
    async def _launch(
        self, workflow: WorkflowDefinition, incident_id: str, params: Mapping[str, Any]
    ) -> str:
        controller = ExecutionController(
            workflow,
            incident_id,
            dispatcher=self.dispatcher,
            emitter=self.events,
            params=params,
            step_delay=self.config.step_delay,
            on_finished=self._on_execution_finished,
        )
        execution_id = controller.execution_id
        self._controllers[execution_id] = controller
        await controller.persist(self.repository.save_execution)

        task = asyncio.create_task(controller.run(), name=f"soarflow-{execution_id}")
        self._tasks[execution_id] = task
        task.add_done_callback(lambda _t, eid=execution_id: self._tasks.pop(eid, None))
        return execution_id

    async def _on_execution_finished(self, execution: Execution) -> None:
        if execution.status in (COMPLETED, FAILED):
            await self.registry.record_run(
                execution.workflow_id, succeeded=execution.status == COMPLETED
            )
        controller = self._controllers.get(execution.id)
        if controller is None:
            await self.repository.save_execution(execution)
            return
        await controller.persist(self.repository.save_execution)
        # the repository now holds the terminal record
        self._controllers.pop(execution.id, None)

    async def start_workflow(
        self,
        workflow_id: str,
        incident_id: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Launch a workflow in the background and return the execution id.

        Raises:
            WorkflowNotFound: Unknown workflow id.
            WorkflowDisabled: The workflow is disabled.
            IncidentNotFound: Unknown incident id.
        """
        workflow = self.registry.get(workflow_id)
        if not workflow.enabled:
            raise WorkflowDisabled(workflow_id)
        self.get_incident(incident_id)
        return await self._launch(workflow, incident_id, params or {})

    async def execute_workflow(
        self,
        workflow_id: str,
        incident_id: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Execution:
        """Run a workflow against an incident and return the finished execution."""
        execution_id = await self.start_workflow(workflow_id, incident_id, params)
        return await self.wait_for_execution(execution_id)

    async def wait_for_execution(self, execution_id: str) -> Execution:
        task = self._tasks.get(execution_id)
        if task is not None:
            await task
        return await self.get_execution(execution_id)

    async def wait_for_executions(self) -> None:
        """Wait until every in-flight execution and async listener has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
        await self.events.drain()

    async def pause_workflow(self, execution_id: str) -> OperationResult:
        return await self._control(execution_id, ExecutionController.pause, PAUSED)

    async def resume_workflow(self, execution_id: str) -> OperationResult:
        return await self._control(execution_id, ExecutionController.resume, RUNNING)

    async def stop_workflow(self, execution_id: str) -> OperationResult:
        return await self._control(execution_id, ExecutionController.stop, STOPPED)

    async def _control(
        self,
        execution_id: str,
        operation: Callable[[ExecutionController], OperationResult],
        target: str,
    ) -> OperationResult:
        controller = self._controllers.get(execution_id)
        if controller is None:
            stored = await self.repository.get_execution(execution_id)
            if stored is None:
                return OperationResult(success=False, error=str(ExecutionNotFound(execution_id)))
            return OperationResult(
                success=False, error=str(InvalidTransition(stored.status, target))
            )
        result = operation(controller)
        if result.success:
            await controller.persist(self.repository.save_execution)
        return result

    # ------------------------------------------------------------------
    # Read side
    def get_workflows(self) -> List[WorkflowDefinition]:
        return self.registry.list()

    def get_workflow(self, workflow_id: str) -> WorkflowDefinition:
        return self.registry.get(workflow_id)

    def set_workflow_enabled(self, workflow_id: str, enabled: bool) -> WorkflowDefinition:
        return self.registry.set_enabled(workflow_id, enabled)

    def get_playbooks(self) -> List[Playbook]:
        return list(self._playbooks.values())

    def get_integrations(self) -> List[Integration]:
        return self.dispatcher.integrations()

    async def get_execution(self, execution_id: str) -> Execution:
        controller = self._controllers.get(execution_id)
        if controller is not None:
            return controller.snapshot()
        stored = await self.repository.get_execution(execution_id)
        if stored is None:
            raise ExecutionNotFound(execution_id)
        return stored

    async def get_executions(
        self, workflow_id: Optional[str] = None, incident_id: Optional[str] = None
    ) -> List[Execution]:
        return await self.repository.list_executions(
            workflow_id=workflow_id, incident_id=incident_id
        )

    def get_active_workflows(self) -> List[ActiveExecution]:
        """Running or paused executions with their workflow's name and description."""
        active: List[ActiveExecution] = []
        for controller in self._controllers.values():
            if controller.status not in ACTIVE_STATES:
                continue
            workflow = self.registry.find(controller.workflow.id) or controller.workflow
            active.append(
                ActiveExecution(
                    **controller.snapshot().model_dump(),
                    name=workflow.name,
                    description=workflow.description,
                )
            )
        return active

    async def get_automation_statistics(self) -> AutomationStatistics:
        executions = await self.repository.list_executions()
        return compute_statistics(
            executions, self.registry.list(), self.config.statistics
        )
