"""In-memory registry of workflow definitions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from .constants import SUPPORTED_TRIGGER_TYPES
from .contracts import WorkflowDefinition
from .errors import InvalidDefinition, WorkflowNotFound

logger = logging.getLogger(__name__)


def _baseline(definition: WorkflowDefinition) -> Tuple[int, int]:
    """Return (succeeded, finished) run counts implied by a definition's counters."""
    succeeded = definition.execution_count
    if definition.success_rate > 0:
        finished = max(succeeded, round(succeeded * 100 / definition.success_rate))
    else:
        finished = succeeded
    return succeeded, finished


class WorkflowRegistry:
    """Holds workflow definitions keyed by id.

    Definitions are immutable; every change swaps in a new copy. Run
    counters are updated under a lock so concurrent executions of the same
    workflow never lose an increment.
    """

    def __init__(
        self, definitions: Optional[Iterable[Union[WorkflowDefinition, Mapping[str, Any]]]] = None
    ) -> None:
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._runs: Dict[str, Tuple[int, int]] = {}
        self._lock = asyncio.Lock()
        for definition in definitions or []:
            self.register(definition)

    def register(
        self, definition: Union[WorkflowDefinition, Mapping[str, Any]]
    ) -> WorkflowDefinition:
        """Add or replace a workflow definition.

        Raises:
            InvalidDefinition: If the definition has no steps, an unsupported
                trigger type, or does not parse.
        """
        if not isinstance(definition, WorkflowDefinition):
            try:
                definition = WorkflowDefinition.model_validate(definition)
            except ValidationError as exc:
                raise InvalidDefinition(f"Malformed workflow definition: {exc}") from exc

        if not definition.steps:
            raise InvalidDefinition(f"Workflow {definition.id} has no steps")
        if definition.trigger.type not in SUPPORTED_TRIGGER_TYPES:
            raise InvalidDefinition(
                f"Workflow {definition.id} has unsupported trigger type: {definition.trigger.type}"
            )

        if definition.id in self._workflows:
            logger.info(f"Replacing workflow definition {definition.id}")
        self._workflows[definition.id] = definition
        self._runs[definition.id] = _baseline(definition)
        logger.debug(
            f"Registered workflow {definition.id} with {len(definition.steps)} steps"
        )
        return definition

    def get(self, workflow_id: str) -> WorkflowDefinition:
        definition = self._workflows.get(workflow_id)
        if definition is None:
            raise WorkflowNotFound(workflow_id)
        return definition

    def find(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        return self._workflows.get(workflow_id)

    def list(self) -> List[WorkflowDefinition]:
        return list(self._workflows.values())

    def enabled(self) -> List[WorkflowDefinition]:
        return [wf for wf in self._workflows.values() if wf.enabled]

    def set_enabled(self, workflow_id: str, enabled: bool) -> WorkflowDefinition:
        """Enable or disable a workflow without touching its counters."""
        updated = self.get(workflow_id).model_copy(update={"enabled": enabled})
        self._workflows[workflow_id] = updated
        logger.info(f"Workflow {workflow_id} {'enabled' if enabled else 'disabled'}")
        return updated

    async def record_run(self, workflow_id: str, succeeded: bool) -> Optional[WorkflowDefinition]:
        """Fold one finished run into the workflow's counters.

        ``execution_count`` counts completed runs; ``success_rate`` is the
        percentage of finished runs that completed.
        """
        async with self._lock:
            current = self._workflows.get(workflow_id)
            if current is None:
                logger.warning(f"Run recorded for unknown workflow {workflow_id}")
                return None
            ok, finished = self._runs[workflow_id]
            ok += 1 if succeeded else 0
            finished += 1
            self._runs[workflow_id] = (ok, finished)
            updated = current.model_copy(
                update={
                    "execution_count": current.execution_count + (1 if succeeded else 0),
                    "success_rate": round(ok * 100 / finished, 1),
                }
            )
            self._workflows[workflow_id] = updated
            return updated

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._workflows

    def __len__(self) -> int:
        return len(self._workflows)
