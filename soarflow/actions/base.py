"""Action dispatch: map step action names to async handlers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..contracts import Integration, StepDefinition, StepResult, utcnow
from ..errors import StepTimeout, UnknownAction

logger = logging.getLogger(__name__)

HandlerResult = Union[StepResult, Mapping[str, Any]]
ActionHandler = Callable[[str, Dict[str, Any]], Awaitable[HandlerResult]]


class ActionDispatcher:
    """Registered-handler table with timeout enforcement.

    ``execute`` never raises for step-level problems: unknown actions,
    timeouts, unavailable integrations and handler exceptions all come back
    as failed ``StepResult`` objects.
    """

    def __init__(self, integrations: Optional[Iterable[Integration]] = None) -> None:
        self._handlers: Dict[str, ActionHandler] = {}
        self._capabilities: Dict[str, str] = {}
        self._integrations: Dict[str, Integration] = {}
        for integration in integrations or []:
            self.add_integration(integration)

    # ------------------------------------------------------------------
    # Handler table
    def register(
        self, name: str, handler: ActionHandler, capability: Optional[str] = None
    ) -> None:
        """Register ``handler`` for ``name``, replacing any previous handler."""
        self._handlers[name] = handler
        if capability:
            self._capabilities[name] = capability
        else:
            self._capabilities.pop(name, None)

    def action(
        self, name: str, capability: Optional[str] = None
    ) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: ActionHandler) -> ActionHandler:
            self.register(name, handler, capability)
            return handler

        return decorator

    def has_action(self, name: str) -> bool:
        return name in self._handlers

    @property
    def actions(self) -> List[str]:
        return sorted(self._handlers)

    # ------------------------------------------------------------------
    # Integrations
    def add_integration(self, integration: Integration) -> None:
        self._integrations[integration.id] = integration

    def integrations(self) -> List[Integration]:
        return list(self._integrations.values())

    def resolve_integration(self, action: str) -> Optional[Integration]:
        """Return the integration advertising the capability ``action`` needs."""
        capability = self._capabilities.get(action)
        if capability is None:
            return None
        for integration in self._integrations.values():
            if capability in integration.capabilities:
                return integration
        return None

    # ------------------------------------------------------------------
    async def execute(
        self,
        step: StepDefinition,
        incident_id: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> StepResult:
        """Run the handler for ``step.action`` bounded by ``step.timeout`` seconds."""
        started_at = utcnow()

        handler = self._handlers.get(step.action)
        if handler is None:
            logger.warning(f"No handler registered for action {step.action}")
            return self._failure(step, started_at, str(UnknownAction(step.action)))

        integration = self.resolve_integration(step.action)
        if integration is not None and not integration.is_connected:
            logger.warning(
                f"Integration {integration.id} is {integration.status}; cannot run {step.action}"
            )
            return self._failure(
                step, started_at, f"Integration {integration.name} is {integration.status}"
            )

        logger.debug(f"Running action {step.action} for incident {incident_id}")
        try:
            raw = await asyncio.wait_for(
                handler(incident_id, dict(params or {})), timeout=step.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Action {step.action} exceeded {step.timeout}s")
            return self._failure(step, started_at, str(StepTimeout(step.action, step.timeout)))
        except StepTimeout as exc:
            return self._failure(step, started_at, str(exc))
        except Exception as exc:
            logger.exception(f"Action {step.action} raised for incident {incident_id}")
            return self._failure(step, started_at, str(exc) or type(exc).__name__)

        result = self._normalize(raw, step, started_at)
        if integration is not None and "integration" not in result.details:
            result = result.model_copy(
                update={"details": {**result.details, "integration": integration.id}}
            )
        return result

    def _normalize(
        self, raw: Any, step: StepDefinition, started_at: Any
    ) -> StepResult:
        if isinstance(raw, StepResult):
            result = raw
        elif isinstance(raw, Mapping):
            try:
                result = StepResult.model_validate(dict(raw))
            except ValidationError as exc:
                logger.error(f"Action {step.action} returned a malformed result: {exc}")
                return self._failure(step, started_at, f"Malformed result from {step.action}")
        else:
            return self._failure(step, started_at, f"Action {step.action} returned no result")

        update: Dict[str, Any] = {
            "step_id": step.id,
            "action": step.action,
            "started_at": started_at,
            "finished_at": utcnow(),
        }
        if not result.success and not result.error:
            update["error"] = f"Action {step.action} reported failure"
        return result.model_copy(update=update)

    @staticmethod
    def _failure(step: StepDefinition, started_at: Any, error: str) -> StepResult:
        return StepResult(
            success=False,
            error=error,
            step_id=step.id,
            action=step.action,
            started_at=started_at,
            finished_at=utcnow(),
        )
