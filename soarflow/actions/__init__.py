"""Action dispatch and the built-in simulated handlers."""

from __future__ import annotations

from typing import Iterable, Optional

from ..contracts import Integration
from .base import ActionDispatcher, ActionHandler
from .builtin import BUILTIN_ACTIONS, SimulatedActions


def create_default_dispatcher(
    latency_scale: float = 1.0, integrations: Optional[Iterable[Integration]] = None
) -> ActionDispatcher:
    """Factory returning a dispatcher with every built-in action registered."""

    dispatcher = ActionDispatcher(integrations)
    return SimulatedActions(latency_scale).register(dispatcher)


__all__ = [
    "ActionDispatcher",
    "ActionHandler",
    "BUILTIN_ACTIONS",
    "SimulatedActions",
    "create_default_dispatcher",
]
