"""Automation statistics derived on demand from execution history."""

from __future__ import annotations

from typing import Iterable, Sequence

from .config import StatisticsConfig
from .constants import ACTIVE_STATES, COMPLETED, FAILED, STOPPED
from .contracts import AutomationStatistics, Execution, WorkflowDefinition
from .utils.numbers import round_half_up, rounded_percent


def compute_statistics(
    executions: Sequence[Execution],
    workflows: Iterable[WorkflowDefinition],
    config: StatisticsConfig | None = None,
) -> AutomationStatistics:
    """Summarise ``executions`` and the workflows' lifetime counters.

    ``success_rate`` is completed over all executions, in-flight ones
    included. ``average_execution_time`` covers completed runs only.
    ``time_saved_hours`` multiplies lifetime completed runs by a per-run
    estimate; it and the remaining response metrics are configured
    heuristics.
    """
    config = config or StatisticsConfig()

    completed = [ex for ex in executions if ex.status == COMPLETED]
    failed = sum(1 for ex in executions if ex.status == FAILED)
    stopped = sum(1 for ex in executions if ex.status == STOPPED)
    active = sum(1 for ex in executions if ex.status in ACTIVE_STATES)

    durations = [ex.duration for ex in completed if ex.duration is not None]
    average = sum(durations) / len(durations) if durations else 0.0

    lifetime_runs = sum(wf.execution_count for wf in workflows)

    return AutomationStatistics(
        total_executions=len(executions),
        successful_executions=len(completed),
        failed_executions=failed,
        stopped_executions=stopped,
        active_executions=active,
        success_rate=rounded_percent(len(completed), len(executions)),
        average_execution_time=round_half_up(average),
        automation_rate=config.automation_rate,
        average_response_time=config.average_response_time,
        fastest_response=config.fastest_response,
        sla_compliance=config.sla_compliance,
        time_saved_hours=round_half_up(lifetime_runs * config.time_saved_hours_per_execution),
    )
