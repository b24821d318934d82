"""Command line interface for the soarflow engine."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, NoReturn, Optional

import typer

from soarflow import OrchestrationEngine, load_config
from soarflow.config import SoarflowConfig
from soarflow.contracts import Execution
from soarflow.errors import SoarflowError
from soarflow.events import log_events

app = typer.Typer(help="CLI for soarflow security automation")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
incident_app = typer.Typer(help="Commands for managing incidents")
playbook_app = typer.Typer(help="Commands for browsing playbooks")
execution_app = typer.Typer(help="Commands for inspecting execution history")

app.add_typer(workflow_app, name="workflow")
app.add_typer(incident_app, name="incident")
app.add_typer(playbook_app, name="playbook")
app.add_typer(execution_app, name="execution")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to a soarflow YAML config file"
    ),
) -> None:
    """soarflow CLI entry point."""
    settings = load_config(str(config) if config else None)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


def _engine(ctx: typer.Context) -> OrchestrationEngine:
    settings: SoarflowConfig = ctx.obj or load_config()
    engine = OrchestrationEngine(config=settings)
    engine.events.on_any(log_events)
    return engine


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _parse_params(values: Optional[List[str]]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {item!r}")
        params[key] = value
    return params


def _echo_execution(execution: Execution) -> None:
    typer.echo(
        f"Execution {execution.id}: {execution.status} "
        f"(step {execution.current_step}/{execution.total_steps}, {execution.progress}%)"
    )
    for result in execution.step_results:
        outcome = result.message if result.success else result.error
        typer.echo(f"- {result.step_id} {result.action}: {'ok' if result.success else 'failed'} - {outcome}")
    for error in execution.errors:
        typer.echo(f"! {error}")


@workflow_app.command("list")
def workflow_list(ctx: typer.Context) -> None:
    """
    List registered workflows.

    Example:
        soarflow workflow list
        # Output: wf_phishing_response    enabled    Phishing Email Response    156 runs    98.2%
    """
    engine = _engine(ctx)
    for wf in engine.get_workflows():
        state = "enabled" if wf.enabled else "disabled"
        typer.echo(
            f"{wf.id}\t{state}\t{wf.name}\t{wf.execution_count} runs\t{wf.success_rate}%"
        )


@workflow_app.command("show")
def workflow_show(ctx: typer.Context, workflow_id: str) -> None:
    """Show a workflow's trigger and steps."""
    engine = _engine(ctx)
    wf = engine.registry.find(workflow_id)
    if wf is None:
        _fail("Workflow not found")
    typer.echo(f"Workflow {wf.id}: {wf.name}")
    if wf.description:
        typer.echo(wf.description)
    typer.echo(f"Trigger: {wf.trigger.type} {wf.trigger.conditions}")
    for step in wf.steps:
        typer.echo(f"- {step.id} {step.name}: {step.action} (timeout {step.timeout:g}s)")


@workflow_app.command("run")
def workflow_run(
    ctx: typer.Context,
    workflow_id: str,
    incident: str = typer.Option(..., "--incident", "-i", help="Incident id to run against"),
    param: Optional[List[str]] = typer.Option(
        None, "--param", "-p", help="Action parameter as key=value (repeatable)"
    ),
) -> None:
    """
    Run a workflow against an incident and wait for it to finish.

    Exits with code 1 when the workflow is unknown, disabled, or fails.

    Example:
        soarflow workflow run wf_vulnerability_response -i inc_003 -p cve=CVE-2024-1234
    """
    engine = _engine(ctx)
    params = _parse_params(param)
    try:
        execution = asyncio.run(engine.execute_workflow(workflow_id, incident, params))
    except SoarflowError as exc:
        _fail(str(exc))
    _echo_execution(execution)
    if execution.status != "completed":
        raise typer.Exit(code=1)


@incident_app.command("list")
def incident_list(ctx: typer.Context) -> None:
    """List incidents, newest first."""
    engine = _engine(ctx)
    for inc in engine.get_incidents():
        typer.echo(f"{inc.id}\t{inc.status}\t{inc.severity}\t{inc.type}\t{inc.title}")


@incident_app.command("create")
def incident_create(
    ctx: typer.Context,
    title: str = typer.Option(..., help="Short incident title"),
    type_: str = typer.Option(..., "--type", help="Incident type, e.g. Phishing"),
    severity: str = typer.Option(..., help="low, medium, high or critical"),
    description: str = typer.Option("", help="Longer description"),
    assigned_to: Optional[str] = typer.Option(None, help="Owner of the incident"),
    asset: Optional[List[str]] = typer.Option(None, help="Affected asset (repeatable)"),
) -> None:
    """
    Create an incident and run every workflow it triggers.

    Example:
        soarflow incident create --title "Phish" --type Phishing --severity high
    """
    engine = _engine(ctx)

    async def _create():
        incident = await engine.create_incident(
            {
                "title": title,
                "type": type_,
                "severity": severity,
                "description": description,
                "assigned_to": assigned_to,
                "affected_assets": asset or [],
            }
        )
        await engine.wait_for_executions()
        return incident, await engine.get_executions(incident_id=incident.id)

    try:
        incident, executions = asyncio.run(_create())
    except SoarflowError as exc:
        _fail(str(exc))

    typer.echo(f"Incident {incident.id} created ({incident.severity} {incident.type})")
    if not executions:
        typer.echo("No workflows triggered.")
        return
    for execution in executions:
        typer.echo(f"Workflow {execution.workflow_id}:")
        _echo_execution(execution)


@playbook_app.command("list")
def playbook_list(ctx: typer.Context) -> None:
    """List response playbooks with their estimated effort in minutes."""
    engine = _engine(ctx)
    for pb in engine.get_playbooks():
        typer.echo(f"{pb.id}\t{pb.severity}\t{pb.category}\t{pb.name}\t~{pb.estimated_time} min")


@execution_app.command("list")
def execution_list(
    ctx: typer.Context,
    workflow: Optional[str] = typer.Option(None, help="Only this workflow id"),
    incident: Optional[str] = typer.Option(None, help="Only this incident id"),
) -> None:
    """
    List recorded executions.

    History survives between invocations only with a database configured,
    e.g. SOARFLOW_DATABASE_URL=sqlite://soarflow.db.
    """
    engine = _engine(ctx)
    executions = asyncio.run(engine.get_executions(workflow_id=workflow, incident_id=incident))
    if not executions:
        typer.echo("No executions found")
        return
    for ex in executions:
        typer.echo(f"{ex.id}\t{ex.workflow_id}\t{ex.incident_id}\t{ex.status}\t{ex.progress}%")


@execution_app.command("show")
def execution_show(ctx: typer.Context, execution_id: str) -> None:
    """Show one recorded execution with its step results."""
    engine = _engine(ctx)
    try:
        execution = asyncio.run(engine.get_execution(execution_id))
    except SoarflowError:
        _fail("Execution not found")
    _echo_execution(execution)


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Print automation statistics computed from the execution history."""
    engine = _engine(ctx)
    summary = asyncio.run(engine.get_automation_statistics())
    for key, value in summary.model_dump().items():
        typer.echo(f"{key}: {value}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
