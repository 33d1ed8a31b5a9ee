"""Main CLI for tasked."""

import typer
from pathlib import Path
from rich.console import Console
from typing import List, Optional

from .config import Settings, resolve_settings
from .db import Database
from .errors import PlannerError
from .logging_config import configure_logging
from .output import format_response, render_cli
from .plans import PlanManager
from .services.plans import (
    add_step as svc_add_step,
    compact_plans as svc_compact_plans,
    get_plan as svc_get_plan,
    list_plans as svc_list_plans,
    new_plan as svc_new_plan,
    parse_references,
    remove_plans as svc_remove_plans,
    remove_steps as svc_remove_steps,
    reorder_steps as svc_reorder_steps,
    set_step_status as svc_set_step_status,
)

app = typer.Typer(
    name="tasked",
    help="tasked - plans made of ordered steps, stored in SQLite",
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    database_file: Optional[Path] = typer.Option(
        None, "--database-file", help="Path to the SQLite database (default: ~/.tasked/tasks.db)"
    ),
):
    """Resolve settings and configure logging for every command."""
    settings = resolve_settings(database_file=database_file)
    configure_logging(settings)
    ctx.obj = settings


def _print(text: str) -> None:
    """Print plain text, without Rich markup or highlighting."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}", highlight=False, soft_wrap=True)
    raise typer.Exit(1)


def get_manager(ctx: typer.Context) -> PlanManager:
    """Open the configured database or exit with error."""
    settings: Settings = ctx.obj or resolve_settings()
    try:
        return PlanManager(Database(settings.database_file))
    except PlannerError as e:
        _fail(e)


# ============================================================================
# Plan Commands
# ============================================================================

plan_app = typer.Typer(help="Create, inspect and edit plans")
app.add_typer(plan_app, name="plan")


@plan_app.command("new")
def new_plan(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan to create"),
):
    """Create a new, empty plan."""
    manager = get_manager(ctx)
    try:
        svc_new_plan(manager, plan_name)
    except PlannerError as e:
        _fail(e)
    _print(f"Created plan '{plan_name}'")


@plan_app.command("list")
def list_plans(
    ctx: typer.Context,
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (text|json)"),
):
    """List all plans with their status and step counts."""
    manager = get_manager(ctx)
    try:
        plans = svc_list_plans(manager)
    except PlannerError as e:
        _fail(e)

    if output_format == "json":
        _print(render_cli(format_response({"plans": plans}, "json")))
        return

    if not plans:
        _print("No plans found.")
        return

    for plan in plans:
        if plan["total_tasks"] == 0:
            _print(f"{plan['name']} [{plan['status']}] (no tasks)")
        else:
            _print(
                f"{plan['name']} [{plan['status']}] "
                f"({plan['completed_tasks']}/{plan['total_tasks']} tasks completed)"
            )


@plan_app.command("inspect")
def inspect_plan(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format (text|json)"),
):
    """Show a plan's steps, criteria and references."""
    manager = get_manager(ctx)
    try:
        if output_format == "json":
            response = format_response(svc_get_plan(manager, plan_name), "json")
            _print(render_cli(response))
            return
        plan = manager.get(plan_name)
    except PlannerError as e:
        _fail(e)

    console.out(plan.inspect(), end="", highlight=False)


@plan_app.command("next-step")
def next_step(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
):
    """Show the first step that is not done yet."""
    manager = get_manager(ctx)
    try:
        step = manager.get(plan_name).next_step()
    except PlannerError as e:
        _fail(e)

    if step is None:
        _print(f"Plan '{plan_name}' is completed - all steps are done!")
        return

    _print(f"Next step: {step.id}")
    _print(f"Status: {step.status}")
    _print(f"\n{step.description}")
    if step.acceptance_criteria:
        _print("\nAcceptance Criteria:")
        for i, criterion in enumerate(step.acceptance_criteria, start=1):
            _print(f"{i}. {criterion}")
    if step.references:
        _print("\nReferences:")
        for reference in step.references:
            _print(f"- {reference}")


@plan_app.command("mark-as-completed")
def mark_as_completed(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
    step_id: str = typer.Argument(..., help="Step to mark as DONE"),
):
    """Mark a step as completed."""
    manager = get_manager(ctx)
    try:
        svc_set_step_status(manager, plan_name, step_id, completed=True)
    except PlannerError as e:
        _fail(e)
    _print(f"Step '{step_id}' in plan '{plan_name}' marked as completed")


@plan_app.command("mark-as-incomplete")
def mark_as_incomplete(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
    step_id: str = typer.Argument(..., help="Step to mark as TODO"),
):
    """Mark a step as incomplete."""
    manager = get_manager(ctx)
    try:
        svc_set_step_status(manager, plan_name, step_id, completed=False)
    except PlannerError as e:
        _fail(e)
    _print(f"Marked step '{step_id}' in plan '{plan_name}' as incomplete")


@plan_app.command("remove-steps")
def remove_steps(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
    step_ids: List[str] = typer.Argument(..., help="Steps to remove"),
):
    """Remove one or more steps from a plan."""
    manager = get_manager(ctx)
    try:
        removed = svc_remove_steps(manager, plan_name, step_ids)
    except PlannerError as e:
        _fail(e)

    for step_id in step_ids:
        if step_id in removed:
            _print(f"Removed step '{step_id}' from plan '{plan_name}'")
        else:
            _print(f"Step '{step_id}' not found in plan '{plan_name}'")


@plan_app.command("reorder-steps")
def reorder_steps(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
    step_ids: List[str] = typer.Argument(..., help="Step ids in their new order"),
):
    """Move the given steps to the front of the plan, in order.

    Steps that are not listed keep their relative order after them.
    """
    manager = get_manager(ctx)
    try:
        svc_reorder_steps(manager, plan_name, step_ids, strict=True)
    except PlannerError as e:
        _fail(e)
    _print(f"Reordered steps in plan '{plan_name}'")


@plan_app.command("add-step")
def add_step(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
    step_id: str = typer.Argument(..., help="Id for the new step"),
    description: str = typer.Argument(..., help="Step description"),
    acceptance_criteria: Optional[List[str]] = typer.Argument(None, help="Acceptance criteria"),
    after: Optional[str] = typer.Option(None, "--after", help="Insert after this step instead of at the end"),
    references: Optional[str] = typer.Option(
        None, "--references", help="Comma-separated references (URLs, file paths, ...)"
    ),
):
    """Add a new step to an existing plan."""
    manager = get_manager(ctx)
    try:
        svc_add_step(
            manager,
            plan_name,
            step_id,
            description,
            acceptance_criteria=list(acceptance_criteria or []),
            references=parse_references(references),
            after=after,
        )
    except PlannerError as e:
        _fail(e)
    _print(f"Added step '{step_id}' to plan '{plan_name}'")


@plan_app.command("remove")
def remove_plans(
    ctx: typer.Context,
    plan_names: List[str] = typer.Argument(..., help="Plans to remove"),
):
    """Remove one or more plans with all their steps."""
    manager = get_manager(ctx)
    try:
        results = svc_remove_plans(manager, plan_names)
    except PlannerError as e:
        _fail(e)

    failed = False
    for name, outcome in results.items():
        if outcome == "success":
            _print(f"Removed plan '{name}'")
        else:
            failed = True
            _print(f"Failed to remove plan '{name}': {outcome}")

    if failed:
        console.print("[red]Error:[/red] some plans could not be removed")
        raise typer.Exit(1)


@plan_app.command("is-completed")
def is_completed(
    ctx: typer.Context,
    plan_name: str = typer.Argument(..., help="Name of the plan"),
):
    """Print true or false; exit status 1 if the plan still has open steps."""
    manager = get_manager(ctx)
    try:
        completed = manager.get(plan_name).is_completed()
    except PlannerError as e:
        _fail(e)

    if completed:
        _print("true")
        return
    _print("false")
    raise typer.Exit(1)


@plan_app.command("compact")
def compact(ctx: typer.Context):
    """Remove every plan whose steps are all done (or that has no steps)."""
    manager = get_manager(ctx)
    try:
        result = svc_compact_plans(manager)
    except PlannerError as e:
        _fail(e)

    for name in result["removed"]:
        _print(f"Removed plan '{name}'")
    _print(f"Compaction complete. Removed {result['count']} completed plan(s).")


# ============================================================================
# MCP Server
# ============================================================================


@app.command("mcp")
def mcp_server(ctx: typer.Context):
    """Run the MCP server on stdio."""
    from .mcp_server import run_server

    settings: Settings = ctx.obj or resolve_settings()
    run_server(settings.database_file)


if __name__ == "__main__":
    app()
