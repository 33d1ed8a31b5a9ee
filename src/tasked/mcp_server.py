"""MCP Server for tasked - plan and step management for AI assistants.

Exposes a single ``manage_plan`` tool. The ``action`` argument selects the
operation; the remaining arguments are used by the actions that need them.
"""

from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from .config import resolve_settings
from .db import Database
from .errors import PlannerError
from .logging_config import configure_logging, get_logger
from .output import OUTPUT_FORMATS, format_response
from .plans import PlanManager
from .services import plans as svc

logger = get_logger(__name__)

ACTIONS = (
    "add_steps",
    "inspect",
    "list_plans",
    "remove_plans",
    "compact_plans",
    "remove_steps",
    "reorder_steps",
    "set_status",
    "get_next_step",
    "is_completed",
)

STATUS_VALUES = ("completed", "incomplete")

# Create the MCP server
mcp = FastMCP(
    "tasked-planner",
    instructions="""tasked - plans made of ordered steps

## Quick Reference

| Goal | action | Needs |
|------|--------|-------|
| Add a step (creates the plan) | `add_steps` | step_id, description, acceptance_criteria?, references? |
| Show a plan | `inspect` | |
| What next? | `get_next_step` | |
| Complete a step | `set_status` | step_id, status="completed" |
| Reopen a step | `set_status` | step_id, status="incomplete" |
| Drop steps | `remove_steps` | step_ids |
| Reorder | `reorder_steps` | step_order (unlisted steps keep their order after) |
| Done? | `is_completed` | |
| All plans | `list_plans` | |
| Delete plans | `remove_plans` | plan_names |
| Clean up finished plans | `compact_plans` | |

References are URLs, file paths or other identifiers (1-5 per step)."""
)

_manager: Optional[PlanManager] = None


def _get_manager() -> PlanManager:
    """Get the process-wide plan manager, opening the database on first use."""
    global _manager
    if _manager is None:
        settings = resolve_settings()
        _manager = PlanManager(Database(settings.database_file))
    return _manager


def _require(value, name: str):
    if value is None or value == "" or value == []:
        raise ToolError(f"{name} required")
    return value


@mcp.tool()
def manage_plan(
    plan_name: str,
    action: str,
    step_id: Optional[str] = None,
    description: Optional[str] = None,
    acceptance_criteria: Optional[list[str]] = None,
    references: Optional[list[str]] = None,
    step_ids: Optional[list[str]] = None,
    step_order: Optional[list[str]] = None,
    plan_names: Optional[list[str]] = None,
    status: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Manage plans and their steps.

    Args:
        plan_name: Name of the plan to operate on
        action: One of add_steps, inspect, list_plans, remove_plans,
            compact_plans, remove_steps, reorder_steps, set_status,
            get_next_step, is_completed
        step_id: Step id (add_steps, set_status)
        description: Step description (add_steps)
        acceptance_criteria: Acceptance criteria for the step (add_steps)
        references: URLs, file paths or other identifiers (add_steps)
        step_ids: Steps to remove (remove_steps)
        step_order: New order of step ids (reorder_steps)
        plan_names: Plans to remove (remove_plans)
        status: "completed" or "incomplete" (set_status)
        format: Output format (json|text)

    Steps are always returned with id, description, status,
    acceptance_criteria and references.
    """
    if action not in ACTIONS:
        raise ToolError(f"unknown action: {action}")
    if format not in OUTPUT_FORMATS:
        raise ToolError(f"unknown format: {format} (must be one of {', '.join(OUTPUT_FORMATS)})")

    manager = _get_manager()
    try:
        return _dispatch(
            manager,
            plan_name=plan_name,
            action=action,
            step_id=step_id,
            description=description,
            acceptance_criteria=acceptance_criteria,
            references=references,
            step_ids=step_ids,
            step_order=step_order,
            plan_names=plan_names,
            status=status,
            output_format=format,
        )
    except PlannerError as e:
        logger.warning("manage_plan_failed", action=action, plan=plan_name, error=str(e))
        raise ToolError(str(e)) from e


def _dispatch(
    manager: PlanManager,
    plan_name: str,
    action: str,
    step_id: Optional[str],
    description: Optional[str],
    acceptance_criteria: Optional[list[str]],
    references: Optional[list[str]],
    step_ids: Optional[list[str]],
    step_order: Optional[list[str]],
    plan_names: Optional[list[str]],
    status: Optional[str],
    output_format: str,
) -> dict:
    if action == "add_steps":
        result = svc.add_step(
            manager,
            _require(plan_name, "plan_name"),
            _require(step_id, "step_id"),
            _require(description, "description"),
            acceptance_criteria=acceptance_criteria or [],
            references=references or [],
            create_missing=True,
        )
        return format_response(result, output_format)

    if action == "inspect":
        plan = manager.get(_require(plan_name, "plan_name"))
        return format_response(
            svc.format_plan(plan), output_format, text_renderer=lambda _: plan.inspect()
        )

    if action == "list_plans":
        return format_response({"plans": svc.list_plans(manager)}, output_format)

    if action == "remove_plans":
        result = svc.remove_plans(manager, _require(plan_names, "plan_names"))
        return format_response(result, output_format)

    if action == "compact_plans":
        result = svc.compact_plans(manager)
        result["message"] = "Completed plans compacted successfully"
        return format_response(result, output_format)

    if action == "remove_steps":
        removed = svc.remove_steps(manager, plan_name, _require(step_ids, "step_ids"))
        return format_response(
            {
                "message": f"Removed {len(removed)} steps from plan '{plan_name}'",
                "removed": len(removed),
                "removed_step_ids": removed,
            },
            output_format,
        )

    if action == "reorder_steps":
        order = svc.reorder_steps(manager, plan_name, _require(step_order, "step_order"))
        return format_response(
            {"message": f"Steps reordered in plan '{plan_name}'", "step_order": order},
            output_format,
        )

    if action == "set_status":
        _require(step_id, "step_id")
        if status not in STATUS_VALUES:
            raise ToolError(f"invalid status: {status} (must be 'completed' or 'incomplete')")
        result = svc.set_step_status(manager, plan_name, step_id, completed=status == "completed")
        result["message"] = f"Step '{step_id}' marked as {status} in plan '{plan_name}'"
        return format_response(result, output_format)

    if action == "get_next_step":
        step = svc.get_next_step(manager, plan_name)
        if step is None:
            return format_response({"message": "No incomplete steps found", "step": None}, output_format)
        return format_response(step, output_format)

    # is_completed
    return format_response({"completed": svc.is_completed(manager, plan_name)}, output_format)


def run_server(database_file: Optional[Path] = None) -> None:
    """Run the MCP server on stdio against the resolved database."""
    global _manager
    settings = resolve_settings(database_file=database_file)
    configure_logging(settings)
    _manager = PlanManager(Database(settings.database_file))
    logger.info("mcp_server_starting", database_file=str(settings.database_file))
    mcp.run(transport="stdio")


def main():
    """Run the MCP server."""
    run_server()


if __name__ == "__main__":
    main()
