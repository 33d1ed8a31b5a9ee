"""Shared services for CLI and MCP surfaces."""

from .plans import (
    add_step,
    compact_plans,
    format_plan,
    format_step,
    format_summary,
    get_next_step,
    get_plan,
    inspect_plan,
    is_completed,
    list_plans,
    new_plan,
    parse_references,
    remove_plans,
    remove_steps,
    reorder_steps,
    set_step_status,
)

__all__ = [
    "add_step",
    "compact_plans",
    "format_plan",
    "format_step",
    "format_summary",
    "get_next_step",
    "get_plan",
    "inspect_plan",
    "is_completed",
    "list_plans",
    "new_plan",
    "parse_references",
    "remove_plans",
    "remove_steps",
    "reorder_steps",
    "set_step_status",
]
