"""Shared plan operations for CLI and MCP.

Each function loads what it needs, applies one edit and saves. Errors are
left to propagate as ``PlannerError`` subclasses; the callers decide how
to present them.
"""

from __future__ import annotations

from typing import Optional

from ..errors import PlanNotFoundError, StepAlreadyExistsError, StepNotFoundError
from ..models import Plan, PlanSummary, Step
from ..plans import PlanManager


def format_step(step: Step) -> dict:
    return step.to_dict()


def format_plan(plan: Plan) -> dict:
    return plan.to_dict()


def format_summary(summary: PlanSummary) -> dict:
    return summary.to_dict()


def parse_references(value: Optional[str]) -> list[str]:
    """Split a comma-separated reference list, dropping blanks."""
    if not value:
        return []
    return [ref.strip() for ref in value.split(",") if ref.strip()]


def new_plan(manager: PlanManager, name: str) -> dict:
    """Create and save an empty plan."""
    plan = manager.create(name)
    manager.save(plan)
    return {"id": plan.id, "steps": 0}


def list_plans(manager: PlanManager) -> list[dict]:
    return [format_summary(summary) for summary in manager.list()]


def get_plan(manager: PlanManager, name: str) -> dict:
    return format_plan(manager.get(name))


def inspect_plan(manager: PlanManager, name: str) -> str:
    return manager.get(name).inspect()


def get_next_step(manager: PlanManager, name: str) -> Optional[dict]:
    """Get the first incomplete step of a plan, or None when all are done."""
    step = manager.get(name).next_step()
    return format_step(step) if step else None


def is_completed(manager: PlanManager, name: str) -> bool:
    return manager.get(name).is_completed()


def set_step_status(manager: PlanManager, name: str, step_id: str, completed: bool) -> dict:
    """Mark a step completed or incomplete and save the plan."""
    plan = manager.get(name)
    if completed:
        plan.mark_as_completed(step_id)
    else:
        plan.mark_as_incomplete(step_id)
    manager.save(plan)
    return {
        "plan": plan.id,
        "step_id": step_id,
        "status": plan.get_step(step_id).status,
    }


def add_step(
    manager: PlanManager,
    name: str,
    step_id: str,
    description: str,
    acceptance_criteria: Optional[list[str]] = None,
    references: Optional[list[str]] = None,
    after: Optional[str] = None,
    create_missing: bool = False,
) -> dict:
    """Add a step to a plan and save it.

    Args:
        manager: Plan manager
        name: Plan name
        step_id: Id for the new step; must not already be used in the plan
        description: Step description
        acceptance_criteria: Optional ordered criteria
        references: Optional ordered references
        after: Insert after this step instead of appending
        create_missing: Create the plan if it does not exist yet

    Returns:
        Plan id and resulting step count

    Raises:
        StepAlreadyExistsError: If step_id is already in the plan
        StepNotFoundError: If after names a step that is not in the plan
    """
    try:
        plan = manager.get(name)
    except PlanNotFoundError:
        if not create_missing:
            raise
        plan = manager.create(name)

    if plan.get_step(step_id) is not None:
        raise StepAlreadyExistsError(plan.id, step_id)

    existing_ids = [step.id for step in plan.steps]
    insert_index = len(existing_ids)
    if after:
        if after not in existing_ids:
            raise StepNotFoundError(plan.id, after)
        insert_index = existing_ids.index(after) + 1

    plan.add_step(step_id, description, acceptance_criteria, references)
    if insert_index < len(existing_ids):
        plan.reorder(existing_ids[:insert_index] + [step_id] + existing_ids[insert_index:])

    manager.save(plan)
    return {"id": plan.id, "steps": len(plan.steps)}


def remove_steps(manager: PlanManager, name: str, step_ids: list[str]) -> list[str]:
    """Remove steps from a plan and save it.

    Returns:
        Ids that were in the plan and are now removed, in request order;
        unknown ids are left out
    """
    plan = manager.get(name)
    present = {step.id for step in plan.steps}
    plan.remove_steps(step_ids)
    manager.save(plan)
    return [step_id for step_id in dict.fromkeys(step_ids) if step_id in present]


def reorder_steps(
    manager: PlanManager,
    name: str,
    step_order: list[str],
    strict: bool = False,
) -> list[str]:
    """Reorder a plan's steps and save it.

    Args:
        manager: Plan manager
        name: Plan name
        step_order: Step ids to move to the front, in order
        strict: Reject ids that are not in the plan instead of ignoring them

    Returns:
        Step ids in their new order
    """
    plan = manager.get(name)
    if strict:
        for step_id in step_order:
            if plan.get_step(step_id) is None:
                raise StepNotFoundError(plan.id, step_id)
    plan.reorder(step_order)
    manager.save(plan)
    return [step.id for step in plan.steps]


def remove_plans(manager: PlanManager, names: list[str]) -> dict[str, str]:
    """Remove plans, reporting "success" or the error text per name."""
    results = manager.remove(names)
    return {
        plan_name: "success" if err is None else str(err)
        for plan_name, err in results.items()
    }


def compact_plans(manager: PlanManager) -> dict:
    removed = manager.compact()
    return {"removed": removed, "count": len(removed)}
