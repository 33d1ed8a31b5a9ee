"""Error types raised by the planner core.

Every failure path produces one of these so that the CLI and MCP adapters
can map it to an exit code or a tool error without inspecting messages.
"""

from __future__ import annotations

from typing import Optional


class PlannerError(Exception):
    """Base class for all planner errors."""


class NotFoundError(PlannerError):
    """A plan or step referenced by id does not exist."""


class PlanNotFoundError(NotFoundError):
    """Raised when a plan is not found in storage."""

    def __init__(self, plan_id: str, message: Optional[str] = None):
        self.plan_id = plan_id
        super().__init__(message or f"plan with name '{plan_id}' not found")


class StepNotFoundError(NotFoundError):
    """Raised when a step is not found in a plan."""

    def __init__(self, plan_id: str, step_id: str):
        self.plan_id = plan_id
        self.step_id = step_id
        super().__init__(f"step with ID '{step_id}' not found in plan '{plan_id}'")


class AlreadyExistsError(PlannerError):
    """An entity with this id already exists where creation was requested."""


class PlanAlreadyExistsError(AlreadyExistsError):
    """Raised when saving a new plan whose id is already stored."""

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(
            f"plan with name '{plan_id}' already exists in database, cannot save as new"
        )


class StepAlreadyExistsError(AlreadyExistsError):
    """Raised by the adapters when adding a step whose id is taken."""

    def __init__(self, plan_id: str, step_id: str):
        self.plan_id = plan_id
        self.step_id = step_id
        super().__init__(f"step with ID '{step_id}' already exists in plan '{plan_id}'")


class InvalidArgumentError(PlannerError, ValueError):
    """An argument was rejected before any storage access."""


class InvalidPlanNameError(InvalidArgumentError):
    """Raised when a plan name is empty."""

    def __init__(self) -> None:
        super().__init__("plan name cannot be empty")


class StorageError(PlannerError):
    """Transaction, connection, schema or constraint failure."""


class CompactionError(PlannerError):
    """One or more plans could not be removed during compaction."""

    def __init__(self, error_count: int, first_error: PlannerError):
        self.error_count = error_count
        self.first_error = first_error
        super().__init__(
            f"encountered {error_count} error(s) during compaction, first error: {first_error}"
        )
