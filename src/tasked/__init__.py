"""tasked - plans made of ordered steps, stored in SQLite."""

from .db import Database
from .errors import (
    CompactionError,
    PlanAlreadyExistsError,
    PlannerError,
    PlanNotFoundError,
    StepNotFoundError,
    StorageError,
)
from .models import Plan, PlanState, PlanSummary, Step, StepStatus
from .plans import PlanManager

__version__ = "0.1.0"

__all__ = [
    "CompactionError",
    "Database",
    "Plan",
    "PlanAlreadyExistsError",
    "PlanManager",
    "PlanNotFoundError",
    "PlanState",
    "PlanSummary",
    "PlannerError",
    "Step",
    "StepNotFoundError",
    "StepStatus",
    "StorageError",
]
