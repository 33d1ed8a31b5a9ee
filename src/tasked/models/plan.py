"""Plan and step data models with in-memory editing operations.

None of the operations here touch storage. A plan is loaded by
``PlanManager.get``, edited with the methods below, and written back with
``PlanManager.save``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from ..errors import StepNotFoundError


class StepStatus(str, Enum):
    """Status of a step."""
    TODO = "TODO"
    DONE = "DONE"


class PlanState(Enum):
    """Whether a plan object is known to exist in storage.

    Never serialized. ``PlanManager.save`` inserts the plan row for
    UNSAVED plans and requires an existing row for PERSISTED ones.
    """
    UNSAVED = "unsaved"
    PERSISTED = "persisted"


@dataclass
class Step:
    """A single task within a plan."""
    id: str
    description: str = ""
    status: str = StepStatus.TODO.value
    acceptance_criteria: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    order: int = 0  # Assigned from list position on save

    def __setattr__(self, name, value):
        # Status always reads back upper-cased, however it was assigned
        if name == "status":
            value = _normalize_status(value)
        super().__setattr__(name, value)

    def __post_init__(self) -> None:
        self.description = self.description or ""
        self.acceptance_criteria = list(self.acceptance_criteria or [])
        self.references = list(self.references or [])

    @property
    def is_done(self) -> bool:
        return self.status == StepStatus.DONE.value

    def to_dict(self) -> dict:
        """Convert to the JSON shape used by the CLI and MCP adapters."""
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status,
            "acceptance_criteria": list(self.acceptance_criteria or []),
            "references": list(self.references or []),
        }


@dataclass
class Plan:
    """A named, ordered collection of steps."""
    id: str
    steps: list[Step] = field(default_factory=list)
    state: PlanState = field(default=PlanState.UNSAVED, compare=False)

    @property
    def is_new(self) -> bool:
        return self.state is PlanState.UNSAVED

    def get_step(self, step_id: str) -> Optional[Step]:
        """Find the first step with the given id."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def add_step(
        self,
        step_id: str,
        description: str,
        acceptance_criteria: Optional[list[str]] = None,
        references: Optional[list[str]] = None,
    ) -> Step:
        """Append a new TODO step.

        Duplicate ids are not rejected here; they fail when the plan is saved.

        Args:
            step_id: Short identifier, e.g. "add-tests"
            description: Step description
            acceptance_criteria: Optional ordered criteria
            references: Optional ordered URLs, paths or other identifiers

        Returns:
            The appended step
        """
        step = Step(
            id=step_id,
            description=description,
            status=StepStatus.TODO.value,
            acceptance_criteria=acceptance_criteria or [],
            references=references or [],
        )
        self.steps.append(step)
        return step

    def remove_steps(self, step_ids: Iterable[str]) -> int:
        """Remove every step whose id is in step_ids.

        Unknown ids are ignored. Remaining steps keep their relative order.

        Returns:
            Number of steps removed
        """
        to_remove = set(step_ids)
        if not to_remove or not self.steps:
            return 0

        kept = [step for step in self.steps if step.id not in to_remove]
        removed = len(self.steps) - len(kept)
        self.steps = kept
        return removed

    def reorder(self, step_order: Iterable[str]) -> None:
        """Move the listed steps to the front, in the given order.

        Ids not in the plan are ignored, and only the first occurrence of a
        repeated id counts. Steps not listed follow in their previous
        relative order.
        """
        if not self.steps:
            return

        by_id: dict[str, Step] = {}
        for step in self.steps:
            by_id.setdefault(step.id, step)

        reordered: list[Step] = []
        placed: set[str] = set()
        for step_id in step_order:
            step = by_id.get(step_id)
            if step is None or step_id in placed:
                continue
            reordered.append(step)
            placed.add(step_id)

        reordered.extend(step for step in self.steps if step.id not in placed)
        self.steps = reordered

    def mark_as_completed(self, step_id: str) -> None:
        """Set a step's status to DONE.

        Raises:
            StepNotFoundError: If no step has this id
        """
        self._require_step(step_id).status = StepStatus.DONE.value

    def mark_as_incomplete(self, step_id: str) -> None:
        """Set a step's status to TODO.

        Raises:
            StepNotFoundError: If no step has this id
        """
        self._require_step(step_id).status = StepStatus.TODO.value

    def next_step(self) -> Optional[Step]:
        """Get the first step that is not DONE, or None if there is none."""
        for step in self.steps:
            if not step.is_done:
                return step
        return None

    def is_completed(self) -> bool:
        return self.next_step() is None

    def inspect(self) -> str:
        """Render the plan as markdown-like text, one section per step."""
        lines: list[str] = []
        for i, step in enumerate(self.steps, start=1):
            lines.append(f"## {i}. [{step.status}] {step.id}")
            lines.append("")
            if step.description:
                lines.append(step.description)
                lines.append("")

            if step.acceptance_criteria:
                lines.append("Acceptance Criteria:")
                for j, criterion in enumerate(step.acceptance_criteria, start=1):
                    lines.append(f"{j}. {criterion}")
                lines.append("")

            if step.references:
                lines.append("References:")
                for reference in step.references:
                    lines.append(f"- {reference}")
                lines.append("")

        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "steps": [step.to_dict() for step in self.steps],
        }

    def _require_step(self, step_id: str) -> Step:
        step = self.get_step(step_id)
        if step is None:
            raise StepNotFoundError(self.id, step_id)
        return step


@dataclass
class PlanSummary:
    """Lightweight plan info for listings."""
    name: str
    status: str
    total_steps: int = 0
    completed_steps: int = 0

    @classmethod
    def from_counts(cls, name: str, total_steps: int, completed_steps: int) -> "PlanSummary":
        """Derive the overall status from step counts."""
        done = total_steps > 0 and completed_steps == total_steps
        return cls(
            name=name,
            status=StepStatus.DONE.value if done else StepStatus.TODO.value,
            total_steps=total_steps,
            completed_steps=completed_steps,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "total_tasks": self.total_steps,
            "completed_tasks": self.completed_steps,
        }


def _normalize_status(status) -> str:
    if isinstance(status, StepStatus):
        return status.value
    return (status or StepStatus.TODO.value).upper()
