"""Tests for the shared plan services."""

import pytest

from tasked.db import Database
from tasked.errors import PlanNotFoundError, StepAlreadyExistsError, StepNotFoundError
from tasked.plans import PlanManager
from tasked.services import plans as svc


@pytest.fixture
def manager(tmp_path):
    """Create a PlanManager on a fresh database."""
    return PlanManager(Database(tmp_path / "tasks.db"))


@pytest.fixture
def abc_plan(manager):
    """A stored plan with steps a, b, c."""
    svc.new_plan(manager, "p")
    for step_id in ("a", "b", "c"):
        svc.add_step(manager, "p", step_id, f"step {step_id}")
    return "p"


def step_ids(manager, name):
    return [step["id"] for step in svc.get_plan(manager, name)["steps"]]


class TestParseReferences:
    """Tests for the comma-separated reference parser."""

    def test_splits_and_strips(self):
        assert svc.parse_references(" a.md, https://x.io/1 ,b") == ["a.md", "https://x.io/1", "b"]

    def test_empty(self):
        assert svc.parse_references(None) == []
        assert svc.parse_references("") == []
        assert svc.parse_references(" , ") == []


class TestAddStep:
    """Tests for add_step."""

    def test_appends(self, manager, abc_plan):
        result = svc.add_step(manager, abc_plan, "d", "step d", ["ok"], ["ref"])

        assert result == {"id": "p", "steps": 4}
        assert step_ids(manager, abc_plan) == ["a", "b", "c", "d"]

    def test_after_inserts_in_position(self, manager, abc_plan):
        svc.add_step(manager, abc_plan, "x", "inserted", after="a")

        assert step_ids(manager, abc_plan) == ["a", "x", "b", "c"]

    def test_after_last_step(self, manager, abc_plan):
        svc.add_step(manager, abc_plan, "x", "inserted", after="c")

        assert step_ids(manager, abc_plan) == ["a", "b", "c", "x"]

    def test_after_unknown_step(self, manager, abc_plan):
        with pytest.raises(StepNotFoundError):
            svc.add_step(manager, abc_plan, "x", "inserted", after="nope")

        assert step_ids(manager, abc_plan) == ["a", "b", "c"]

    def test_duplicate_id_rejected(self, manager, abc_plan):
        with pytest.raises(StepAlreadyExistsError):
            svc.add_step(manager, abc_plan, "b", "again")

    def test_missing_plan(self, manager):
        with pytest.raises(PlanNotFoundError):
            svc.add_step(manager, "missing", "a", "first")

    def test_create_missing_plan(self, manager):
        result = svc.add_step(manager, "fresh", "a", "first", create_missing=True)

        assert result == {"id": "fresh", "steps": 1}
        assert step_ids(manager, "fresh") == ["a"]


class TestStepOperations:
    """Tests for status, removal and reordering."""

    def test_set_step_status(self, manager, abc_plan):
        result = svc.set_step_status(manager, abc_plan, "a", completed=True)

        assert result == {"plan": "p", "step_id": "a", "status": "DONE"}
        assert svc.get_next_step(manager, abc_plan)["id"] == "b"

        svc.set_step_status(manager, abc_plan, "a", completed=False)
        assert svc.get_next_step(manager, abc_plan)["id"] == "a"

    def test_get_next_step_when_done(self, manager, abc_plan):
        for step_id in ("a", "b", "c"):
            svc.set_step_status(manager, abc_plan, step_id, completed=True)

        assert svc.get_next_step(manager, abc_plan) is None
        assert svc.is_completed(manager, abc_plan)

    def test_remove_steps(self, manager, abc_plan):
        assert svc.remove_steps(manager, abc_plan, ["b", "zzz", "b"]) == ["b"]
        assert step_ids(manager, abc_plan) == ["a", "c"]

    def test_reorder_steps(self, manager, abc_plan):
        order = svc.reorder_steps(manager, abc_plan, ["c", "unknown"])

        assert order == ["c", "a", "b"]
        assert step_ids(manager, abc_plan) == ["c", "a", "b"]

    def test_reorder_steps_strict(self, manager, abc_plan):
        with pytest.raises(StepNotFoundError):
            svc.reorder_steps(manager, abc_plan, ["c", "unknown"], strict=True)

        assert step_ids(manager, abc_plan) == ["a", "b", "c"]

    def test_inspect_plan(self, manager, abc_plan):
        text = svc.inspect_plan(manager, abc_plan)

        assert text.startswith("## 1. [TODO] a\n")
        assert "## 3. [TODO] c" in text


class TestPlanOperations:
    """Tests for listing, removing and compacting plans."""

    def test_new_plan(self, manager):
        assert svc.new_plan(manager, "p") == {"id": "p", "steps": 0}
        assert svc.list_plans(manager) == [
            {"name": "p", "status": "TODO", "total_tasks": 0, "completed_tasks": 0}
        ]

    def test_remove_plans(self, manager, abc_plan):
        results = svc.remove_plans(manager, [abc_plan, "missing"])

        assert results["p"] == "success"
        assert "not found" in results["missing"]

    def test_compact_plans(self, manager, abc_plan):
        svc.new_plan(manager, "empty")

        assert svc.compact_plans(manager) == {"removed": ["empty"], "count": 1}
        assert [p["name"] for p in svc.list_plans(manager)] == ["p"]
