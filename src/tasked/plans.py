"""Plan storage: loading, synchronizing and bulk-removing plans.

``PlanManager.save`` reconciles an in-memory ``Plan`` with its rows in one
transaction. Step rows are updated in place or inserted, steps missing from
memory are deleted, and every step's criteria and references are replaced
wholesale. Step order always comes from the current list position.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from .db import Database
from .errors import (
    CompactionError,
    InvalidPlanNameError,
    PlanAlreadyExistsError,
    PlannerError,
    PlanNotFoundError,
    StorageError,
)
from .logging_config import get_logger
from .models import Plan, PlanState, PlanSummary, Step

logger = get_logger(__name__)


class _RemoveAborted(Exception):
    """Internal signal to roll back a remove after an item failed."""


class PlanManager:
    """Manages plans and their steps in the database."""

    def __init__(self, db: Database):
        """Initialize the manager.

        Args:
            db: Database connection
        """
        self.db = db

    def create(self, name: str) -> Plan:
        """Create an empty, unsaved plan.

        Nothing is written and storage is not consulted. A clash with an
        existing plan is reported by ``save``.

        Args:
            name: Plan name, also used as its id

        Returns:
            Plan with no steps in the UNSAVED state

        Raises:
            InvalidPlanNameError: If name is empty
        """
        if not name:
            raise InvalidPlanNameError()
        return Plan(id=name, steps=[], state=PlanState.UNSAVED)

    def get(self, name: str) -> Plan:
        """Load a plan with its steps, criteria and references.

        Args:
            name: Plan name

        Returns:
            Fully hydrated plan in the PERSISTED state

        Raises:
            PlanNotFoundError: If no plan has this name
            StorageError: On database failure
        """
        try:
            with self.db.connection() as conn:
                row = conn.execute("SELECT id FROM plans WHERE id = ?", (name,)).fetchone()
                if row is None:
                    raise PlanNotFoundError(name)

                plan = Plan(id=row["id"], steps=[], state=PlanState.PERSISTED)
                step_rows = conn.execute(
                    """
                    SELECT id, description, status, step_order FROM steps
                    WHERE plan_id = ?
                    ORDER BY step_order ASC
                    """,
                    (plan.id,),
                ).fetchall()

                for step_row in step_rows:
                    criteria = conn.execute(
                        """
                        SELECT criterion FROM step_acceptance_criteria
                        WHERE plan_id = ? AND step_id = ?
                        ORDER BY criterion_order ASC
                        """,
                        (plan.id, step_row["id"]),
                    ).fetchall()
                    references = conn.execute(
                        """
                        SELECT reference_url FROM step_references
                        WHERE plan_id = ? AND step_id = ?
                        ORDER BY reference_order ASC
                        """,
                        (plan.id, step_row["id"]),
                    ).fetchall()

                    plan.steps.append(Step(
                        id=step_row["id"],
                        description=step_row["description"] or "",
                        status=step_row["status"],
                        acceptance_criteria=[r["criterion"] for r in criteria],
                        references=[r["reference_url"] for r in references],
                        order=step_row["step_order"],
                    ))
        except sqlite3.Error as e:
            raise StorageError(f"failed to load plan '{name}': {e}") from e

        return plan

    def save(self, plan: Plan) -> None:
        """Persist a plan and its steps in a single transaction.

        UNSAVED plans are inserted; PERSISTED plans must already exist.
        The plan moves to PERSISTED only after the commit succeeds, so a
        failed save can be retried with the same intent.

        Args:
            plan: Plan to persist

        Raises:
            PlanAlreadyExistsError: If an UNSAVED plan's id is already stored
            PlanNotFoundError: If a PERSISTED plan's row is missing
            StorageError: On constraint or database failure; nothing is written
        """
        deleted: list[str] = []
        inserted = 0
        updated = 0

        try:
            with self.db.transaction() as conn:
                if plan.is_new:
                    try:
                        conn.execute("INSERT INTO plans (id) VALUES (?)", (plan.id,))
                    except sqlite3.IntegrityError as e:
                        if "UNIQUE constraint failed" in str(e):
                            raise PlanAlreadyExistsError(plan.id) from e
                        raise
                else:
                    row = conn.execute(
                        "SELECT id FROM plans WHERE id = ?", (plan.id,)
                    ).fetchone()
                    if row is None:
                        raise PlanNotFoundError(
                            plan.id, f"plan with name '{plan.id}' not found in database, cannot update"
                        )

                duplicates = _duplicate_step_ids(plan)
                if duplicates:
                    raise StorageError(
                        f"failed to save plan '{plan.id}': duplicate step ID(s) "
                        f"{', '.join(repr(d) for d in duplicates)} violate the steps primary key"
                    )

                stored_ids = {
                    r["id"]
                    for r in conn.execute(
                        "SELECT id FROM steps WHERE plan_id = ?", (plan.id,)
                    ).fetchall()
                }
                memory_ids = {step.id for step in plan.steps}

                # Children first; cascade would cover this but is not relied on
                for step_id in sorted(stored_ids - memory_ids):
                    self._delete_children(conn, plan.id, step_id)
                    conn.execute(
                        "DELETE FROM steps WHERE plan_id = ? AND id = ?",
                        (plan.id, step_id),
                    )
                    deleted.append(step_id)

                for i, step in enumerate(plan.steps):
                    step.order = i
                    if step.id in stored_ids:
                        conn.execute(
                            """
                            UPDATE steps SET description = ?, status = ?, step_order = ?
                            WHERE plan_id = ? AND id = ?
                            """,
                            (step.description, step.status.upper(), step.order, plan.id, step.id),
                        )
                        updated += 1
                    else:
                        conn.execute(
                            """
                            INSERT INTO steps (id, plan_id, description, status, step_order)
                            VALUES (?, ?, ?, ?, ?)
                            """,
                            (step.id, plan.id, step.description, step.status.upper(), step.order),
                        )
                        inserted += 1

                    self._delete_children(conn, plan.id, step.id)
                    conn.executemany(
                        """
                        INSERT INTO step_acceptance_criteria (plan_id, step_id, criterion_order, criterion)
                        VALUES (?, ?, ?, ?)
                        """,
                        [(plan.id, step.id, j, text) for j, text in enumerate(step.acceptance_criteria or [])],
                    )
                    conn.executemany(
                        """
                        INSERT INTO step_references (plan_id, step_id, reference_order, reference_url)
                        VALUES (?, ?, ?, ?)
                        """,
                        [(plan.id, step.id, j, ref) for j, ref in enumerate(step.references or [])],
                    )
        except sqlite3.Error as e:
            raise StorageError(f"failed to save plan '{plan.id}': {e}") from e

        plan.state = PlanState.PERSISTED
        logger.info(
            "plan_saved",
            plan_id=plan.id,
            steps=len(plan.steps),
            inserted=inserted,
            updated=updated,
            deleted=deleted,
        )

    @staticmethod
    def _delete_children(conn: sqlite3.Connection, plan_id: str, step_id: str) -> None:
        conn.execute(
            "DELETE FROM step_acceptance_criteria WHERE plan_id = ? AND step_id = ?",
            (plan_id, step_id),
        )
        conn.execute(
            "DELETE FROM step_references WHERE plan_id = ? AND step_id = ?",
            (plan_id, step_id),
        )

    def remove(self, plan_names: list[str]) -> dict[str, Optional[PlannerError]]:
        """Delete plans by name in one transaction.

        Steps, criteria and references go with them via ON DELETE CASCADE.
        A missing plan is reported against its own name and does not stop
        the others. If any delete statement fails, or the transaction cannot
        be committed, nothing is removed and every entry that would have
        reported success carries a StorageError instead.

        Args:
            plan_names: Plans to delete

        Returns:
            Mapping of plan name to None on success or the error for that
            name, in input order
        """
        names = list(dict.fromkeys(plan_names))
        results: dict[str, Optional[PlannerError]] = {}

        try:
            with self.db.transaction() as conn:
                self._delete_plans(conn, names, results)
                if any(isinstance(err, StorageError) for err in results.values()):
                    raise _RemoveAborted()
        except _RemoveAborted:
            _revise_successes(
                names, results, "transaction rolled back after another removal failed"
            )
        except sqlite3.Error as e:
            _revise_successes(names, results, f"transaction commit failed for remove: {e}")

        logger.info(
            "plans_removed",
            removed=[name for name in names if results[name] is None],
            failed=[name for name in names if results[name] is not None],
        )
        return results

    @staticmethod
    def _delete_plans(
        conn: sqlite3.Connection,
        names: list[str],
        results: dict[str, Optional[PlannerError]],
    ) -> None:
        for name in names:
            try:
                cursor = conn.execute("DELETE FROM plans WHERE id = ?", (name,))
            except sqlite3.Error as e:
                results[name] = StorageError(f"failed to execute delete for plan '{name}': {e}")
                continue

            if cursor.rowcount == 0:
                results[name] = PlanNotFoundError(name, f"plan '{name}' not found for deletion")
            else:
                results[name] = None

    def compact(self) -> list[str]:
        """Remove every plan that has no steps or only DONE steps.

        Selection and deletion share one transaction, so a plan that gains
        an open step concurrently is either seen with it or not touched.

        Returns:
            Names of the removed plans

        Raises:
            CompactionError: If any selected plan could not be removed;
                nothing is removed in that case
            StorageError: If the selection query fails
        """
        candidates: list[str] = []
        results: dict[str, Optional[PlannerError]] = {}

        try:
            with self.db.transaction() as conn:
                try:
                    rows = conn.execute(
                        """
                        SELECT p.id
                        FROM plans p
                        LEFT JOIN steps s ON p.id = s.plan_id
                        GROUP BY p.id
                        HAVING COUNT(s.id) = 0
                            OR SUM(CASE WHEN UPPER(s.status) = 'DONE' THEN 1 ELSE 0 END) = COUNT(s.id)
                        ORDER BY p.id
                        """
                    ).fetchall()
                except sqlite3.Error as e:
                    raise StorageError(
                        f"failed to query completed plans for compaction: {e}"
                    ) from e

                candidates = [row["id"] for row in rows]
                self._delete_plans(conn, candidates, results)
                if any(err is not None for err in results.values()):
                    raise _RemoveAborted()
        except _RemoveAborted:
            _revise_successes(
                candidates, results, "transaction rolled back after another removal failed"
            )
        except sqlite3.Error as e:
            if not candidates:
                raise StorageError(f"failed to compact plans: {e}") from e
            _revise_successes(candidates, results, f"transaction commit failed for compaction: {e}")

        errors = [results[name] for name in candidates if results[name] is not None]
        if errors:
            raise CompactionError(len(errors), errors[0])

        logger.info("plans_compacted", removed=candidates)
        return candidates

    def list(self) -> list[PlanSummary]:
        """List every plan with its step counts.

        Returns:
            PlanSummary objects ordered by plan name
        """
        try:
            with self.db.connection() as conn:
                rows = conn.execute(
                    """
                    SELECT p.id AS id,
                           COUNT(s.id) AS total_steps,
                           COALESCE(SUM(CASE WHEN UPPER(s.status) = 'DONE' THEN 1 ELSE 0 END), 0)
                               AS completed_steps
                    FROM plans p
                    LEFT JOIN steps s ON p.id = s.plan_id
                    GROUP BY p.id
                    ORDER BY p.id
                    """
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"failed to query plan summaries: {e}") from e

        return [
            PlanSummary.from_counts(
                name=row["id"],
                total_steps=row["total_steps"],
                completed_steps=row["completed_steps"],
            )
            for row in rows
        ]


def _duplicate_step_ids(plan: Plan) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for step in plan.steps:
        if step.id in seen and step.id not in duplicates:
            duplicates.append(step.id)
        seen.add(step.id)
    return duplicates


def _revise_successes(
    names: list[str],
    results: dict[str, Optional[PlannerError]],
    reason: str,
) -> None:
    """Replace every success (or unattempted name) with a StorageError."""
    for name in names:
        if results.get(name) is None:
            results[name] = StorageError(f"plan '{name}' was not removed: {reason}")
