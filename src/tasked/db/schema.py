"""Database schema definitions for tasked plan storage.

There is no version table. The whole schema is re-applied every time a
database is opened, so every statement must be safe to run against an
already initialized file. New relations are added with IF NOT EXISTS.
"""

TABLES = ("plans", "steps", "step_acceptance_criteria", "step_references")

INDEXES = (
    "idx_steps_plan_id",
    "idx_step_acceptance_criteria_plan_step",
    "idx_step_references_plan_step",
)

TRIGGERS = (
    "plans_updated_at",
    "steps_updated_at",
    "step_acceptance_criteria_updated_at",
    "step_references_updated_at",
)

SCHEMA_SQL = """
-- ============================================================
-- PLANS
-- The id doubles as the user-facing plan name
-- ============================================================
CREATE TABLE IF NOT EXISTS plans (
    id TEXT PRIMARY KEY NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TRIGGER IF NOT EXISTS plans_updated_at
AFTER UPDATE ON plans
FOR EACH ROW
BEGIN
    UPDATE plans SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;

-- ============================================================
-- STEPS
-- step_order is the 0-based position, rewritten on every save
-- ============================================================
CREATE TABLE IF NOT EXISTS steps (
    id TEXT NOT NULL,
    plan_id TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL CHECK(status IN ('TODO', 'DONE')),
    step_order INTEGER NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (plan_id, id),
    FOREIGN KEY (plan_id) REFERENCES plans(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_steps_plan_id ON steps(plan_id);

CREATE TRIGGER IF NOT EXISTS steps_updated_at
AFTER UPDATE ON steps
FOR EACH ROW
BEGIN
    UPDATE steps SET updated_at = CURRENT_TIMESTAMP WHERE plan_id = OLD.plan_id AND id = OLD.id;
    UPDATE plans SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.plan_id;
END;

-- ============================================================
-- STEP ACCEPTANCE CRITERIA
-- Replaced wholesale whenever the owning step is saved
-- ============================================================
CREATE TABLE IF NOT EXISTS step_acceptance_criteria (
    plan_id TEXT NOT NULL,
    step_id TEXT NOT NULL,
    criterion TEXT NOT NULL,
    criterion_order INTEGER NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (plan_id, step_id, criterion_order),
    FOREIGN KEY (plan_id, step_id) REFERENCES steps(plan_id, id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_step_acceptance_criteria_plan_step
    ON step_acceptance_criteria(plan_id, step_id);

CREATE TRIGGER IF NOT EXISTS step_acceptance_criteria_updated_at
AFTER INSERT ON step_acceptance_criteria
FOR EACH ROW
BEGIN
    UPDATE steps SET updated_at = CURRENT_TIMESTAMP
    WHERE plan_id = NEW.plan_id AND id = NEW.step_id;
    UPDATE plans SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.plan_id;
END;

-- ============================================================
-- STEP REFERENCES
-- URLs, file paths or other identifiers; replaced wholesale like criteria
-- ============================================================
CREATE TABLE IF NOT EXISTS step_references (
    plan_id TEXT NOT NULL,
    step_id TEXT NOT NULL,
    reference_url TEXT NOT NULL,
    reference_order INTEGER NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (plan_id, step_id, reference_order),
    FOREIGN KEY (plan_id, step_id) REFERENCES steps(plan_id, id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_step_references_plan_step
    ON step_references(plan_id, step_id);

CREATE TRIGGER IF NOT EXISTS step_references_updated_at
AFTER INSERT ON step_references
FOR EACH ROW
BEGIN
    UPDATE steps SET updated_at = CURRENT_TIMESTAMP
    WHERE plan_id = NEW.plan_id AND id = NEW.step_id;
    UPDATE plans SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.plan_id;
END;
"""


def get_schema_sql() -> str:
    """Get the full schema script.

    Returns:
        SQL script creating every relation, index and trigger if absent
    """
    return SCHEMA_SQL
