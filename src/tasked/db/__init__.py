"""Database module for tasked plan storage.

This module provides SQLite-based persistence for plans, their steps,
and each step's acceptance criteria and references.

Usage:
    from tasked.db import Database

    db = Database(Path("~/.tasked/tasks.db").expanduser())

    with db.transaction() as conn:
        conn.execute("INSERT INTO plans (id) VALUES (?)", ("release",))
"""

from .connection import Database
from .schema import INDEXES, SCHEMA_SQL, TABLES, TRIGGERS

__all__ = ["Database", "INDEXES", "SCHEMA_SQL", "TABLES", "TRIGGERS"]
