"""Database connection management for tasked plan storage."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..errors import StorageError
from ..logging_config import get_logger
from .schema import get_schema_sql

logger = get_logger(__name__)


class Database:
    """SQLite database wrapper that applies the schema on every open.

    Usage:
        db = Database(Path("~/.tasked/tasks.db").expanduser())

        # Simple query
        with db.connection() as conn:
            rows = conn.execute("SELECT * FROM plans").fetchall()

        # Transaction with auto-commit/rollback
        with db.transaction() as conn:
            conn.execute("INSERT INTO plans (id) VALUES (?)", ("release",))
            conn.execute("INSERT INTO steps ...")
    """

    def __init__(self, db_path: Path):
        """Initialize database, applying the schema.

        Args:
            db_path: Path to the SQLite database file

        Raises:
            StorageError: If the file cannot be opened or the schema fails
        """
        self.db_path = Path(db_path)
        self._ensure_directory()
        self._apply_schema()

    def _ensure_directory(self) -> None:
        """Create parent directory if it doesn't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"failed to create directory for database {self.db_path.parent}: {e}"
            ) from e

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with row factory.

        The connection is closed on every exit path.

        Yields:
            sqlite3.Connection configured with Row factory

        Example:
            with db.connection() as conn:
                row = conn.execute("SELECT * FROM plans WHERE id = ?", (plan_id,)).fetchone()
                if row:
                    print(row["id"])
        """
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.row_factory = sqlite3.Row
            # Must be set outside a transaction to take effect
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection inside an explicit transaction.

        Commits on successful exit, rolls back on exception. The BEGIN is
        issued up front so reads made inside the block share the
        transaction with the writes that follow them.

        Yields:
            sqlite3.Connection in a transaction

        Example:
            with db.transaction() as conn:
                conn.execute("DELETE FROM plans WHERE id = ?", ("old",))
                # Automatically commits if no exception
        """
        with self.connection() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _apply_schema(self) -> None:
        """Create any missing relations, indexes and triggers."""
        try:
            with self.connection() as conn:
                conn.executescript(get_schema_sql())
        except sqlite3.Error as e:
            raise StorageError(f"failed to execute schema on {self.db_path}: {e}") from e
        logger.debug("schema_applied", db_path=str(self.db_path))

    def table_names(self) -> list[str]:
        """List the tables present in the database file.

        Returns:
            Table names in alphabetical order
        """
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
            return [row["name"] for row in rows]
