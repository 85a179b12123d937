"""
SQL file migrations for the SQLite store.

Each ``migrations/NNN_name.sql`` file holds an ``-- Up`` script, optionally
followed by a ``-- Down`` script that is never executed here. Files run in
name order, once each; the ``_migrations`` table records what has run.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"

LEDGER_DDL = """
CREATE TABLE IF NOT EXISTS _migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT UNIQUE NOT NULL,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


def up_script(sql: str) -> str:
    """The part of a migration file that applies it."""
    head, _, _ = sql.partition(DOWN_MARKER)
    return head


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(LEDGER_DDL)
        return conn

    def pending(self) -> list[Path]:
        """Migration files not yet recorded in the ledger, in run order."""
        conn = self._connect()
        try:
            done = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
        finally:
            conn.close()
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.name not in done]

    def run_migrations(self) -> list[str]:
        """Apply every pending migration; returns the filenames applied."""
        applied: list[str] = []
        conn = self._connect()
        try:
            for path in self.pending():
                logger.info("Applying migration: %s", path.name)
                self._apply(conn, path)
                applied.append(path.name)
        finally:
            conn.close()

        logger.info("Database %s is up to date (%d applied)", self.db_path, len(applied))
        return applied

    def _apply(self, conn: sqlite3.Connection, path: Path) -> None:
        try:
            conn.executescript(up_script(path.read_text()))
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (path.name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {path.name} failed: {e}") from e
