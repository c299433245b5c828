"""
Schema migrations for the local backend.

Each *.sql file under the migrations directory runs once, in filename order,
and is recorded in the _migrations table. A file may carry a "-- Down"
section for manual rollback; only the part above it is executed.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = str(Path(__file__).parent / "migrations")
DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str = DEFAULT_MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        return conn

    def pending(self, conn: sqlite3.Connection) -> list[Path]:
        done = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.name not in done]

    def run_migrations(self) -> list[str]:
        """Apply every pending migration and return the filenames applied."""
        conn = self._connect()
        try:
            todo = self.pending(conn)
            for script in todo:
                logger.info("Applying migration %s", script.name)
                self._apply(conn, script)
        finally:
            conn.close()

        if todo:
            logger.info("Database %s is at %s", self.db_path, todo[-1].name)
        return [p.name for p in todo]

    @staticmethod
    def _apply(conn: sqlite3.Connection, script: Path) -> None:
        up, _, _ = script.read_text().partition(DOWN_MARKER)
        try:
            conn.executescript(up)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (script.name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {script.name} failed: {e}") from e
