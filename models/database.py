"""SQLite library store: persists every novel as one JSON-encoded row."""

import json
import logging
import shutil
import sqlite3
from pathlib import Path
from typing import Optional

from config.exceptions import PersistenceError
from models.novel import Novel

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS novels (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    step TEXT NOT NULL DEFAULT 'setup',
    last_modified REAL NOT NULL,
    payload TEXT NOT NULL
);
"""

_MIGRATION_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_novels_last_modified ON novels(last_modified)",
]


class Database:
    """SQLite database manager for the novel library."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _init_db(self):
        with self._get_conn() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes)."""
        with self._get_conn() as conn:
            for sql in _MIGRATION_SQL:
                try:
                    conn.execute(sql)
                except sqlite3.OperationalError as e:
                    logger.debug("Migration skipped (already applied): %s", e)

    def backup_database(self, target_path: str | Path) -> Path:
        """Create a backup copy of the database.

        Args:
            target_path: Path for the backup file.

        Returns:
            Path to the backup file.
        """
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(self.db_path), str(target))
        logger.info("Database backed up to %s", target)
        return target

    # ---- Novel CRUD ----

    def save_novel(self, novel: Novel) -> None:
        """Insert or replace the whole novel snapshot."""
        payload = json.dumps(novel.to_dict(), ensure_ascii=False)
        try:
            with self._get_conn() as conn:
                conn.execute(
                    "INSERT INTO novels (id, title, step, last_modified, payload) "
                    "VALUES (?, ?, ?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET title=excluded.title, step=excluded.step, "
                    "last_modified=excluded.last_modified, payload=excluded.payload",
                    (novel.id, novel.config.title, novel.step.value, novel.last_modified, payload),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save novel {novel.id}: {e}") from e

    def get_novel(self, novel_id: str) -> Optional[Novel]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT payload FROM novels WHERE id = ?", (novel_id,)).fetchone()
            if not row:
                return None
            return Novel.from_dict(json.loads(row["payload"]))

    def list_novels(self) -> list[Novel]:
        """All novels, most recently modified first. Corrupt rows are skipped."""
        novels = []
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT id, payload FROM novels ORDER BY last_modified DESC"
            ).fetchall()
        for r in rows:
            try:
                novels.append(Novel.from_dict(json.loads(r["payload"])))
            except (json.JSONDecodeError, ValueError, TypeError) as e:
                logger.error("Restore failed for novel %s: %s", r["id"], e)
        return novels

    def delete_novel(self, novel_id: str) -> None:
        with self._get_conn() as conn:
            conn.execute("DELETE FROM novels WHERE id = ?", (novel_id,))
        logger.info("Novel %s deleted", novel_id)
