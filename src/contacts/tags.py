"""Per-owner tag vocabularies (person tags and event tags)."""

from datetime import datetime
from pathlib import Path

import structlog

from db import in_thread, wal_connect
from shared_types import TagKind

logger = structlog.get_logger()


class TagStore:
    """Allowed tag strings per (owner, kind). Adds are idempotent."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tag_vocabulary (
                    owner_id TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    name TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (owner_id, kind, name)
                )
            """)

    @in_thread
    def list_tags(self, owner_id: str, kind: TagKind) -> list[str]:
        """Tag names, newest first."""
        with wal_connect(self.db_path) as conn:
            rows = conn.execute(
                """SELECT name FROM tag_vocabulary WHERE owner_id = ? AND kind = ?
                   ORDER BY created_at DESC, name""",
                (owner_id, kind.value),
            ).fetchall()
        return [r[0] for r in rows]

    @in_thread
    def add(self, owner_id: str, kind: TagKind, name: str) -> bool:
        """Add a tag. Returns False if it already existed."""
        name = name.strip()
        if not name:
            raise ValueError("tag name must not be empty")
        with wal_connect(self.db_path) as conn:
            return self._insert(conn, owner_id, kind, name)

    @in_thread
    def ensure(self, owner_id: str, kind: TagKind, names: list[str]) -> list[str]:
        """Add any missing tags; returns the ones that were new."""
        with wal_connect(self.db_path) as conn:
            added = [
                n.strip() for n in names if n.strip() and self._insert(conn, owner_id, kind, n.strip())
            ]
        if added:
            logger.debug("tags.synced", kind=kind.value, added=len(added))
        return added

    @staticmethod
    def _insert(conn, owner_id: str, kind: TagKind, name: str) -> bool:
        cur = conn.execute(
            """INSERT OR IGNORE INTO tag_vocabulary (owner_id, kind, name, created_at)
               VALUES (?, ?, ?, ?)""",
            (owner_id, kind.value, name, datetime.now().isoformat()),
        )
        return cur.rowcount == 1

    @in_thread
    def remove(self, owner_id: str, kind: TagKind, name: str) -> bool:
        with wal_connect(self.db_path) as conn:
            cur = conn.execute(
                "DELETE FROM tag_vocabulary WHERE owner_id = ? AND kind = ? AND name = ?",
                (owner_id, kind.value, name),
            )
        return cur.rowcount == 1
