"""Persistent storage for interaction records: SQLite, scoped by owner."""

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import structlog

from db import dump_list, in_thread, load_list, wal_connect

from .errors import RecordNotFound
from .models import InteractionRecord

logger = structlog.get_logger()

_EDITABLE = {"narrative_text", "summary", "tags"}


def _contains(column: str) -> str:
    """SQL predicate: JSON list ``column`` contains the bound value."""
    return f"EXISTS (SELECT 1 FROM json_each(records.{column}) WHERE json_each.value = ?)"


class RecordStore:
    """SQLite persistence for interaction records.

    ``raw_text`` and ``created_at`` are written once. Linkage columns change
    only through link_contact / unlink_contact, and every write is checked
    against the record linkage invariant first.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    raw_text TEXT NOT NULL,
                    narrative_text TEXT NOT NULL,
                    summary TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    mentioned_people TEXT NOT NULL DEFAULT '[]',
                    linked_contact_id TEXT,
                    unarchived_people TEXT NOT NULL DEFAULT '[]',
                    people TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_owner ON records(owner_id, created_at)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_contact ON records(linked_contact_id)"
            )

    @in_thread
    def create(self, record: InteractionRecord) -> InteractionRecord:
        """Insert a new record, assigning its id. Rejects inconsistent linkage."""
        record.linkage_state()
        if not record.id:
            record.id = uuid.uuid4().hex[:16]

        with wal_connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO records
                   (id, owner_id, raw_text, narrative_text, summary, tags, mentioned_people,
                    linked_contact_id, unarchived_people, people, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.owner_id,
                    record.raw_text,
                    record.narrative_text,
                    record.summary,
                    dump_list(record.tags),
                    dump_list(record.mentioned_people),
                    record.linked_contact_id,
                    dump_list(record.unarchived_people),
                    dump_list(record.legacy_people) if record.legacy_people else None,
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )
        return record

    @in_thread
    def get(self, owner_id: str, record_id: str) -> InteractionRecord | None:
        with wal_connect(self.db_path, row_factory=True) as conn:
            return self._fetch(conn, owner_id, record_id)

    def _fetch(
        self, conn: sqlite3.Connection, owner_id: str, record_id: str
    ) -> InteractionRecord | None:
        row = conn.execute(
            "SELECT * FROM records WHERE id = ? AND owner_id = ?", (record_id, owner_id)
        ).fetchone()
        return self._row_to_record(row) if row else None

    @in_thread
    def list_records(
        self,
        owner_id: str,
        contact_id: str | None = None,
        limit: int | None = None,
    ) -> list[InteractionRecord]:
        """Records newest first, optionally one contact's timeline."""
        sql = "SELECT * FROM records WHERE owner_id = ?"
        params: list = [owner_id]
        if contact_id:
            sql += " AND linked_contact_id = ?"
            params.append(contact_id)
        sql += " ORDER BY created_at DESC"
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_record(r) for r in rows]

    @in_thread
    def list_by_date_range(
        self, owner_id: str, start: datetime, end: datetime
    ) -> list[InteractionRecord]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT * FROM records
                   WHERE owner_id = ? AND created_at >= ? AND created_at <= ?
                   ORDER BY created_at DESC""",
                (owner_id, start.isoformat(), end.isoformat()),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    @in_thread
    def list_by_person(self, owner_id: str, name: str) -> list[InteractionRecord]:
        """Records that mention ``name``, either per-record or in the legacy people list."""
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                f"""SELECT * FROM records
                    WHERE owner_id = ? AND ({_contains('mentioned_people')}
                                            OR {_contains('people')})
                    ORDER BY created_at DESC""",
                (owner_id, name, name),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    @in_thread
    def list_unarchived(
        self, owner_id: str, name: str | None = None
    ) -> list[InteractionRecord]:
        """Records with unarchived people, optionally only those naming ``name``."""
        sql = "SELECT * FROM records WHERE owner_id = ? AND unarchived_people != '[]'"
        params: list = [owner_id]
        if name is not None:
            sql += f" AND {_contains('unarchived_people')}"
            params.append(name)
        sql += " ORDER BY created_at DESC"
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_record(r) for r in rows]

    @in_thread
    def count_linked(self, owner_id: str, contact_id: str) -> int:
        with wal_connect(self.db_path) as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM records WHERE owner_id = ? AND linked_contact_id = ?",
                (owner_id, contact_id),
            ).fetchone()[0]

    @in_thread
    def link_contact(
        self, owner_id: str, record_id: str, contact_id: str, name: str
    ) -> InteractionRecord:
        """Point the record at ``contact_id`` and drop ``name`` from unarchived people.

        A plain overwrite, so repeating it is harmless. Read and write share one
        write transaction, so concurrent links of the same record serialize.
        """
        with wal_connect(self.db_path, row_factory=True) as conn:
            conn.execute("BEGIN IMMEDIATE")
            record = self._fetch(conn, owner_id, record_id)
            if record is None:
                raise RecordNotFound(record_id)
            record.linked_contact_id = contact_id
            record.unarchived_people = [p for p in record.unarchived_people if p != name]
            record.updated_at = datetime.now()
            record.linkage_state()

            conn.execute(
                """UPDATE records
                   SET linked_contact_id = ?, unarchived_people = ?, updated_at = ?
                   WHERE id = ? AND owner_id = ?""",
                (
                    contact_id,
                    dump_list(record.unarchived_people),
                    record.updated_at.isoformat(),
                    record_id,
                    owner_id,
                ),
            )
        return record

    @in_thread
    def unlink_contact(self, owner_id: str, contact_id: str) -> int:
        """Detach every record from a contact; their people become unarchived again."""
        now = datetime.now().isoformat()
        with wal_connect(self.db_path) as conn:
            cur = conn.execute(
                """UPDATE records
                   SET linked_contact_id = NULL, unarchived_people = mentioned_people,
                       updated_at = ?
                   WHERE owner_id = ? AND linked_contact_id = ?""",
                (now, owner_id, contact_id),
            )
        return cur.rowcount

    @in_thread
    def update_text(self, owner_id: str, record_id: str, **fields) -> InteractionRecord:
        """Direct user edit of narrative_text/summary/tags. raw_text is immutable."""
        unknown = set(fields) - _EDITABLE
        if unknown:
            raise ValueError(f"cannot edit record fields: {sorted(unknown)}")

        columns = []
        params: list = []
        for key, value in fields.items():
            if value is None:
                continue
            columns.append(f"{key} = ?")
            params.append(dump_list(value) if key == "tags" else value)
        columns.append("updated_at = ?")
        params.append(datetime.now().isoformat())

        with wal_connect(self.db_path, row_factory=True) as conn:
            cur = conn.execute(
                f"UPDATE records SET {', '.join(columns)} WHERE id = ? AND owner_id = ?",
                [*params, record_id, owner_id],
            )
            if cur.rowcount == 0:
                raise RecordNotFound(record_id)
            return self._fetch(conn, owner_id, record_id)

    @in_thread
    def delete(self, owner_id: str, record_id: str) -> bool:
        with wal_connect(self.db_path) as conn:
            cur = conn.execute(
                "DELETE FROM records WHERE id = ? AND owner_id = ?", (record_id, owner_id)
            )
        return cur.rowcount == 1

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> InteractionRecord:
        d = dict(row)
        return InteractionRecord(
            id=d["id"],
            owner_id=d["owner_id"],
            raw_text=d["raw_text"],
            narrative_text=d["narrative_text"],
            summary=d.get("summary"),
            tags=load_list(d.get("tags")),
            mentioned_people=load_list(d.get("mentioned_people")),
            linked_contact_id=d.get("linked_contact_id"),
            unarchived_people=load_list(d.get("unarchived_people")),
            legacy_people=load_list(d.get("people")),
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
        )
