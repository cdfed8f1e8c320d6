"""SQLite persistence for contacts, scoped by owner."""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import structlog

from capture.errors import ContactExistsError, ContactNotFound
from db import dump_list, in_thread, load_list, wal_connect
from shared_types import ContactOrigin

from .models import Contact, ContactKey, ImportantDate

logger = structlog.get_logger()

_UPDATABLE = {"name", "remark", "tags", "important_dates"}


class ContactStore:
    """CRUD, exact-name lookup and lookup-or-create over the ``contacts`` table."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS contacts (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    remark TEXT NOT NULL DEFAULT '',
                    tags TEXT NOT NULL DEFAULT '[]',
                    important_dates TEXT NOT NULL DEFAULT '[]',
                    last_interaction_at TIMESTAMP,
                    origin TEXT NOT NULL DEFAULT 'manual',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (owner_id, name)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_contacts_owner ON contacts(owner_id, created_at)"
            )

    @in_thread
    def create(
        self,
        owner_id: str,
        name: str,
        remark: str = "",
        tags: list[str] | None = None,
        important_dates: list[ImportantDate] | None = None,
        origin: ContactOrigin = ContactOrigin.MANUAL,
    ) -> Contact:
        """Insert a new contact. Raises ContactExistsError on a duplicate name."""
        name = name.strip()
        if not name:
            raise ValueError("contact name must not be empty")
        contact = Contact(
            id=uuid.uuid4().hex[:16],
            owner_id=owner_id,
            name=name,
            remark=remark,
            tags=list(tags or []),
            important_dates=list(important_dates or []),
            origin=origin,
        )
        try:
            with wal_connect(self.db_path) as conn:
                self._insert(conn, contact)
        except sqlite3.IntegrityError as e:
            raise ContactExistsError(f"contact already exists: {name}") from e
        return contact

    @in_thread
    def get_or_create(
        self,
        owner_id: str,
        name: str,
        tags: list[str] | None = None,
        origin: ContactOrigin = ContactOrigin.RECONCILIATION,
    ) -> tuple[Contact, bool]:
        """Return the contact for (owner, name), creating it if missing.

        Safe under concurrent callers: the insert is a no-op on conflict and
        the row is re-read, so every caller ends with the same contact.
        """
        candidate = Contact(
            id=uuid.uuid4().hex[:16],
            owner_id=owner_id,
            name=name,
            tags=list(tags or []),
            origin=origin,
        )
        with wal_connect(self.db_path, row_factory=True) as conn:
            cur = self._insert(conn, candidate, or_ignore=True)
            created = cur.rowcount == 1
            row = conn.execute(
                "SELECT * FROM contacts WHERE owner_id = ? AND name = ?", (owner_id, name)
            ).fetchone()
        contact = self._row_to_contact(row)
        if created:
            logger.info("contacts.created", contact_id=contact.id, origin=origin.value)
        return contact, created

    @staticmethod
    def _insert(conn: sqlite3.Connection, contact: Contact, or_ignore: bool = False):
        conflict = " ON CONFLICT (owner_id, name) DO NOTHING" if or_ignore else ""
        return conn.execute(
            f"""INSERT INTO contacts
               (id, owner_id, name, remark, tags, important_dates, last_interaction_at,
                origin, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?){conflict}""",
            (
                contact.id,
                contact.owner_id,
                contact.name,
                contact.remark,
                dump_list(contact.tags),
                json.dumps([d.to_dict() for d in contact.important_dates], ensure_ascii=False),
                contact.last_interaction_at.isoformat() if contact.last_interaction_at else None,
                contact.origin.value,
                contact.created_at.isoformat(),
                contact.updated_at.isoformat(),
            ),
        )

    @in_thread
    def get(self, owner_id: str, contact_id: str) -> Contact | None:
        with wal_connect(self.db_path, row_factory=True) as conn:
            return self._fetch(conn, owner_id, contact_id)

    def _fetch(self, conn: sqlite3.Connection, owner_id: str, contact_id: str) -> Contact | None:
        row = conn.execute(
            "SELECT * FROM contacts WHERE id = ? AND owner_id = ?", (contact_id, owner_id)
        ).fetchone()
        return self._row_to_contact(row) if row else None

    @in_thread
    def list_all(
        self, owner_id: str, origin: ContactOrigin | None = None
    ) -> list[Contact]:
        """All contacts of the owner, newest first."""
        sql = "SELECT * FROM contacts WHERE owner_id = ?"
        params: list = [owner_id]
        if origin:
            sql += " AND origin = ?"
            params.append(origin.value)
        sql += " ORDER BY created_at DESC"
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_contact(r) for r in rows]

    @in_thread
    def find_by_keys(self, keys: list[ContactKey]) -> dict[ContactKey, Contact]:
        """Exact, case-sensitive (owner, name) lookup. Returns key -> contact."""
        keys = list(dict.fromkeys(keys))
        if not keys:
            return {}
        rows_sql = ",".join("(?, ?)" for _ in keys)
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                f"SELECT * FROM contacts WHERE (owner_id, name) IN (VALUES {rows_sql})",
                [v for key in keys for v in key],
            ).fetchall()
        contacts = (self._row_to_contact(r) for r in rows)
        return {c.key: c for c in contacts}

    async def find_by_names(self, owner_id: str, names: list[str]) -> dict[str, Contact]:
        """Name -> contact for the owner's contacts among ``names``."""
        found = await self.find_by_keys([ContactKey(owner_id, n) for n in names])
        return {key.name: contact for key, contact in found.items()}

    @in_thread
    def search(self, owner_id: str, keyword: str) -> list[Contact]:
        """Substring search over name and remark."""
        pattern = f"%{keyword}%"
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT * FROM contacts
                   WHERE owner_id = ? AND (name LIKE ? OR remark LIKE ?)
                   ORDER BY name""",
                (owner_id, pattern, pattern),
            ).fetchall()
        return [self._row_to_contact(r) for r in rows]

    @in_thread
    def update(self, owner_id: str, contact_id: str, **fields) -> Contact:
        """Update name/remark/tags/important_dates."""
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"cannot update contact fields: {sorted(unknown)}")

        columns = []
        params: list = []
        for key, value in fields.items():
            if value is None:
                continue
            if key == "tags":
                value = dump_list(value)
            elif key == "important_dates":
                value = json.dumps([d.to_dict() for d in value], ensure_ascii=False)
            elif key == "name":
                value = value.strip()
                if not value:
                    raise ValueError("contact name must not be empty")
            columns.append(f"{key} = ?")
            params.append(value)
        columns.append("updated_at = ?")
        params.append(datetime.now().isoformat())

        try:
            with wal_connect(self.db_path, row_factory=True) as conn:
                cur = conn.execute(
                    f"UPDATE contacts SET {', '.join(columns)} WHERE id = ? AND owner_id = ?",
                    [*params, contact_id, owner_id],
                )
                if cur.rowcount == 0:
                    raise ContactNotFound(contact_id)
                return self._fetch(conn, owner_id, contact_id)
        except sqlite3.IntegrityError as e:
            raise ContactExistsError(f"contact already exists: {fields.get('name')}") from e

    @in_thread
    def touch_interaction(self, owner_id: str, contact_id: str, at: datetime) -> bool:
        """Advance last_interaction_at to ``at`` if it is newer. Never moves backwards."""
        with wal_connect(self.db_path) as conn:
            cur = conn.execute(
                """UPDATE contacts SET last_interaction_at = ?
                   WHERE id = ? AND owner_id = ?
                     AND (last_interaction_at IS NULL OR last_interaction_at < ?)""",
                (at.isoformat(), contact_id, owner_id, at.isoformat()),
            )
        return cur.rowcount == 1

    @in_thread
    def delete(self, owner_id: str, contact_id: str) -> bool:
        with wal_connect(self.db_path) as conn:
            cur = conn.execute(
                "DELETE FROM contacts WHERE id = ? AND owner_id = ?", (contact_id, owner_id)
            )
        return cur.rowcount == 1

    @staticmethod
    def _row_to_contact(row: sqlite3.Row) -> Contact:
        d = dict(row)
        last = d.get("last_interaction_at")
        dates = json.loads(d.get("important_dates") or "[]")
        return Contact(
            id=d["id"],
            owner_id=d["owner_id"],
            name=d["name"],
            remark=d.get("remark") or "",
            tags=load_list(d.get("tags")),
            important_dates=[ImportantDate.from_dict(x) for x in dates],
            last_interaction_at=datetime.fromisoformat(last) if last else None,
            origin=ContactOrigin(d.get("origin") or "manual"),
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
        )
