"""Shared SQLite helpers for WAL connections and JSON list columns."""

import asyncio
import functools
import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


def in_thread(fn):
    """Turn a blocking store method into a coroutine run via ``asyncio.to_thread``.

    A write waiting on the SQLite lock (up to the busy timeout) then stalls
    only its own caller, and gathered store calls overlap.
    """

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        return await asyncio.to_thread(fn, *args, **kwargs)

    return wrapper


@contextmanager
def wal_connect(db_path: str | Path, row_factory: bool = False) -> Iterator[sqlite3.Connection]:
    """Open a SQLite connection with WAL journal mode.

    Commits on clean exit, rolls back on error, always closes.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path), timeout=10.0)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=10000")
        if row_factory:
            conn.row_factory = sqlite3.Row
        with conn:
            yield conn
    finally:
        conn.close()


def dump_list(values: list[str] | None) -> str:
    """Encode a string list for a TEXT column (order kept, unicode kept)."""
    return json.dumps(list(values or []), ensure_ascii=False)


def load_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    value = json.loads(raw)
    return [str(v) for v in value] if isinstance(value, list) else []
