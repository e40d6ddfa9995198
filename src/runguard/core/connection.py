"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~runguard.core.protocols.Connection` protocol.

A bare ``sqlite3.Connection`` exposes ``execute()`` (returns a cursor)
but not ``fetchone()`` / ``fetchall()`` at the connection level.  This
adapter keeps one cursor so stores can call them directly.

Usage::

    from runguard.core.connection import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.execute("SELECT value FROM core_settings WHERE key = ?", ("a",))
    row = conn.fetchone()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol."""

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        if path != ":memory:":
            Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            path = str(Path(path).expanduser())
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()
        self.path = path

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params)
        return self._cursor

    def executescript(self, script: str) -> None:
        self._conn.executescript(script)

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection``."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"
