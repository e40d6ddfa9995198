"""Key/value settings store backed by the ``core_settings`` table.

Every read and write is wrapped so that a driver failure surfaces as
:class:`~runguard.core.errors.StorageError`, which is fatal to the
current cycle.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime

from runguard.core.errors import StorageError
from runguard.core.logging import get_logger
from runguard.core.protocols import Connection
from runguard.core.schema import create_core_tables

logger = get_logger(__name__)


class SqliteSettingsStore:
    """Settings store satisfying the ``SettingsStore`` protocol.

    Example:
        >>> store = SqliteSettingsStore(SqliteConnection(":memory:"))
        >>> store.save_setting("project.rabbitmq_active", "1")
        >>> store.get_setting("project.rabbitmq_active")
        '1'
    """

    def __init__(self, conn: Connection, *, create_tables: bool = True) -> None:
        self.conn = conn
        if create_tables:
            try:
                create_core_tables(conn)
            except sqlite3.Error as e:
                raise StorageError(f"Cannot initialise settings table: {e}", cause=e) from e

    def get_setting(self, key: str) -> str | None:
        try:
            self.conn.execute("SELECT value FROM core_settings WHERE key = ?", (key,))
            row = self.conn.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read setting {key}: {e}", cause=e).with_context(key=key) from e
        return row[0] if row else None

    def save_setting(self, key: str, value: str | None) -> None:
        now = datetime.now(UTC).isoformat()
        try:
            self.conn.execute(
                """
                INSERT INTO core_settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, now),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write setting {key}: {e}", cause=e).with_context(key=key) from e
        logger.debug("settings.saved", key=key, cleared=value is None)
