"""
Tables used by runguard.

``core_settings`` is the application's key/value settings table: the lane
feature flags and the run-state timestamps live there, the same way the
rest of the application stores its project settings.
``core_scheduler_jobs`` and ``core_scheduler_log`` back the bundled job
engine used by the scheduler entry point.
"""

from __future__ import annotations

from runguard.core.protocols import Connection

CORE_TABLES = {
    "settings": "core_settings",
    "scheduler_jobs": "core_scheduler_jobs",
    "scheduler_log": "core_scheduler_log",
}

CORE_DDL = {
    "settings": """
        CREATE TABLE IF NOT EXISTS core_settings (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT NOT NULL
        )
    """,
    "scheduler_jobs": """
        CREATE TABLE IF NOT EXISTS core_scheduler_jobs (
            job_id TEXT PRIMARY KEY,
            project_id TEXT,
            name TEXT NOT NULL,
            unit_name TEXT NOT NULL,
            cron_expression TEXT NOT NULL DEFAULT '* * * * *',
            budget_seconds INTEGER NOT NULL DEFAULT 1,
            enabled INTEGER NOT NULL DEFAULT 1,
            last_run_at TEXT
        )
    """,
    "scheduler_log": """
        CREATE TABLE IF NOT EXISTS core_scheduler_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_id TEXT NOT NULL,
            message TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """,
    "scheduler_log_index": """
        CREATE INDEX IF NOT EXISTS idx_core_scheduler_log_created
        ON core_scheduler_log (created_at)
    """,
}


def create_core_tables(conn: Connection) -> None:
    """Create all runguard tables (idempotent)."""
    for ddl in CORE_DDL.values():
        conn.execute(ddl)
    conn.commit()
