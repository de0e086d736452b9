# db_schema/lottery.py
"""SQLite SSOT schema: lottery tables.

This module contains only DDL and schema migrations for the lottery subsystem.

Tables:
- lottery_sessions: one row per lottery; session_json is the whole session document
- lottery_draw_log: every ball draw attempt (accepted or redrawn), append-only audit trail

Design notes:
- lottery_sessions.status / admin_id / name are denormalized copies of fields inside
  session_json so listings don't need to parse JSON. session_json stays authoritative.
- An accepted pick and its draw_log row are written in the same transaction.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Mapping


# Signature compatible with LotteryRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def ddl(*, now: str, schema_version: str) -> str:
    """Return DDL SQL for lottery tables."""
    _ = (now, schema_version)
    return """
                CREATE TABLE IF NOT EXISTS lottery_sessions (
                    lottery_id TEXT PRIMARY KEY,
                    admin_id TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'setup',
                    session_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_lottery_sessions_admin
                    ON lottery_sessions(admin_id);

                CREATE TABLE IF NOT EXISTS lottery_draw_log (
                    lottery_id TEXT NOT NULL,
                    attempt_no INTEGER NOT NULL,
                    pick_no INTEGER NOT NULL,
                    balls_json TEXT NOT NULL,
                    combination_id INTEGER,
                    team_id TEXT,
                    outcome TEXT NOT NULL,
                    message TEXT NOT NULL DEFAULT '',
                    actor_id TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (lottery_id, attempt_no),
                    FOREIGN KEY (lottery_id) REFERENCES lottery_sessions(lottery_id) ON DELETE CASCADE
                );
"""



def migrate(cur: sqlite3.Cursor, *, ensure_columns: EnsureColumnsFn) -> None:
    """Ensure audit columns exist on draw logs created before they were added."""
    ensure_columns(
        cur,
        "lottery_draw_log",
        {
            "message": "TEXT NOT NULL DEFAULT ''",
            "actor_id": "TEXT NOT NULL DEFAULT ''",
        },
    )
