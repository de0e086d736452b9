# lottery_repo.py
# Developer note:
# - SQLite DB is the single source of truth (SSOT) for lottery sessions (tables managed here).
# - A session is stored as one JSON document; listing columns are denormalized copies.
# - Every draw attempt is appended to lottery_draw_log (never updated).
"""
LotteryRepository: persisted-data SSOT (SQLite)

Usage (CLI):
  python lottery_repo.py init --db <db_path>
  python lottery_repo.py show --db <db_path> --lottery <lottery_id>
  python lottery_repo.py export-csv --db <db_path> --lottery <lottery_id> --out combos.csv
  python lottery_repo.py draw-log --db <db_path> --lottery <lottery_id>

Python:
  from lottery_repo import LotteryRepo
  with LotteryRepo("<db_path>") as repo:
      repo.init_db()
      session = repo.get_session("<lottery_id>")
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from config import SCHEMA_VERSION
from lottery.session import LotterySession


logger = logging.getLogger(__name__)


# ----------------------------
# Helpers
# ----------------------------

def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _json_dumps(obj: Any) -> str:
    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=str,
    )


def _json_loads(value: Any, default: Any):
    """
    Safe JSON loader:
    - None -> default
    - already dict/list -> returns as-is
    - invalid JSON -> default
    """
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        logger.warning("JSON_DECODE_FAILED value_preview=%r", str(value)[:120])
        return default


# ----------------------------
# Repository
# ----------------------------

class LotteryRepo:
    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute("PRAGMA journal_mode = WAL;")
        # Nested transaction support (SAVEPOINT) for callers that compose repo methods.
        # (SQLite raises if BEGIN is issued while a transaction is already active.)
        self._savepoint_seq = 0

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error:
            logger.warning("LotteryRepo.close failed db=%s", self.db_path, exc_info=True)

    @contextlib.contextmanager
    def transaction(self):
        """
        Atomic transaction helper.

        Supports nesting via SAVEPOINT:
        - outermost: BEGIN ... COMMIT/ROLLBACK
        - nested: SAVEPOINT ... RELEASE (or ROLLBACK TO + RELEASE on error)
        """
        cur = self._conn.cursor()
        nested = bool(getattr(self._conn, "in_transaction", False))
        sp_name = None
        try:
            if nested:
                self._savepoint_seq += 1
                sp_name = f"sp_{self._savepoint_seq}"
                cur.execute(f"SAVEPOINT {sp_name};")
            else:
                self._conn.execute("BEGIN;")

            yield cur

            if nested and sp_name:
                cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            else:
                self._conn.commit()
        except Exception:
            if nested and sp_name:
                # Roll back to the savepoint only; do NOT rollback the outer transaction here.
                try:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {sp_name};")
                finally:
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            else:
                self._conn.rollback()
            raise
        finally:
            cur.close()

    # ------------------------
    # Schema
    # ------------------------

    def _ensure_table_columns(self, cur: sqlite3.Cursor, table: str, columns: Mapping[str, str]) -> None:
        """SQLite has no ADD COLUMN IF NOT EXISTS; check PRAGMA table_info first."""
        rows = cur.execute(f"PRAGMA table_info({table});").fetchall()
        existing = {r["name"] for r in rows}
        for col, ddl in columns.items():
            if col in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {col} {ddl};")

    def init_db(self) -> None:
        """Apply SQLite schema (DDL + migrations) via db_schema."""
        from db_schema import apply_schema

        now = _utc_now_iso()
        with self.transaction() as cur:
            apply_schema(
                cur,
                now=now,
                schema_version=SCHEMA_VERSION,
                ensure_columns=self._ensure_table_columns,
            )

    # ------------------------
    # Sessions
    # ------------------------

    def get_session(self, lottery_id: str) -> Optional[LotterySession]:
        row = self._conn.execute(
            "SELECT session_json FROM lottery_sessions WHERE lottery_id=?;",
            (str(lottery_id),),
        ).fetchone()
        if row is None:
            return None
        data = _json_loads(row["session_json"], {})
        if not isinstance(data, dict) or not data:
            logger.warning("lottery session document unreadable lottery_id=%s", lottery_id)
            return None
        return LotterySession.from_dict(data)

    def save_session(self, session: LotterySession) -> LotterySession:
        """Upsert the whole session document (last write wins). Stamps timestamps."""
        now = _utc_now_iso()
        if not session.created_at:
            session.created_at = now
        session.updated_at = now
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO lottery_sessions(lottery_id, admin_id, name, status, session_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(lottery_id) DO UPDATE SET
                    admin_id=excluded.admin_id,
                    name=excluded.name,
                    status=excluded.status,
                    session_json=excluded.session_json,
                    updated_at=excluded.updated_at;
                """,
                (
                    session.id,
                    session.admin_id,
                    session.name,
                    session.status,
                    _json_dumps(session.to_dict()),
                    session.created_at,
                    session.updated_at,
                ),
            )
        return session

    def list_sessions(self, *, admin_id: Optional[str] = None) -> List[LotterySession]:
        if admin_id:
            rows = self._conn.execute(
                "SELECT session_json FROM lottery_sessions WHERE admin_id=? ORDER BY created_at DESC, lottery_id;",
                (str(admin_id),),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT session_json FROM lottery_sessions ORDER BY created_at DESC, lottery_id;"
            ).fetchall()
        out: List[LotterySession] = []
        for r in rows:
            data = _json_loads(r["session_json"], {})
            if isinstance(data, dict) and data:
                out.append(LotterySession.from_dict(data))
        return out

    # ------------------------
    # Draw log
    # ------------------------

    def append_draw_log(
        self,
        lottery_id: str,
        *,
        pick_no: int,
        balls: Sequence[int],
        outcome: str,
        combination_id: Optional[int] = None,
        team_id: Optional[str] = None,
        message: str = "",
        actor_id: str = "",
    ) -> int:
        """Append one draw attempt; returns its attempt_no (1-based per lottery)."""
        with self.transaction() as cur:
            row = cur.execute(
                "SELECT COALESCE(MAX(attempt_no), 0) AS n FROM lottery_draw_log WHERE lottery_id=?;",
                (str(lottery_id),),
            ).fetchone()
            attempt_no = int(row["n"]) + 1
            cur.execute(
                """
                INSERT INTO lottery_draw_log(
                    lottery_id, attempt_no, pick_no, balls_json, combination_id,
                    team_id, outcome, message, actor_id, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    str(lottery_id),
                    attempt_no,
                    int(pick_no),
                    _json_dumps([int(b) for b in balls]),
                    None if combination_id is None else int(combination_id),
                    team_id,
                    str(outcome),
                    str(message or ""),
                    str(actor_id or ""),
                    _utc_now_iso(),
                ),
            )
        return attempt_no

    def list_draw_log(self, lottery_id: str) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            "SELECT * FROM lottery_draw_log WHERE lottery_id=? ORDER BY attempt_no;",
            (str(lottery_id),),
        ).fetchall()
        out: List[Dict[str, Any]] = []
        for r in rows:
            out.append(
                {
                    "attempt_no": int(r["attempt_no"]),
                    "pick": int(r["pick_no"]),
                    "balls": _json_loads(r["balls_json"], []),
                    "combination_id": r["combination_id"],
                    "team_id": r["team_id"],
                    "outcome": r["outcome"],
                    "message": r["message"],
                    "actor_id": r["actor_id"],
                    "created_at": r["created_at"],
                }
            )
        return out

    # ------------------------
    # Convenience
    # ------------------------

    def __enter__(self) -> "LotteryRepo":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ----------------------------
# CLI
# ----------------------------

def _load_or_exit(repo: LotteryRepo, lottery_id: str) -> LotterySession:
    session = repo.get_session(lottery_id)
    if session is None:
        print(f"ERROR: lottery not found: {lottery_id}", file=sys.stderr)
        raise SystemExit(2)
    return session


def _cmd_init(args) -> None:
    with LotteryRepo(args.db) as repo:
        repo.init_db()
    print(f"OK: initialized {args.db}")


def _cmd_show(args) -> None:
    with LotteryRepo(args.db) as repo:
        session = _load_or_exit(repo, args.lottery)
    payload = session.to_dict() if args.full else session.to_summary_dict()
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _cmd_export_csv(args) -> None:
    from lottery.export import combinations_csv, draft_order_csv

    with LotteryRepo(args.db) as repo:
        session = _load_or_exit(repo, args.lottery)
    text = draft_order_csv(session) if args.kind == "draft-order" else combinations_csv(session)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        print(f"OK: wrote {args.kind} export to {args.out}")
    else:
        sys.stdout.write(text)


def _cmd_draw_log(args) -> None:
    with LotteryRepo(args.db) as repo:
        _load_or_exit(repo, args.lottery)
        entries = repo.list_draw_log(args.lottery)
    print(json.dumps(entries, ensure_ascii=False, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="LotteryRepo (SQLite single source of truth)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="initialize DB schema")
    p_init.add_argument("--db", required=True, help="path to sqlite db file")
    p_init.set_defaults(func=_cmd_init)

    p_show = sub.add_parser("show", help="print a lottery session")
    p_show.add_argument("--db", required=True, help="path to sqlite db file")
    p_show.add_argument("--lottery", required=True, help="lottery id")
    p_show.add_argument("--full", action="store_true", help="include teams/combinations/picks")
    p_show.set_defaults(func=_cmd_show)

    p_exp = sub.add_parser("export-csv", help="export combinations or draft order as CSV")
    p_exp.add_argument("--db", required=True, help="path to sqlite db file")
    p_exp.add_argument("--lottery", required=True, help="lottery id")
    p_exp.add_argument("--kind", choices=["combinations", "draft-order"], default="combinations")
    p_exp.add_argument("--out", default=None, help="output path (default: stdout)")
    p_exp.set_defaults(func=_cmd_export_csv)

    p_log = sub.add_parser("draw-log", help="print every draw attempt for a lottery")
    p_log.add_argument("--db", required=True, help="path to sqlite db file")
    p_log.add_argument("--lottery", required=True, help="lottery id")
    p_log.set_defaults(func=_cmd_draw_log)

    args = p.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
