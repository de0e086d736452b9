"""Process configuration (environment-driven).

Engine constants live in lottery/config.py; this module only holds settings
that differ between deployments.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

SCHEMA_VERSION = "1"

# SQLite file backing LotteryRepo. Required by the HTTP app (no default db_path).
LOTTERY_DB_PATH_ENV = "LOTTERY_DB_PATH"

# Optional shared token; when set, mutating /api/ calls must send X-Admin-Token.
LOTTERY_API_TOKEN_ENV = "LOTTERY_API_TOKEN"

# Seconds the draw endpoint waits between announcing a draw and resolving it.
# Presentation pacing only; 0 disables it.
DRAW_PACING_SEC_ENV = "LOTTERY_DRAW_PACING_SEC"


def get_db_path() -> str:
    db_path = (os.environ.get(LOTTERY_DB_PATH_ENV) or "").strip()
    if not db_path:
        raise RuntimeError(f"{LOTTERY_DB_PATH_ENV} is required (no default db_path).")
    return db_path


def get_api_token() -> str:
    return (os.environ.get(LOTTERY_API_TOKEN_ENV) or "").strip()


def get_draw_pacing_sec() -> float:
    raw = (os.environ.get(DRAW_PACING_SEC_ENV) or "").strip()
    if not raw:
        return 0.0
    try:
        return max(0.0, float(raw))
    except ValueError:
        return 0.0
