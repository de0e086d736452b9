from __future__ import annotations

"""CSV exports for a lottery session.

Column headers are consumed by existing spreadsheets downstream; keep the
text and order exactly as-is.
"""

import csv
import io
import re
from typing import List, Sequence

from .session import LotterySession

COMBINATIONS_CSV_HEADER: List[str] = [
    "Combination ID",
    "Ball 1",
    "Ball 2",
    "Ball 3",
    "Ball 4",
    "Team ID",
    "Team Name",
]

DRAFT_ORDER_CSV_HEADER: List[str] = ["Pick", "Team Name", "Combination"]

_WS_RE = re.compile(r"\s+")


def _write_csv(header: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()


def combinations_csv(session: LotterySession) -> str:
    """One row per combination (dead ones included, with empty team columns)."""
    names = session.team_names()
    rows = []
    for combo in sorted(session.combinations, key=lambda c: int(c.id)):
        b = list(combo.balls)
        rows.append([combo.id, b[0], b[1], b[2], b[3], combo.team_id, names.get(combo.team_id, "")])
    return _write_csv(COMBINATIONS_CSV_HEADER, rows)


def draft_order_csv(session: LotterySession) -> str:
    rows = []
    for pick in session.draft_order or []:
        label = pick.combination.label() if pick.combination is not None else "N/A"
        rows.append([pick.pick, pick.team_name, label])
    return _write_csv(DRAFT_ORDER_CSV_HEADER, rows)


def export_filename(lottery_name: str, suffix: str = "lottery_results") -> str:
    base = _WS_RE.sub("_", str(lottery_name or "").strip()) or "lottery"
    return f"{base}_{suffix}.csv"
