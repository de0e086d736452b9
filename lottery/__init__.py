"""Draft lottery engine package.

Modules:
  - types        : core domain dataclasses (Team, Combination, DrawnPick, DraftPick, ...)
  - config       : ball machine constants and session limits
  - errors       : structured errors + stable error codes
  - odds         : NBA odds table by rank (pure)
  - combinations : combination universe + proportional allocation (pure)
  - draw         : ball draws with redraw-on-collision (pure)
  - order        : final draft order from lottery picks + inverse rank (pure)
  - session      : lottery session aggregate / state machine (in-memory)
  - export       : CSV exports (combination audit, draft order)
"""

from __future__ import annotations

from .types import CollisionRetry, Combination, DraftPick, DrawnPick, Team, Verifier
from .session import LotterySession

__all__ = [
    "Team",
    "Combination",
    "DrawnPick",
    "CollisionRetry",
    "DraftPick",
    "Verifier",
    "LotterySession",
]
