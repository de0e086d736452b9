from __future__ import annotations

"""Tuning constants for the draft lottery engine.

The values mirror the official NBA lottery machine:
- 14 numbered balls, 4 drawn per combination
- C(14, 4) = 1001 possible combinations, one of which is never used
- odds are expressed as a share of the remaining 1000 combinations

Everything here is fixed for a given release; nothing is read from the
environment (see the root-level config.py for process settings).
"""

from typing import Tuple

# ---------------------------------------------------------------------------
# Ball machine
# ---------------------------------------------------------------------------

TOTAL_BALLS: int = 14
BALLS_PER_DRAW: int = 4

# The one combination the league leaves out so that exactly 1000 remain.
EXCLUDED_COMBINATION: Tuple[int, int, int, int] = (11, 12, 13, 14)

TOTAL_COMBINATIONS: int = 1000

# ---------------------------------------------------------------------------
# Session limits
# ---------------------------------------------------------------------------

MIN_TEAMS: int = 1
MAX_TEAMS: int = 14

# Number of picks decided by ball draws (the rest follow inverse rank).
LOTTERY_PICKS: int = 4

# Upper bound on draw attempts in one run_draw() call. A fair machine needs a
# handful of redraws at most; the bound only stops a broken ball source.
DRAW_MAX_ATTEMPTS: int = 10_000
