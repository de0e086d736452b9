from __future__ import annotations

"""NBA Draft Lottery odds table (pure).

We follow the modern NBA odds (post-2019 reform), indexed by rank
(1 = worst record):
  ranks 1..3: 14.0%
  rank 4:     12.5%
  rank 5:     10.5%
  rank 6:      9.0%
  rank 7:      7.5%
  rank 8:      6.0%
  rank 9:      4.5%
  rank 10:     3.0%
  rank 11:     2.0%
  rank 12:     1.5%
  rank 13:     1.0%
  rank 14:     0.5%

Leagues with fewer than 14 teams take the first N entries. The leftover
percentage is not redistributed; those combinations are simply not used.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from . import config
from .errors import INVALID_RANKS, INVALID_TEAM_COUNT, ConfigurationError
from .types import Team


NBA_LOTTERY_ODDS_2019: Tuple[float, ...] = (
    14.0, 14.0, 14.0,
    12.5,
    10.5,
    9.0,
    7.5,
    6.0,
    4.5,
    3.0,
    2.0,
    1.5,
    1.0,
    0.5,
)


def validate_team_count(team_count: int) -> int:
    try:
        n = int(team_count)
    except (TypeError, ValueError):
        raise ConfigurationError(INVALID_TEAM_COUNT, f"team_count must be an integer, got {team_count!r}")
    if n < config.MIN_TEAMS or n > config.MAX_TEAMS:
        raise ConfigurationError(
            INVALID_TEAM_COUNT,
            f"team_count must be between {config.MIN_TEAMS} and {config.MAX_TEAMS}, got {n}",
            {"team_count": n},
        )
    return n


def odds_for(team_count: int) -> Tuple[float, ...]:
    """Odds by rank for a league of team_count teams (index 0 = rank 1)."""
    n = validate_team_count(team_count)
    return NBA_LOTTERY_ODDS_2019[:n]


def combination_quota(odds_percentage: float) -> int:
    """Number of combinations (out of 1000) a team holds at the given odds."""
    return int(round(float(odds_percentage) * config.TOTAL_COMBINATIONS / 100))


def validate_ranks(teams: Sequence[Team]) -> List[Team]:
    """Return teams sorted by rank; ranks must be exactly 1..N."""
    ranks = sorted(int(t.rank) for t in teams)
    expected = list(range(1, len(teams) + 1))
    if ranks != expected:
        seen: Dict[int, int] = {}
        for r in ranks:
            seen[r] = seen.get(r, 0) + 1
        raise ConfigurationError(
            INVALID_RANKS,
            f"ranks must be a permutation of 1..{len(teams)}",
            {
                "ranks": ranks,
                "duplicates": sorted(r for r, c in seen.items() if c > 1),
                "missing": sorted(set(expected) - set(ranks)),
            },
        )
    ids = [t.id for t in teams]
    if len(set(ids)) != len(ids):
        raise ConfigurationError(INVALID_RANKS, "team ids must be unique", {"team_ids": ids})
    return sorted(teams, key=lambda t: int(t.rank))


def assign_odds(teams: Iterable[Team]) -> None:
    """Stamp odds_percentage on each team by rank (mutates teams)."""
    roster = validate_ranks(list(teams))
    odds = odds_for(len(roster))
    for team, pct in zip(roster, odds):
        team.odds_percentage = float(pct)
