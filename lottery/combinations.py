from __future__ import annotations

"""Combination universe + allocation (pure).

Universe:
  every ascending 4-ball tuple a<b<c<d over balls 1..14 in lexicographic
  order (1001 tuples), minus the excluded tuple (11, 12, 13, 14). The
  remaining 1000 get serial ids 1..1000 by position.

Allocation:
  teams are walked in rank order (rank 1 first). Each takes the next
  round(odds * 1000 / 100) combinations from one shared cursor, so blocks
  are contiguous and never overlap. Whatever is left after the last team
  stays unassigned ("dead"); drawing a dead combination forces a redraw.

The same roster always produces the same assignment, which is what makes the
pre-draw export auditable.
"""

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import config
from .errors import ODDS_MISMATCH, ConfigurationError
from .odds import combination_quota, odds_for, validate_ranks
from .types import Combination, CombinationId, Team, TeamId


def enumerate_combinations() -> List[Combination]:
    """All usable combinations, unassigned, in serial id order."""
    out: List[Combination] = []
    next_id = 1
    for balls in itertools.combinations(range(1, config.TOTAL_BALLS + 1), config.BALLS_PER_DRAW):
        if balls == config.EXCLUDED_COMBINATION:
            continue
        out.append(Combination(id=next_id, balls=balls))
        next_id += 1
    return out


@dataclass(frozen=True, slots=True)
class Allocation:
    """Output of allocate_combinations().

    combinations: full ordered universe (1000 rows) with owners stamped.
    by_team:      team_id -> owned ids in ascending order.
    """

    combinations: Tuple[Combination, ...]
    by_team: Dict[TeamId, List[CombinationId]] = field(default_factory=dict)

    @property
    def assigned_count(self) -> int:
        return sum(len(v) for v in self.by_team.values())

    @property
    def dead_count(self) -> int:
        return len(self.combinations) - self.assigned_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "combinations": [c.to_dict() for c in self.combinations],
            "by_team": {tid: list(ids) for tid, ids in self.by_team.items()},
            "assigned_count": int(self.assigned_count),
            "dead_count": int(self.dead_count),
        }


def allocate_combinations(
    teams: Sequence[Team],
    *,
    odds: Optional[Sequence[float]] = None,
) -> Allocation:
    """Partition the combination universe among teams by odds.

    odds defaults to odds_for(len(teams)); when given it must have exactly one
    entry per team (index 0 = rank 1). The teams themselves are not mutated.
    """
    ordered = validate_ranks(teams)
    odds_list = list(odds) if odds is not None else list(odds_for(len(ordered)))
    if len(odds_list) != len(ordered):
        raise ConfigurationError(
            ODDS_MISMATCH,
            f"odds table has {len(odds_list)} entries for {len(ordered)} teams",
        )

    quotas = [combination_quota(o) for o in odds_list]
    if sum(quotas) > config.TOTAL_COMBINATIONS:
        raise ConfigurationError(
            ODDS_MISMATCH,
            f"odds allocate {sum(quotas)} combinations, more than {config.TOTAL_COMBINATIONS}",
            {"quotas": quotas},
        )

    universe = enumerate_combinations()
    owners: List[TeamId] = [""] * len(universe)
    by_team: Dict[TeamId, List[CombinationId]] = {}

    cursor = 0
    for team, quota in zip(ordered, quotas):
        end = cursor + quota
        owners[cursor:end] = [team.id] * quota
        by_team[team.id] = [c.id for c in universe[cursor:end]]
        cursor = end

    combos = tuple(
        Combination(id=c.id, balls=c.balls, team_id=owner) for c, owner in zip(universe, owners)
    )
    return Allocation(combinations=combos, by_team=by_team)


def index_by_balls(combinations: Iterable[Combination]) -> Dict[Tuple[int, ...], Combination]:
    """Lookup table: ascending ball tuple -> combination."""
    return {tuple(c.balls): c for c in combinations}


def owners_by_team(combinations: Iterable[Combination]) -> Mapping[TeamId, int]:
    """Number of combinations held per team (dead ones excluded)."""
    counts: Dict[TeamId, int] = {}
    for c in combinations:
        if c.is_dead:
            continue
        counts[c.team_id] = counts.get(c.team_id, 0) + 1
    return counts
