from __future__ import annotations

"""Final draft order construction (pure).

  - picks 1..k   : lottery winners in the order they were drawn
  - picks k+1..N : every other team, worst -> best (ascending rank)

Ranks are unique, so rank alone orders the fallback block.
"""

from typing import Dict, List, Sequence, Set

from .errors import DRAFT_ORDER_INVALID, LotteryStateError
from .types import DraftPick, DrawnPick, Team, TeamId


def compose_draft_order(teams: Sequence[Team], drawn_picks: Sequence[DrawnPick]) -> List[DraftPick]:
    """Merge lottery picks with the inverse-rank fallback."""
    by_id: Dict[TeamId, Team] = {t.id: t for t in teams}
    if len(by_id) != len(teams):
        raise LotteryStateError(DRAFT_ORDER_INVALID, "roster contains duplicate team ids")

    ordered_picks = sorted(drawn_picks, key=lambda p: int(p.pick))

    order: List[DraftPick] = []
    seen: Set[TeamId] = set()
    for dp in ordered_picks:
        team = by_id.get(dp.team_id)
        if team is None:
            raise LotteryStateError(
                DRAFT_ORDER_INVALID,
                f"drawn pick {dp.pick} references unknown team {dp.team_id!r}",
            )
        if team.id in seen:
            raise LotteryStateError(
                DRAFT_ORDER_INVALID,
                f"team {team.id!r} was drawn more than once",
            )
        seen.add(team.id)
        order.append(
            DraftPick(
                pick=len(order) + 1,
                team_id=team.id,
                team_name=team.name,
                combination=dp.combination,
            )
        )

    rest = sorted((t for t in teams if t.id not in seen), key=lambda t: int(t.rank))
    for team in rest:
        order.append(DraftPick(pick=len(order) + 1, team_id=team.id, team_name=team.name))

    validate_draft_order(teams, order)
    return order


def validate_draft_order(teams: Sequence[Team], order: Sequence[DraftPick]) -> None:
    """Length == team count, picks are 1..N, every team exactly once."""
    n = len(teams)
    if len(order) != n:
        raise LotteryStateError(DRAFT_ORDER_INVALID, f"draft order has {len(order)} picks for {n} teams")
    if sorted(int(p.pick) for p in order) != list(range(1, n + 1)):
        raise LotteryStateError(DRAFT_ORDER_INVALID, "pick numbers must be exactly 1..N")
    if sorted(p.team_id for p in order) != sorted(t.id for t in teams):
        raise LotteryStateError(DRAFT_ORDER_INVALID, "every team must appear exactly once")
