from __future__ import annotations

"""Ball-draw engine (pure).

One call to draw_next_pick() is one trip to the ball machine for the next
unresolved lottery pick:

  1) draw 4 distinct balls uniformly without replacement (1..14)
  2) sort them and look up the matching combination
  3) resolve, checked in this order:
       - no match (the excluded combination)      -> CollisionRetry("excluded")
       - match but unassigned (dead combination)  -> CollisionRetry("dead")
       - match but team already holds a pick      -> CollisionRetry("already_selected")
       - otherwise                                -> DrawnPick

Nothing here mutates the session. The caller appends accepted picks and
persists them, so a draw can always be resumed from the persisted pick list.
No weighting happens at draw time; fairness comes entirely from how many
combinations each team holds.
"""

import random
from typing import TYPE_CHECKING, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from . import config
from .combinations import index_by_balls, owners_by_team
from .errors import (
    COMBINATIONS_MISSING,
    DRAW_COMPLETE,
    DRAW_EXHAUSTED,
    INSUFFICIENT_COMBINATIONS,
    INVALID_BALLS,
    ConfigurationError,
    LotteryStateError,
)
from .types import CollisionRetry, Combination, DrawnPick, norm_balls

if TYPE_CHECKING:  # pragma: no cover
    from .session import LotterySession


BallSource = Callable[[], Sequence[int]]
DrawOutcome = Union[DrawnPick, CollisionRetry]


def picks_required(team_count: int) -> int:
    return min(config.LOTTERY_PICKS, int(team_count))


def next_pick_number(drawn_picks: Sequence[DrawnPick]) -> int:
    """1-based pick being drawn next, derived from persisted picks only."""
    return len(drawn_picks) + 1


def is_draw_complete(team_count: int, drawn_picks: Sequence[DrawnPick]) -> bool:
    return len(drawn_picks) >= picks_required(team_count)


def random_ball_source(rng: Optional[random.Random] = None) -> BallSource:
    """Uniform ball machine: 4 distinct balls out of 14."""
    r = rng if rng is not None else random.SystemRandom()
    universe = list(range(1, config.TOTAL_BALLS + 1))

    def _draw() -> List[int]:
        return r.sample(universe, config.BALLS_PER_DRAW)

    return _draw


def scripted_ball_source(draws: Sequence[Sequence[int]]) -> BallSource:
    """Replay a fixed list of ball sets (audits, rehearsals, tests)."""
    queue = [list(d) for d in draws]
    i = 0

    def _draw() -> List[int]:
        nonlocal i
        if i >= len(queue):
            raise LotteryStateError(DRAW_EXHAUSTED, f"scripted ball source ran out after {len(queue)} draws")
        i += 1
        return queue[i - 1]

    return _draw


def validate_balls(balls: Sequence[int]) -> Tuple[int, ...]:
    try:
        norm = norm_balls(balls)
    except (TypeError, ValueError):
        raise ConfigurationError(INVALID_BALLS, f"balls must be integers, got {balls!r}")
    if len(norm) != config.BALLS_PER_DRAW or len(set(norm)) != len(norm):
        raise ConfigurationError(
            INVALID_BALLS,
            f"expected {config.BALLS_PER_DRAW} distinct balls, got {list(balls)!r}",
        )
    if norm[0] < 1 or norm[-1] > config.TOTAL_BALLS:
        raise ConfigurationError(INVALID_BALLS, f"balls must be within 1..{config.TOTAL_BALLS}, got {list(balls)!r}")
    return norm


def resolve_balls(
    balls: Sequence[int],
    *,
    pick: int,
    by_balls: Mapping[Tuple[int, ...], Combination],
    drawn_picks: Sequence[DrawnPick],
) -> DrawOutcome:
    """Resolve one ball set against the allocated combinations."""
    norm = validate_balls(balls)
    combo = by_balls.get(norm)
    if combo is None:
        return CollisionRetry(pick=pick, balls=norm, reason="excluded")
    if combo.is_dead:
        return CollisionRetry(pick=pick, balls=norm, reason="dead", combination_id=combo.id)
    if any(p.team_id == combo.team_id for p in drawn_picks):
        return CollisionRetry(
            pick=pick,
            balls=norm,
            reason="already_selected",
            combination_id=combo.id,
            team_id=combo.team_id,
        )
    return DrawnPick(pick=pick, combination=combo, team_id=combo.team_id)


def _check_drawable(session: "LotterySession") -> None:
    if not session.combinations:
        raise LotteryStateError(COMBINATIONS_MISSING, "combinations have not been generated yet")
    if is_draw_complete(session.team_count, session.drawn_picks):
        raise LotteryStateError(
            DRAW_COMPLETE,
            f"all {picks_required(session.team_count)} lottery picks are already drawn",
        )
    holders = owners_by_team(session.combinations)
    if len(holders) < picks_required(session.team_count):
        raise ConfigurationError(
            INSUFFICIENT_COMBINATIONS,
            f"{len(holders)} teams hold combinations, {picks_required(session.team_count)} picks required",
        )


def draw_next_pick(session: "LotterySession", draw_balls: BallSource) -> DrawOutcome:
    """Single draw attempt for the next unresolved pick."""
    _check_drawable(session)
    return resolve_balls(
        draw_balls(),
        pick=next_pick_number(session.drawn_picks),
        by_balls=index_by_balls(session.combinations),
        drawn_picks=session.drawn_picks,
    )


def run_draw(
    session: "LotterySession",
    draw_balls: BallSource,
    *,
    max_attempts: int = config.DRAW_MAX_ATTEMPTS,
    on_outcome: Optional[Callable[[DrawOutcome], None]] = None,
) -> Tuple[List[DrawnPick], List[CollisionRetry]]:
    """Draw until every lottery pick is resolved (non-interactive).

    Starts from session.drawn_picks (resume) and returns only the picks
    accepted during this call, plus every rejected attempt.
    """
    _check_drawable(session)
    by_balls = index_by_balls(session.combinations)
    drawn: List[DrawnPick] = list(session.drawn_picks)
    accepted: List[DrawnPick] = []
    retries: List[CollisionRetry] = []

    attempts = 0
    while not is_draw_complete(session.team_count, drawn):
        if attempts >= int(max_attempts):
            raise LotteryStateError(
                DRAW_EXHAUSTED,
                f"no valid combination after {attempts} attempts",
                {"picks_resolved": len(drawn)},
            )
        attempts += 1
        outcome = resolve_balls(
            draw_balls(),
            pick=next_pick_number(drawn),
            by_balls=by_balls,
            drawn_picks=drawn,
        )
        if on_outcome is not None:
            on_outcome(outcome)
        if isinstance(outcome, DrawnPick):
            drawn.append(outcome)
            accepted.append(outcome)
        else:
            retries.append(outcome)
    return accepted, retries


def collision_message(outcome: CollisionRetry, team_names: Optional[Dict[str, str]] = None) -> str:
    """Transient status line shown to observers after a rejected draw."""
    balls = "-".join(str(b) for b in outcome.balls)
    if outcome.reason == "already_selected":
        name = (team_names or {}).get(str(outcome.team_id), str(outcome.team_id))
        return f"{balls}: {name} has already been selected. Drawing again..."
    if outcome.reason == "dead":
        return f"{balls}: combination #{outcome.combination_id} is unassigned. Drawing again..."
    return f"{balls}: unused combination. Drawing again..."
