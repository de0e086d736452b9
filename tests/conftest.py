from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from lottery.combinations import allocate_combinations
from lottery.odds import assign_odds
from lottery.session import LotterySession
from lottery.types import Combination, Team, make_team_id
from lottery_repo import LotteryRepo


ADMIN = "admin-1"


def make_teams(n: int) -> List[Team]:
    teams = [Team(id=make_team_id(i), name=f"Franchise {i}", rank=i) for i in range(1, n + 1)]
    assign_odds(teams)
    return teams


def first_balls_by_team(combinations: Sequence[Combination]) -> Dict[str, List[int]]:
    out: Dict[str, List[int]] = {}
    for c in combinations:
        if c.team_id and c.team_id not in out:
            out[c.team_id] = list(c.balls)
    return out


def dead_balls(combinations: Sequence[Combination]) -> List[int]:
    for c in combinations:
        if c.is_dead:
            return list(c.balls)
    raise AssertionError("no dead combination in this allocation")


def drawing_session(n: int, *, name: str = "Keeper League") -> LotterySession:
    """Session already in drawing with combinations allocated (no witnesses)."""
    session = LotterySession.new(
        lottery_id="lot_test",
        name=name,
        admin_id=ADMIN,
        team_count=n,
        required_verifier_count=0,
    )
    for t in session.teams:
        t.name = f"Franchise {t.rank}"
    session.finish_setup()
    return session


@pytest.fixture()
def full_allocation():
    return allocate_combinations(make_teams(14))


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "lottery.sqlite3")
    with LotteryRepo(path) as repo:
        repo.init_db()
    return path
