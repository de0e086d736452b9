from __future__ import annotations

import pytest

from lottery.combinations import (
    allocate_combinations,
    enumerate_combinations,
    index_by_balls,
    owners_by_team,
    validate_ranks,
)
from lottery.errors import INVALID_RANKS, ODDS_MISMATCH, ConfigurationError
from lottery.types import Team

from conftest import make_teams


def test_universe_has_1000_serial_combinations():
    universe = enumerate_combinations()
    assert len(universe) == 1000
    assert [c.id for c in universe] == list(range(1, 1001))
    assert universe[0].balls == (1, 2, 3, 4)
    assert universe[-1].balls == (10, 12, 13, 14)
    assert (11, 12, 13, 14) not in {c.balls for c in universe}
    assert all(c.is_dead for c in universe)


def test_universe_is_ascending_and_distinct():
    universe = enumerate_combinations()
    for c in universe:
        assert list(c.balls) == sorted(set(c.balls))
        assert 1 <= c.balls[0] and c.balls[-1] <= 14
    assert len({c.balls for c in universe}) == 1000
    assert [c.balls for c in universe] == sorted(c.balls for c in universe)


def test_full_league_uses_every_combination(full_allocation):
    assert full_allocation.assigned_count == 1000
    assert full_allocation.dead_count == 0
    assert full_allocation.by_team["team-1"] == list(range(1, 141))
    assert full_allocation.by_team["team-4"] == list(range(421, 546))
    assert full_allocation.by_team["team-14"] == list(range(996, 1001))


def test_blocks_are_contiguous_and_disjoint(full_allocation):
    cursor = 1
    seen = set()
    for rank in range(1, 15):
        ids = full_allocation.by_team[f"team-{rank}"]
        assert ids == list(range(cursor, cursor + len(ids)))
        assert not seen.intersection(ids)
        seen.update(ids)
        cursor += len(ids)


def test_small_league_leaves_dead_combinations():
    alloc = allocate_combinations(make_teams(4))
    assert alloc.assigned_count == 545
    assert alloc.dead_count == 455
    assert [len(alloc.by_team[f"team-{r}"]) for r in range(1, 5)] == [140, 140, 140, 125]
    assert all(c.is_dead for c in alloc.combinations[545:])
    assert owners_by_team(alloc.combinations) == {"team-1": 140, "team-2": 140, "team-3": 140, "team-4": 125}


def test_allocation_is_deterministic_and_input_order_independent():
    teams = make_teams(9)
    first = allocate_combinations(teams)
    second = allocate_combinations(list(reversed(make_teams(9))))
    assert first.combinations == second.combinations
    assert first.by_team == second.by_team
    # teams are not mutated
    assert all(t.combinations == [] for t in teams)


def test_single_team_league():
    alloc = allocate_combinations(make_teams(1))
    assert alloc.assigned_count == 140
    assert alloc.dead_count == 860


def test_duplicate_ranks_rejected():
    teams = make_teams(3)
    teams[2].rank = 1
    with pytest.raises(ConfigurationError) as ei:
        allocate_combinations(teams)
    assert ei.value.code == INVALID_RANKS
    assert ei.value.details["duplicates"] == [1]
    assert ei.value.details["missing"] == [3]


def test_gapped_ranks_rejected():
    teams = [Team(id="a", name="A", rank=1), Team(id="b", name="B", rank=3)]
    with pytest.raises(ConfigurationError) as ei:
        validate_ranks(teams)
    assert ei.value.details["missing"] == [2]


def test_duplicate_team_ids_rejected():
    teams = [Team(id="a", name="A", rank=1), Team(id="a", name="B", rank=2)]
    with pytest.raises(ConfigurationError) as ei:
        validate_ranks(teams)
    assert ei.value.code == INVALID_RANKS


def test_odds_must_match_roster():
    with pytest.raises(ConfigurationError) as ei:
        allocate_combinations(make_teams(3), odds=[50.0, 50.0])
    assert ei.value.code == ODDS_MISMATCH

    with pytest.raises(ConfigurationError) as ei:
        allocate_combinations(make_teams(2), odds=[60.0, 50.0])
    assert ei.value.code == ODDS_MISMATCH


def test_custom_odds():
    alloc = allocate_combinations(make_teams(2), odds=[60.0, 40.0])
    assert len(alloc.by_team["team-1"]) == 600
    assert len(alloc.by_team["team-2"]) == 400


def test_index_by_balls(full_allocation):
    idx = index_by_balls(full_allocation.combinations)
    assert idx[(1, 2, 3, 4)].team_id == "team-1"
    assert idx[(10, 12, 13, 14)].team_id == "team-14"
    assert (11, 12, 13, 14) not in idx
