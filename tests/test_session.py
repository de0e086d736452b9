from __future__ import annotations

import pytest

from lottery.errors import (
    ALREADY_VERIFIED,
    DRAW_INCOMPLETE,
    INVALID_TEAM_COUNT,
    INVALID_TRANSITION,
    INVALID_VERIFIER_COUNT,
    NOT_ADMIN,
    ROSTER_INCOMPLETE,
    SESSION_CORRUPT,
    TEAM_NOT_FOUND,
    VERIFICATION_INCOMPLETE,
    VERIFIERS_FULL,
    ConfigurationError,
    LotteryNotFoundError,
    LotteryPermissionError,
    LotteryStateError,
)
from lottery.session import (
    STATUS_COMPLETE,
    STATUS_DRAWING,
    STATUS_REVEAL,
    STATUS_SETUP,
    STATUS_VERIFICATION,
    LotterySession,
    can_transition,
)
from lottery.draw import run_draw, scripted_ball_source
from lottery.types import Verifier

from conftest import ADMIN, drawing_session, first_balls_by_team


def _new(team_count=14, verifiers=2):
    return LotterySession.new(
        lottery_id="lot_1",
        name="Dynasty League",
        admin_id=ADMIN,
        team_count=team_count,
        required_verifier_count=verifiers,
    )


def _witness(n):
    return Verifier(user_id=f"user-{n}", name=f"Witness {n}")


def test_new_session_seeds_ranked_teams():
    s = _new(5)
    assert s.status == STATUS_SETUP
    assert [t.id for t in s.teams] == ["team-1", "team-2", "team-3", "team-4", "team-5"]
    assert [t.rank for t in s.teams] == [1, 2, 3, 4, 5]
    assert [t.odds_percentage for t in s.teams] == [14.0, 14.0, 14.0, 12.5, 10.5]
    assert s.combinations == []
    assert s.draft_order is None


def test_new_session_validates_counts():
    with pytest.raises(ConfigurationError) as ei:
        _new(team_count=15)
    assert ei.value.code == INVALID_TEAM_COUNT
    with pytest.raises(ConfigurationError) as ei:
        _new(verifiers=-1)
    assert ei.value.code == INVALID_VERIFIER_COUNT


def test_transition_table():
    assert can_transition(STATUS_SETUP, STATUS_VERIFICATION)
    assert can_transition(STATUS_SETUP, STATUS_DRAWING)
    assert not can_transition(STATUS_VERIFICATION, STATUS_SETUP)
    assert not can_transition(STATUS_DRAWING, STATUS_COMPLETE)
    assert not can_transition(STATUS_COMPLETE, STATUS_SETUP)


def test_admin_check():
    s = _new()
    assert s.is_admin(ADMIN)
    assert not s.is_admin("someone-else")
    assert not s.is_admin(None)
    with pytest.raises(LotteryPermissionError) as ei:
        s.require_admin("someone-else")
    assert ei.value.code == NOT_ADMIN


def test_update_team_only_in_setup():
    s = _new(4)
    team = s.update_team("team-2", name="  Otters ", emails=["a@x.io", "a@x.io", " b@x.io"])
    assert team.name == "Otters"
    assert team.emails == ["a@x.io", "b@x.io"]
    assert team.rank == 2

    with pytest.raises(LotteryNotFoundError) as ei:
        s.update_team("team-99", name="Ghost")
    assert ei.value.code == TEAM_NOT_FOUND

    s.finish_setup()
    with pytest.raises(LotteryStateError) as ei:
        s.update_team("team-2", name="Too Late")
    assert ei.value.code == INVALID_TRANSITION


def test_finish_setup_requires_named_teams():
    s = _new(3)
    s.update_team("team-3", name="   ")
    with pytest.raises(ConfigurationError) as ei:
        s.finish_setup()
    assert ei.value.code == ROSTER_INCOMPLETE
    assert s.status == STATUS_SETUP


def test_verification_flow():
    s = _new(6, verifiers=2)
    assert s.finish_setup() == STATUS_VERIFICATION
    assert not s.may_start_drawing()

    with pytest.raises(LotteryStateError) as ei:
        s.start_drawing()
    assert ei.value.code == VERIFICATION_INCOMPLETE

    s.add_verifier(_witness(1))
    with pytest.raises(LotteryStateError) as ei:
        s.add_verifier(_witness(1))
    assert ei.value.code == ALREADY_VERIFIED

    s.add_verifier(_witness(2))
    assert s.may_start_drawing()
    with pytest.raises(LotteryStateError) as ei:
        s.add_verifier(_witness(3))
    assert ei.value.code == VERIFIERS_FULL

    s.start_drawing()
    assert s.status == STATUS_DRAWING
    assert len(s.combinations) == 1000


def test_zero_verifiers_skips_verification():
    s = _new(4, verifiers=0)
    assert s.may_start_drawing()
    assert s.finish_setup() == STATUS_DRAWING
    assert len([c for c in s.combinations if not c.is_dead]) == 545


def test_allocate_is_idempotent_and_stamps_teams():
    s = _new(14, verifiers=1)
    with pytest.raises(LotteryStateError):
        s.allocate()
    s.finish_setup()
    first = s.allocate()
    assert s.team("team-1").combinations == list(range(1, 141))
    assert s.team("team-14").combinations == list(range(996, 1001))
    assert s.allocate() is first


def test_record_pick_guards():
    s = drawing_session(5)
    balls = first_balls_by_team(s.combinations)
    accepted, _ = run_draw(s, scripted_ball_source([balls["team-2"], balls["team-4"], balls["team-1"], balls["team-5"]]))

    with pytest.raises(LotteryStateError):
        s.record_pick(accepted[1])  # out of order
    s.record_pick(accepted[0])
    with pytest.raises(LotteryStateError):
        s.record_pick(accepted[0])  # same pick twice


def test_compose_requires_all_picks():
    s = drawing_session(5)
    balls = first_balls_by_team(s.combinations)
    accepted, _ = run_draw(s, scripted_ball_source([balls["team-2"], balls["team-4"], balls["team-1"], balls["team-5"]]))
    for p in accepted[:3]:
        s.record_pick(p)
    with pytest.raises(LotteryStateError) as ei:
        s.compose()
    assert ei.value.code == DRAW_INCOMPLETE

    s.record_pick(accepted[3])
    s.set_drawing_state(is_drawing=True, message="Drawing pick #4...", balls=[1, 2, 3, 4])
    order = s.compose()
    assert s.status == STATUS_REVEAL
    assert [p.team_id for p in order] == ["team-2", "team-4", "team-1", "team-5", "team-3"]
    assert s.draft_order == order
    assert not s.is_drawing
    assert s.current_drawing_balls == []

    s.complete()
    assert s.status == STATUS_COMPLETE
    with pytest.raises(LotteryStateError):
        s.complete()


def test_dict_round_trip():
    s = drawing_session(5)
    balls = first_balls_by_team(s.combinations)
    accepted, _ = run_draw(s, scripted_ball_source([balls["team-2"], balls["team-4"], balls["team-1"], balls["team-5"]]))
    for p in accepted:
        s.record_pick(p)
    s.compose()
    s.verifiers.append(_witness(1))

    restored = LotterySession.from_dict(s.to_dict())
    assert restored.to_dict() == s.to_dict()
    assert restored.draft_order[0].combination == accepted[0].combination


def test_summary_has_no_combinations():
    s = drawing_session(4)
    summary = s.to_summary_dict()
    assert "combinations" not in summary
    assert summary["status"] == STATUS_DRAWING
    assert summary["verifier_count"] == 0


@pytest.mark.parametrize("status", ["bogus", "", None])
def test_unknown_status_in_document_is_rejected(status):
    doc = drawing_session(4).to_dict()
    doc["status"] = status
    with pytest.raises(LotteryStateError) as ei:
        LotterySession.from_dict(doc)
    assert ei.value.code == SESSION_CORRUPT
