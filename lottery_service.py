"""Lottery orchestration.

Each public function is one step of a lottery session:

  1) fetch the current snapshot from LotteryRepo (never trust a cached copy)
  2) check the actor (admin-only steps) and run one engine operation
  3) persist the whole session (and the draw log row) in one transaction

Concurrent writers are not arbitrated: the last successful save wins. A
caller that loses a race simply re-fetches before its next step.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from lottery import draw as draw_engine
from lottery.errors import (
    COMBINATIONS_MISSING,
    DRAW_COMPLETE,
    DRAW_EXHAUSTED,
    DRAW_INCOMPLETE,
    LOTTERY_NOT_FOUND,
    LotteryNotFoundError,
    LotteryStateError,
)
from lottery.export import combinations_csv, draft_order_csv, export_filename
from lottery.session import STATUS_DRAWING, STATUS_REVEAL, LotterySession
from lottery.types import CollisionRetry, Combination, DraftPick, DrawnPick, Team, Verifier
from lottery_repo import LotteryRepo

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _new_lottery_id() -> str:
    return f"lot_{uuid4().hex[:12]}"


def _load(repo: LotteryRepo, lottery_id: str) -> LotterySession:
    session = repo.get_session(lottery_id)
    if session is None:
        raise LotteryNotFoundError(LOTTERY_NOT_FOUND, f"lottery not found: {lottery_id}")
    return session


# ------------------------
# Setup
# ------------------------

def create_lottery(
    db_path: str,
    *,
    name: str,
    admin_id: str,
    team_count: int,
    required_verifier_count: int,
) -> LotterySession:
    session = LotterySession.new(
        lottery_id=_new_lottery_id(),
        name=name,
        admin_id=admin_id,
        team_count=team_count,
        required_verifier_count=required_verifier_count,
        created_at=_utc_now_iso(),
    )
    with LotteryRepo(db_path) as repo:
        repo.save_session(session)
    logger.info(
        "lottery created id=%s admin=%s teams=%s verifiers=%s",
        session.id,
        session.admin_id,
        session.team_count,
        session.required_verifier_count,
    )
    return session


def get_lottery(db_path: str, lottery_id: str) -> LotterySession:
    with LotteryRepo(db_path) as repo:
        return _load(repo, lottery_id)


def list_lotteries(db_path: str, *, admin_id: Optional[str] = None) -> List[LotterySession]:
    with LotteryRepo(db_path) as repo:
        return repo.list_sessions(admin_id=admin_id)


def update_team(
    db_path: str,
    lottery_id: str,
    team_id: str,
    *,
    actor_id: str,
    name: Optional[str] = None,
    emails: Optional[Sequence[str]] = None,
) -> Team:
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        team = session.update_team(team_id, name=name, emails=emails)
        repo.save_session(session)
    return team


def finish_setup(db_path: str, lottery_id: str, *, actor_id: str) -> LotterySession:
    """setup -> verification, or setup -> drawing when no witnesses are required."""
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        status = session.finish_setup()
        repo.save_session(session)
    logger.info("lottery setup finished id=%s status=%s", lottery_id, status)
    return session


# ------------------------
# Verification
# ------------------------

def add_verifier(
    db_path: str,
    lottery_id: str,
    *,
    user_id: str,
    name: str,
    email: str = "",
) -> LotterySession:
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.add_verifier(
            Verifier(user_id=str(user_id), name=str(name or ""), email=str(email or ""), verified_at=_utc_now_iso())
        )
        repo.save_session(session)
    logger.info(
        "lottery verified id=%s user=%s (%s/%s)",
        lottery_id,
        user_id,
        len(session.verifiers),
        session.required_verifier_count,
    )
    return session


def allocate(db_path: str, lottery_id: str, *, actor_id: str) -> List[Combination]:
    """Generate the combination assignment once; repeated calls return it unchanged."""
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        had_combinations = bool(session.combinations)
        combos = session.allocate()
        if not had_combinations:
            repo.save_session(session)
            logger.info(
                "lottery combinations allocated id=%s assigned=%s dead=%s",
                lottery_id,
                sum(1 for c in combos if not c.is_dead),
                sum(1 for c in combos if c.is_dead),
            )
    return combos


def start_drawing(db_path: str, lottery_id: str, *, actor_id: str) -> LotterySession:
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        session.start_drawing()
        repo.save_session(session)
    logger.info("lottery drawing started id=%s", lottery_id)
    return session


# ------------------------
# Drawing
# ------------------------

def begin_draw(db_path: str, lottery_id: str, *, actor_id: str) -> LotterySession:
    """Announce the next draw to observers (is_drawing + status message)."""
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        session.require_status(STATUS_DRAWING, action="draw")
        if session.is_draw_complete():
            raise LotteryStateError(DRAW_COMPLETE, "all lottery picks are already drawn")
        session.set_drawing_state(
            is_drawing=True,
            message=f"Drawing pick #{session.next_pick_number()}...",
        )
        repo.save_session(session)
    return session


def abort_draw(db_path: str, lottery_id: str, *, actor_id: str) -> LotterySession:
    """Clear the in-progress flag set by begin_draw() after a failed draw request."""
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        if session.is_drawing:
            session.set_drawing_state(is_drawing=False)
            repo.save_session(session)
            logger.info("lottery draw aborted id=%s pick=%s", lottery_id, session.next_pick_number())
    return session


def draw_next_pick(
    db_path: str,
    lottery_id: str,
    *,
    actor_id: str,
    draw_balls: Optional[draw_engine.BallSource] = None,
    rng: Optional[random.Random] = None,
) -> draw_engine.DrawOutcome:
    """One ball draw for the next unresolved pick.

    An accepted pick and its draw-log row are persisted together; a collision
    only updates the observer status message and the draw log.
    """
    source = draw_balls if draw_balls is not None else draw_engine.random_ball_source(rng)
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        session.require_status(STATUS_DRAWING, action="draw")
        outcome = draw_engine.draw_next_pick(session, source)

        with repo.transaction():
            if isinstance(outcome, DrawnPick):
                session.record_pick(outcome)
                team_name = session.team(outcome.team_id).name
                if session.is_draw_complete():
                    message = "All lottery picks have been drawn."
                else:
                    message = f"Pick #{outcome.pick}: {team_name} ({outcome.combination.label()})"
                session.set_drawing_state(is_drawing=False, message=message, balls=outcome.combination.balls)
                repo.save_session(session)
                repo.append_draw_log(
                    lottery_id,
                    pick_no=outcome.pick,
                    balls=outcome.combination.balls,
                    outcome="accepted",
                    combination_id=outcome.combination.id,
                    team_id=outcome.team_id,
                    message=message,
                    actor_id=actor_id,
                )
                logger.info(
                    "lottery pick accepted id=%s pick=%s team=%s combination=%s",
                    lottery_id,
                    outcome.pick,
                    outcome.team_id,
                    outcome.combination.id,
                )
            else:
                message = draw_engine.collision_message(outcome, session.team_names())
                session.set_drawing_state(is_drawing=True, message=message, balls=outcome.balls)
                repo.save_session(session)
                repo.append_draw_log(
                    lottery_id,
                    pick_no=outcome.pick,
                    balls=outcome.balls,
                    outcome=outcome.reason,
                    combination_id=outcome.combination_id,
                    team_id=outcome.team_id,
                    message=message,
                    actor_id=actor_id,
                )
                logger.debug(
                    "lottery redraw id=%s pick=%s reason=%s balls=%s",
                    lottery_id,
                    outcome.pick,
                    outcome.reason,
                    list(outcome.balls),
                )
    return outcome


def draw_until_resolved(
    db_path: str,
    lottery_id: str,
    *,
    actor_id: str,
    draw_balls: Optional[draw_engine.BallSource] = None,
    rng: Optional[random.Random] = None,
    max_attempts: int = 1000,
) -> Tuple[DrawnPick, List[CollisionRetry]]:
    """Repeat draw_next_pick() until the current pick is resolved."""
    source = draw_balls if draw_balls is not None else draw_engine.random_ball_source(rng)
    retries: List[CollisionRetry] = []
    for _ in range(int(max_attempts)):
        outcome = draw_next_pick(db_path, lottery_id, actor_id=actor_id, draw_balls=source)
        if isinstance(outcome, DrawnPick):
            return outcome, retries
        retries.append(outcome)
    raise LotteryStateError(DRAW_EXHAUSTED, f"no valid combination after {max_attempts} attempts")


def compose_draft_order(db_path: str, lottery_id: str, *, actor_id: str) -> List[DraftPick]:
    """drawing -> reveal. Calling again in reveal returns the stored order."""
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        if session.status == STATUS_REVEAL and session.draft_order:
            return list(session.draft_order)
        order = session.compose()
        repo.save_session(session)
    logger.info(
        "lottery draft order composed id=%s top=%s",
        lottery_id,
        [p.team_id for p in order[: session.picks_required()]],
    )
    return order


def complete_lottery(db_path: str, lottery_id: str, *, actor_id: str) -> LotterySession:
    with LotteryRepo(db_path) as repo:
        session = _load(repo, lottery_id)
        session.require_admin(actor_id)
        session.complete()
        repo.save_session(session)
    logger.info("lottery complete id=%s", lottery_id)
    return session


# ------------------------
# Audit / export
# ------------------------

def get_draw_log(db_path: str, lottery_id: str) -> List[Dict[str, Any]]:
    with LotteryRepo(db_path) as repo:
        _load(repo, lottery_id)
        return repo.list_draw_log(lottery_id)


def export_combinations_csv(db_path: str, lottery_id: str) -> Tuple[str, str]:
    """(filename, csv text) for the combination assignment."""
    session = get_lottery(db_path, lottery_id)
    if not session.combinations:
        raise LotteryStateError(COMBINATIONS_MISSING, "combinations have not been generated yet")
    return export_filename(session.name, "combinations"), combinations_csv(session)


def export_draft_order_csv(db_path: str, lottery_id: str) -> Tuple[str, str]:
    session = get_lottery(db_path, lottery_id)
    if not session.draft_order:
        raise LotteryStateError(DRAW_INCOMPLETE, "draft order has not been composed yet")
    return export_filename(session.name), draft_order_csv(session)
