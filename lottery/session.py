from __future__ import annotations

"""Lottery session aggregate + state machine (in-memory).

Lifecycle:
    setup -> verification -> drawing -> reveal -> complete
    setup -> drawing                       (required_verifier_count == 0)

- setup        : teams editable (name/emails); ranks fixed by creation order
- verification : witnesses attest; combinations may be previewed (allocate)
- drawing      : combinations frozen; picks are appended one at a time
- reveal       : draft order composed; presentation in progress
- complete     : terminal

The session holds no I/O. lottery_service fetches a snapshot, calls one
mutating method and persists the result.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .combinations import allocate_combinations, validate_ranks
from .errors import (
    ALREADY_VERIFIED,
    DRAW_INCOMPLETE,
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
from .draw import is_draw_complete, next_pick_number, picks_required
from .odds import assign_odds, validate_team_count
from .order import compose_draft_order
from .types import Combination, DraftPick, DrawnPick, Team, Verifier, make_team_id, norm_emails


STATUS_SETUP = "setup"
STATUS_VERIFICATION = "verification"
STATUS_DRAWING = "drawing"
STATUS_REVEAL = "reveal"
STATUS_COMPLETE = "complete"

STATUSES: Tuple[str, ...] = (
    STATUS_SETUP,
    STATUS_VERIFICATION,
    STATUS_DRAWING,
    STATUS_REVEAL,
    STATUS_COMPLETE,
)

_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    STATUS_SETUP: (STATUS_VERIFICATION, STATUS_DRAWING),
    STATUS_VERIFICATION: (STATUS_DRAWING,),
    STATUS_DRAWING: (STATUS_REVEAL,),
    STATUS_REVEAL: (STATUS_COMPLETE,),
    STATUS_COMPLETE: (),
}


def can_transition(current: str, target: str) -> bool:
    return target in _TRANSITIONS.get(str(current), ())


def validate_verifier_count(value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(INVALID_VERIFIER_COUNT, f"required_verifier_count must be an integer, got {value!r}")
    if n < 0:
        raise ConfigurationError(INVALID_VERIFIER_COUNT, f"required_verifier_count must be >= 0, got {n}")
    return n


@dataclass(slots=True)
class LotterySession:
    id: str
    name: str
    admin_id: str
    team_count: int
    required_verifier_count: int
    teams: List[Team]
    status: str = STATUS_SETUP
    verifiers: List[Verifier] = field(default_factory=list)
    combinations: List[Combination] = field(default_factory=list)
    drawn_picks: List[DrawnPick] = field(default_factory=list)
    draft_order: Optional[List[DraftPick]] = None
    # Ephemeral observer fields; only meaningful while status == drawing.
    is_drawing: bool = False
    drawing_status_message: str = ""
    current_drawing_balls: List[int] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def new(
        cls,
        *,
        lottery_id: str,
        name: str,
        admin_id: str,
        team_count: int,
        required_verifier_count: int,
        created_at: str = "",
    ) -> "LotterySession":
        """Fresh session in setup with placeholder teams ranked 1..N."""
        n = validate_team_count(team_count)
        teams = [Team(id=make_team_id(i), name=f"Team {i}", rank=i) for i in range(1, n + 1)]
        assign_odds(teams)
        return cls(
            id=str(lottery_id),
            name=str(name or "").strip(),
            admin_id=str(admin_id),
            team_count=n,
            required_verifier_count=validate_verifier_count(required_verifier_count),
            teams=teams,
            created_at=created_at,
            updated_at=created_at,
        )

    # ------------------------
    # Queries
    # ------------------------

    def is_admin(self, actor_id: Optional[str]) -> bool:
        return bool(actor_id) and str(actor_id) == self.admin_id

    def require_admin(self, actor_id: Optional[str]) -> None:
        if not self.is_admin(actor_id):
            raise LotteryPermissionError(NOT_ADMIN, "only the lottery admin can do this")

    def team(self, team_id: str) -> Team:
        for t in self.teams:
            if t.id == str(team_id):
                return t
        raise LotteryNotFoundError(TEAM_NOT_FOUND, f"team not found: {team_id}")

    def team_names(self) -> Dict[str, str]:
        return {t.id: t.name for t in self.teams}

    def teams_by_rank(self) -> List[Team]:
        return sorted(self.teams, key=lambda t: int(t.rank))

    def may_start_drawing(self) -> bool:
        return len(self.verifiers) >= int(self.required_verifier_count)

    def picks_required(self) -> int:
        return picks_required(self.team_count)

    def next_pick_number(self) -> int:
        return next_pick_number(self.drawn_picks)

    def is_draw_complete(self) -> bool:
        return is_draw_complete(self.team_count, self.drawn_picks)

    # ------------------------
    # Transitions
    # ------------------------

    def require_status(self, *allowed: str, action: str) -> None:
        if self.status not in allowed:
            raise LotteryStateError(
                INVALID_TRANSITION,
                f"cannot {action} while lottery is in '{self.status}'",
                {"status": self.status, "allowed": list(allowed)},
            )

    def _transition_to(self, target: str) -> None:
        if not can_transition(self.status, target):
            raise LotteryStateError(
                INVALID_TRANSITION,
                f"cannot move lottery from '{self.status}' to '{target}'",
                {"status": self.status, "target": target},
            )
        self.status = target

    def update_team(self, team_id: str, *, name: Optional[str] = None, emails: Optional[Sequence[str]] = None) -> Team:
        """Edit a team's display fields (setup only). Ranks never change here."""
        self.require_status(STATUS_SETUP, action="edit teams")
        team = self.team(team_id)
        if name is not None:
            team.name = str(name).strip()
        if emails is not None:
            team.emails = norm_emails(list(emails))
        return team

    def validate_roster(self) -> None:
        if len(self.teams) != int(self.team_count):
            raise ConfigurationError(
                ROSTER_INCOMPLETE,
                f"lottery expects {self.team_count} teams, has {len(self.teams)}",
            )
        validate_ranks(self.teams)
        unnamed = [t.id for t in self.teams if not t.name.strip()]
        if unnamed:
            raise ConfigurationError(ROSTER_INCOMPLETE, "every team needs a name", {"team_ids": unnamed})

    def finish_setup(self) -> str:
        """setup -> verification (or straight to drawing when no witnesses are required)."""
        self.require_status(STATUS_SETUP, action="finish setup")
        self.validate_roster()
        if int(self.required_verifier_count) <= 0:
            self._transition_to(STATUS_DRAWING)
            self.allocate()
        else:
            self._transition_to(STATUS_VERIFICATION)
        return self.status

    def add_verifier(self, verifier: Verifier) -> Verifier:
        self.require_status(STATUS_VERIFICATION, action="add verifiers")
        if any(v.user_id == verifier.user_id for v in self.verifiers):
            raise LotteryStateError(ALREADY_VERIFIED, "you have already verified this lottery")
        if len(self.verifiers) >= int(self.required_verifier_count):
            raise LotteryStateError(VERIFIERS_FULL, "this lottery already has enough verifiers")
        self.verifiers.append(verifier)
        return verifier

    def allocate(self) -> List[Combination]:
        """Generate combinations once; later calls return the stored set untouched."""
        self.require_status(STATUS_VERIFICATION, STATUS_DRAWING, action="generate combinations")
        if self.combinations:
            return self.combinations
        allocation = allocate_combinations(self.teams)
        self.combinations = list(allocation.combinations)
        for team in self.teams:
            team.combinations = list(allocation.by_team.get(team.id, []))
        return self.combinations

    def start_drawing(self) -> None:
        """verification -> drawing; requires the witness quorum."""
        self.require_status(STATUS_VERIFICATION, action="start drawing")
        if not self.may_start_drawing():
            raise LotteryStateError(
                VERIFICATION_INCOMPLETE,
                f"{len(self.verifiers)} of {self.required_verifier_count} required verifiers",
            )
        self._transition_to(STATUS_DRAWING)
        self.allocate()

    def set_drawing_state(self, *, is_drawing: bool, message: str = "", balls: Sequence[int] = ()) -> None:
        self.is_drawing = bool(is_drawing)
        self.drawing_status_message = str(message or "")
        self.current_drawing_balls = [int(b) for b in balls]

    def record_pick(self, pick: DrawnPick) -> DrawnPick:
        """Append an accepted pick. Rejects out-of-order or repeated teams."""
        self.require_status(STATUS_DRAWING, action="record picks")
        if self.is_draw_complete():
            raise LotteryStateError(INVALID_TRANSITION, "all lottery picks are already drawn")
        if int(pick.pick) != self.next_pick_number():
            raise LotteryStateError(
                INVALID_TRANSITION,
                f"expected pick {self.next_pick_number()}, got {pick.pick}",
            )
        if any(p.team_id == pick.team_id for p in self.drawn_picks):
            raise LotteryStateError(INVALID_TRANSITION, f"team {pick.team_id!r} already holds a lottery pick")
        self.drawn_picks.append(pick)
        return pick

    def compose(self) -> List[DraftPick]:
        """drawing -> reveal; draft order and status change together."""
        self.require_status(STATUS_DRAWING, action="compose the draft order")
        if not self.is_draw_complete():
            raise LotteryStateError(
                DRAW_INCOMPLETE,
                f"{len(self.drawn_picks)} of {self.picks_required()} lottery picks drawn",
            )
        order = compose_draft_order(self.teams, self.drawn_picks)
        self._transition_to(STATUS_REVEAL)
        self.draft_order = order
        self.set_drawing_state(is_drawing=False)
        return order

    def complete(self) -> None:
        self._transition_to(STATUS_COMPLETE)

    # ------------------------
    # Serialization
    # ------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "admin_id": self.admin_id,
            "team_count": int(self.team_count),
            "required_verifier_count": int(self.required_verifier_count),
            "status": self.status,
            "teams": [t.to_dict() for t in self.teams],
            "verifiers": [v.to_dict() for v in self.verifiers],
            "combinations": [c.to_dict() for c in self.combinations],
            "drawn_picks": [p.to_dict() for p in self.drawn_picks],
            "draft_order": None if self.draft_order is None else [p.to_dict() for p in self.draft_order],
            "is_drawing": bool(self.is_drawing),
            "drawing_status_message": self.drawing_status_message,
            "current_drawing_balls": list(self.current_drawing_balls),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_summary_dict(self) -> Dict[str, Any]:
        """Listing payload (no combinations)."""
        return {
            "id": self.id,
            "name": self.name,
            "admin_id": self.admin_id,
            "team_count": int(self.team_count),
            "status": self.status,
            "verifier_count": len(self.verifiers),
            "required_verifier_count": int(self.required_verifier_count),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "LotterySession":
        status = str(d.get("status") or "")
        if status not in STATUSES:
            raise LotteryStateError(
                SESSION_CORRUPT,
                f"lottery {d.get('id')!r} has unknown status {status!r}",
                {"status": status},
            )
        order = d.get("draft_order")
        return cls(
            id=str(d.get("id") or ""),
            name=str(d.get("name") or ""),
            admin_id=str(d.get("admin_id") or ""),
            team_count=int(d.get("team_count") or 0),
            required_verifier_count=int(d.get("required_verifier_count") or 0),
            teams=[Team.from_dict(t) for t in (d.get("teams") or []) if isinstance(t, Mapping)],
            status=status,
            verifiers=[Verifier.from_dict(v) for v in (d.get("verifiers") or []) if isinstance(v, Mapping)],
            combinations=[Combination.from_dict(c) for c in (d.get("combinations") or []) if isinstance(c, Mapping)],
            drawn_picks=[DrawnPick.from_dict(p) for p in (d.get("drawn_picks") or []) if isinstance(p, Mapping)],
            draft_order=(
                [DraftPick.from_dict(p) for p in order if isinstance(p, Mapping)] if isinstance(order, list) else None
            ),
            is_drawing=bool(d.get("is_drawing")),
            drawing_status_message=str(d.get("drawing_status_message") or ""),
            current_drawing_balls=[int(b) for b in (d.get("current_drawing_balls") or [])],
            created_at=str(d.get("created_at") or ""),
            updated_at=str(d.get("updated_at") or ""),
        )


__all__ = [
    "LotterySession",
    "STATUSES",
    "STATUS_SETUP",
    "STATUS_VERIFICATION",
    "STATUS_DRAWING",
    "STATUS_REVEAL",
    "STATUS_COMPLETE",
    "can_transition",
    "validate_verifier_count",
]
