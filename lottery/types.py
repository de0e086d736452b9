from __future__ import annotations

"""Lottery domain types.

This module is deliberately dependency-light so it can be imported by:
- lottery.odds         (odds table lookup)
- lottery.combinations (combination universe + allocation)
- lottery.draw         (ball draws)
- lottery.order        (final draft order)
- lottery.session      (session aggregate / state machine)

Conventions:
- team_id uses the seeded format "team-{n}" (n = initial rank)
- combination ids are 1-based serials over the 1000 usable combinations
- balls are always stored in ascending order
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


TeamId = str
CombinationId = int
Balls = Tuple[int, int, int, int]


def make_team_id(n: int) -> TeamId:
    return f"team-{int(n)}"


def norm_balls(balls: Sequence[Any]) -> Tuple[int, ...]:
    """Normalize a drawn ball set into an ascending tuple of ints."""
    return tuple(sorted(int(b) for b in balls))


def norm_emails(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    out: List[str] = []
    for e in v:
        s = str(e or "").strip()
        if s and s not in out:
            out.append(s)
    return out


@dataclass(slots=True)
class Team:
    """A lottery participant.

    rank: 1 = worst record = best odds. Unique and dense within a session.
    combinations: ids owned by this team, empty until allocation runs.
    """

    id: TeamId
    name: str
    rank: int
    emails: List[str] = field(default_factory=list)
    odds_percentage: float = 0.0
    combinations: List[CombinationId] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.name = str(self.name or "")
        self.rank = int(self.rank)
        self.emails = norm_emails(self.emails)
        self.odds_percentage = float(self.odds_percentage or 0.0)
        self.combinations = [int(c) for c in (self.combinations or [])]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rank": int(self.rank),
            "emails": list(self.emails),
            "odds_percentage": float(self.odds_percentage),
            "combinations": list(self.combinations),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Team":
        return cls(
            id=str(d.get("id") or ""),
            name=str(d.get("name") or ""),
            rank=int(d.get("rank") or 0),
            emails=norm_emails(d.get("emails")),
            odds_percentage=float(d.get("odds_percentage") or 0.0),
            combinations=[int(c) for c in (d.get("combinations") or [])],
        )


@dataclass(frozen=True, slots=True)
class Combination:
    """One 4-ball combination. team_id == "" means unassigned (dead)."""

    id: CombinationId
    balls: Balls
    team_id: TeamId = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", int(self.id))
        object.__setattr__(self, "balls", norm_balls(self.balls))
        object.__setattr__(self, "team_id", str(self.team_id or ""))

    @property
    def is_dead(self) -> bool:
        return not self.team_id

    def label(self) -> str:
        return "-".join(str(b) for b in self.balls)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": int(self.id), "balls": list(self.balls), "team_id": self.team_id}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Combination":
        return cls(
            id=int(d.get("id") or 0),
            balls=tuple(d.get("balls") or ()),  # type: ignore[arg-type]
            team_id=str(d.get("team_id") or ""),
        )


@dataclass(frozen=True, slots=True)
class DrawnPick:
    """An accepted ball draw binding a lottery pick to a team."""

    pick: int
    combination: Combination
    team_id: TeamId

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pick": int(self.pick),
            "combination": self.combination.to_dict(),
            "team_id": self.team_id,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "DrawnPick":
        return cls(
            pick=int(d.get("pick") or 0),
            combination=Combination.from_dict(d.get("combination") or {}),
            team_id=str(d.get("team_id") or ""),
        )


@dataclass(frozen=True, slots=True)
class CollisionRetry:
    """A rejected ball draw. The same pick must be drawn again.

    reason is one of:
      - "excluded"         : the unused combination came up
      - "dead"             : combination exists but belongs to nobody
      - "already_selected" : team already holds a lottery pick
    """

    pick: int
    balls: Tuple[int, ...]
    reason: str
    combination_id: Optional[CombinationId] = None
    team_id: Optional[TeamId] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pick": int(self.pick),
            "balls": list(self.balls),
            "reason": self.reason,
            "combination_id": self.combination_id,
            "team_id": self.team_id,
        }


@dataclass(frozen=True, slots=True)
class DraftPick:
    """A single slot in the final draft order.

    combination is set for slots decided by the lottery and None for slots
    filled by inverse rank.
    """

    pick: int
    team_id: TeamId
    team_name: str
    combination: Optional[Combination] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pick": int(self.pick),
            "team_id": self.team_id,
            "team_name": self.team_name,
            "combination": None if self.combination is None else self.combination.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "DraftPick":
        combo = d.get("combination")
        return cls(
            pick=int(d.get("pick") or 0),
            team_id=str(d.get("team_id") or ""),
            team_name=str(d.get("team_name") or ""),
            combination=Combination.from_dict(combo) if isinstance(combo, Mapping) else None,
        )


@dataclass(frozen=True, slots=True)
class Verifier:
    """A witness who attested before the draw."""

    user_id: str
    name: str
    email: str = ""
    verified_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "verified_at": self.verified_at,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Verifier":
        return cls(
            user_id=str(d.get("user_id") or ""),
            name=str(d.get("name") or ""),
            email=str(d.get("email") or ""),
            verified_at=str(d.get("verified_at") or ""),
        )
