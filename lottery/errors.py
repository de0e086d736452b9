from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class LotteryError(Exception):
    """Structured error for lottery flows.

    The server layer maps each subclass to an HTTP status while keeping a
    stable machine-readable code for clients.
    """

    code: str
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ConfigurationError(LotteryError):
    """Bad input (team count, ranks, odds, balls). Fix the input and retry setup."""


class LotteryNotFoundError(LotteryError):
    """Unknown lottery or team id."""


class LotteryPermissionError(LotteryError):
    """Actor is not allowed to perform the operation."""


class LotteryStateError(LotteryError):
    """Operation is not legal in the session's current state."""


# Error codes (stable API surface)
INVALID_TEAM_COUNT = "INVALID_TEAM_COUNT"
INVALID_VERIFIER_COUNT = "INVALID_VERIFIER_COUNT"
INVALID_RANKS = "INVALID_RANKS"
ODDS_MISMATCH = "ODDS_MISMATCH"
INVALID_BALLS = "INVALID_BALLS"
INSUFFICIENT_COMBINATIONS = "INSUFFICIENT_COMBINATIONS"
ROSTER_INCOMPLETE = "ROSTER_INCOMPLETE"

LOTTERY_NOT_FOUND = "LOTTERY_NOT_FOUND"
TEAM_NOT_FOUND = "TEAM_NOT_FOUND"

NOT_ADMIN = "NOT_ADMIN"

INVALID_TRANSITION = "INVALID_TRANSITION"
ALREADY_VERIFIED = "ALREADY_VERIFIED"
VERIFIERS_FULL = "VERIFIERS_FULL"
VERIFICATION_INCOMPLETE = "VERIFICATION_INCOMPLETE"
COMBINATIONS_MISSING = "COMBINATIONS_MISSING"
DRAW_COMPLETE = "DRAW_COMPLETE"
DRAW_INCOMPLETE = "DRAW_INCOMPLETE"
DRAW_EXHAUSTED = "DRAW_EXHAUSTED"
DRAFT_ORDER_INVALID = "DRAFT_ORDER_INVALID"
SESSION_CORRUPT = "SESSION_CORRUPT"
