from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class LotteryCreateRequest(BaseModel):
    name: str
    team_count: int = 14
    required_verifier_count: int = 2


class TeamUpdateRequest(BaseModel):
    # Only provided fields are changed; rank is fixed at creation.
    name: Optional[str] = None
    emails: Optional[List[str]] = None


class VerifyRequest(BaseModel):
    # Defaults come from the actor headers when omitted.
    name: Optional[str] = None
    email: Optional[str] = None


class DrawRequest(BaseModel):
    """One draw request. balls and until_resolved are mutually exclusive (400 INVALID_BALLS)."""

    until_resolved: bool = False
    rng_seed: Optional[int] = None
    # Explicit ball set (e.g. physical machine entry). Drawn at random when omitted.
    balls: Optional[List[int]] = Field(default=None, min_length=4, max_length=4)
