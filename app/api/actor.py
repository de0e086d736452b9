from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class Actor:
    """Caller identity handed over by the upstream auth layer."""

    id: str
    display_name: str = ""
    email: str = ""


def current_actor(
    x_actor_id: str = Header(default=""),
    x_actor_name: str = Header(default=""),
    x_actor_email: str = Header(default=""),
) -> Actor:
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(status_code=401, detail="X-Actor-Id header is required")
    return Actor(
        id=actor_id,
        display_name=(x_actor_name or "").strip() or actor_id,
        email=(x_actor_email or "").strip(),
    )
