"""Bet - one user's stake on one market."""

from __future__ import annotations

from pydantic import BaseModel, Field

from predbets.models.market import U64_MAX, Outcome


class Bet(BaseModel):
    """Staked position. At most one per (market_id, user)."""

    market_id: str
    user: str
    amount: int = Field(..., gt=0, le=U64_MAX)
    vote: Outcome
    claimed: bool = False
    payout: int | None = None  # set when claimed
    created_at: int | None = None  # ms epoch
    claimed_at: int | None = None  # ms epoch
