"""BetPlaced - best-effort notification for off-chain display."""

from __future__ import annotations

from pydantic import BaseModel

from predbets.models.market import Outcome


class BetPlaced(BaseModel):
    """Pool totals right after a bet commits. Display only, never authoritative."""

    market_id: str
    user: str
    amount: int
    vote: Outcome
    new_total_yes: int
    new_total_no: int
    event_id: int | None = None
    emitted_at: int | None = None  # ms epoch
