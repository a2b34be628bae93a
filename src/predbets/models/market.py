"""Market, Outcome, MarketState - canonical entities."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

U64_MAX = 2**64 - 1


class Outcome(str, Enum):
    """One side of a binary market."""

    YES = "yes"
    NO = "no"


class MarketState(str, Enum):
    """Open -> Resolved only. Resolved is terminal."""

    OPEN = "open"
    RESOLVED = "resolved"


class Market(BaseModel):
    """Binary-outcome betting pool keyed by market_id."""

    market_id: str = Field(..., min_length=1)
    admin: str
    state: MarketState = MarketState.OPEN
    winner: Outcome | None = None  # set only when resolved
    total_yes: int = Field(0, ge=0, le=U64_MAX)
    total_no: int = Field(0, ge=0, le=U64_MAX)
    fee_basis_points: int = Field(200, ge=0, le=10_000, description="1 bp = 0.01%")
    created_at: int | None = None  # ms epoch
    resolved_at: int | None = None  # ms epoch

    @property
    def is_open(self) -> bool:
        return self.state == MarketState.OPEN

    @property
    def total_pool(self) -> int:
        return self.total_yes + self.total_no

    def pool_for(self, vote: Outcome) -> int:
        return self.total_yes if vote == Outcome.YES else self.total_no
