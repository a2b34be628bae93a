"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from predbets.models import Bet, BetPlaced, Market


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. market_closed, you_lost")


# --- Requests ---
# Amounts and votes are range-checked by the settlement service so that every
# rejection carries a stable error code.
class CreateMarketRequest(BaseModel):
    market_id: str
    fee_basis_points: int | None = Field(None, description="Defaults to the configured house fee")


class ResolveMarketRequest(BaseModel):
    winner: str = Field(..., description="yes or no")


class PlaceBetRequest(BaseModel):
    vote: str = Field(..., description="yes or no")
    amount: int = Field(..., description="Stake in base units (u64)")


class ClaimRequest(BaseModel):
    user: str | None = Field(None, description="Bet owner; defaults to the caller")


class DepositRequest(BaseModel):
    amount: int


# --- Markets ---
class MarketsListResponse(BaseModel):
    markets: list[Market]
    total: int


class OddsResponse(BaseModel):
    market_id: str
    total_yes: int
    total_no: int
    total_pool: int
    fee_basis_points: int
    yes_probability_pct: float
    no_probability_pct: float
    yes_payout_multiplier: float
    no_payout_multiplier: float


class QuoteResponse(BaseModel):
    market_id: str
    vote: str
    amount: int
    total_pool: int
    fee: int
    distributable: int
    winning_pool: int
    payout: int


# --- Bets ---
class BetsListResponse(BaseModel):
    bets: list[Bet]
    total: int


class ClaimResponse(BaseModel):
    market_id: str
    user: str
    amount: int
    payout: int
    fee: int
    distributable: int
    winning_pool: int


# --- Accounts ---
class BalanceResponse(BaseModel):
    user: str
    balance: int


# --- Events ---
class EventsResponse(BaseModel):
    market_id: str
    events: list[BetPlaced]


class AuditResponse(BaseModel):
    market_id: str
    ok: bool
    issues: list[str] = Field(default_factory=list)
    report: dict[str, Any] = Field(default_factory=dict)
