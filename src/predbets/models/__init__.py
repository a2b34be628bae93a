"""Canonical schema (Pydantic) - Market, Bet, BetPlaced."""

from predbets.models.bet import Bet
from predbets.models.events import BetPlaced
from predbets.models.market import U64_MAX, Market, MarketState, Outcome

__all__ = [
    "Market",
    "MarketState",
    "Outcome",
    "Bet",
    "BetPlaced",
    "U64_MAX",
]
