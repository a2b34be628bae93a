"""Derived odds from pool totals - implied probability, payout multiplier, trend."""

from __future__ import annotations

import time
from collections import deque
from typing import Any

from predbets.models import Market, Outcome
from predbets.settlement.payout import BPS_DENOMINATOR


def implied_probability(vote: Outcome, total_yes: int, total_no: int) -> float:
    """Share of the pool staked on vote, in percent. 50 when the pool is empty."""
    total = total_yes + total_no
    if total == 0:
        return 50.0
    pool = total_yes if vote == Outcome.YES else total_no
    return pool / total * 100.0


def payout_multiplier(vote: Outcome, total_yes: int, total_no: int, fee_basis_points: int) -> float:
    """Payout per unit staked on vote if vote wins at current pools. 0 if the side is empty."""
    total = total_yes + total_no
    if total == 0:
        return 0.0
    winning = total_yes if vote == Outcome.YES else total_no
    if winning == 0:
        return 0.0
    distributable = total - total * fee_basis_points // BPS_DENOMINATOR
    return distributable / winning


def market_odds(market: Market) -> dict[str, Any]:
    """Display odds for both sides. Indicative only; claims use settlement.payout."""
    return {
        "market_id": market.market_id,
        "total_yes": market.total_yes,
        "total_no": market.total_no,
        "total_pool": market.total_pool,
        "fee_basis_points": market.fee_basis_points,
        "yes_probability_pct": implied_probability(Outcome.YES, market.total_yes, market.total_no),
        "no_probability_pct": implied_probability(Outcome.NO, market.total_yes, market.total_no),
        "yes_payout_multiplier": payout_multiplier(
            Outcome.YES, market.total_yes, market.total_no, market.fee_basis_points
        ),
        "no_payout_multiplier": payout_multiplier(
            Outcome.NO, market.total_yes, market.total_no, market.fee_basis_points
        ),
    }


class ProbabilitySeries:
    """Rolling yes-probability history for sparklines."""

    def __init__(self, maxlen: int = 100) -> None:
        self._times: deque[float] = deque(maxlen=maxlen)
        self._values: deque[float] = deque(maxlen=maxlen)

    def push(self, ts: float, total_yes: int, total_no: int) -> None:
        value = implied_probability(Outcome.YES, total_yes, total_no)
        if self._values and self._values[-1] == value:
            return
        self._times.append(ts)
        self._values.append(value)

    def latest(self) -> float | None:
        return self._values[-1] if self._values else None

    def change(self, window_sec: float = 300.0) -> float | None:
        """Change in yes-probability (percentage points) over the last window_sec seconds."""
        if len(self._values) < 2:
            return None
        cutoff = time.time() - window_sec
        points = [v for t, v in zip(self._times, self._values) if t >= cutoff]
        if len(points) < 2:
            return None
        return points[-1] - points[0]

    def series(self) -> list[tuple[float, float]]:
        return list(zip(self._times, self._values))
