"""Bet persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import duckdb

from predbets.errors import DuplicateBet
from predbets.models import Bet, Outcome

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = ["market_id", "user_id", "amount", "vote", "claimed", "payout", "created_at", "claimed_at"]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM bets"


def _row_to_bet(row: tuple[Any, ...]) -> Bet:
    d = dict(zip(_COLUMNS, row))
    return Bet(
        market_id=d["market_id"],
        user=d["user_id"],
        amount=int(d["amount"]),
        vote=Outcome(d["vote"]),
        claimed=bool(d["claimed"]),
        payout=int(d["payout"]) if d["payout"] is not None else None,
        created_at=d["created_at"],
        claimed_at=d["claimed_at"],
    )


def insert_bet(conn: DuckDBPyConnection, bet: Bet) -> None:
    """Insert a new bet. Raises DuplicateBet if (market_id, user) already has one."""
    try:
        conn.execute(
            """
            INSERT INTO bets (market_id, user_id, amount, vote, claimed, payout, created_at, claimed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [bet.market_id, bet.user, bet.amount, bet.vote.value, bet.claimed, bet.payout, bet.created_at, bet.claimed_at],
        )
    except duckdb.ConstraintException as e:
        raise DuplicateBet(market_id=bet.market_id, user=bet.user) from e


def get_bet(conn: DuckDBPyConnection, market_id: str, user: str) -> Bet | None:
    row = conn.execute(f"{_SELECT} WHERE market_id = ? AND user_id = ?", [market_id, user]).fetchone()
    return _row_to_bet(row) if row else None


def list_bets(
    conn: DuckDBPyConnection,
    *,
    market_id: str | None = None,
    user: str | None = None,
) -> list[Bet]:
    """Bets filtered by market and/or user, oldest first."""
    conditions = ["1=1"]
    params: list[Any] = []
    if market_id is not None:
        conditions.append("market_id = ?")
        params.append(market_id)
    if user is not None:
        conditions.append("user_id = ?")
        params.append(user)
    where = " AND ".join(conditions)
    rows = conn.execute(f"{_SELECT} WHERE {where} ORDER BY created_at, market_id, user_id", params).fetchall()
    return [_row_to_bet(r) for r in rows]


def mark_claimed(conn: DuckDBPyConnection, market_id: str, user: str, payout: int, claimed_at: int) -> None:
    conn.execute(
        "UPDATE bets SET claimed = TRUE, payout = ?, claimed_at = ? WHERE market_id = ? AND user_id = ?",
        [payout, claimed_at, market_id, user],
    )


def pool_totals_from_bets(conn: DuckDBPyConnection, market_id: str) -> tuple[int, int]:
    """(sum of yes stakes, sum of no stakes) recomputed from committed bets."""
    row = conn.execute(
        """
        SELECT
            COALESCE(SUM(CASE WHEN vote = 'yes' THEN amount ELSE 0 END), 0),
            COALESCE(SUM(CASE WHEN vote = 'no' THEN amount ELSE 0 END), 0)
        FROM bets WHERE market_id = ?
        """,
        [market_id],
    ).fetchone()
    return int(row[0]), int(row[1])


def total_paid(conn: DuckDBPyConnection, market_id: str) -> int:
    row = conn.execute(
        "SELECT COALESCE(SUM(payout), 0) FROM bets WHERE market_id = ? AND claimed", [market_id]
    ).fetchone()
    return int(row[0])
