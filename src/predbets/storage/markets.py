"""Market persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import duckdb

from predbets.errors import DuplicateMarket
from predbets.models import Market, MarketState, Outcome

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = [
    "market_id",
    "admin",
    "state",
    "winner",
    "total_yes",
    "total_no",
    "fee_basis_points",
    "created_at",
    "resolved_at",
]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM markets"


def _row_to_market(row: tuple[Any, ...]) -> Market:
    d = dict(zip(_COLUMNS, row))
    return Market(
        market_id=d["market_id"],
        admin=d["admin"],
        state=MarketState(d["state"]),
        winner=Outcome(d["winner"]) if d["winner"] else None,
        total_yes=int(d["total_yes"]),
        total_no=int(d["total_no"]),
        fee_basis_points=int(d["fee_basis_points"]),
        created_at=d["created_at"],
        resolved_at=d["resolved_at"],
    )


def insert_market(conn: DuckDBPyConnection, market: Market) -> None:
    """Insert a new market. Raises DuplicateMarket if market_id is taken."""
    try:
        conn.execute(
            """
            INSERT INTO markets (market_id, admin, state, winner, total_yes, total_no, fee_basis_points, created_at, resolved_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                market.market_id,
                market.admin,
                market.state.value,
                market.winner.value if market.winner else None,
                market.total_yes,
                market.total_no,
                market.fee_basis_points,
                market.created_at,
                market.resolved_at,
            ],
        )
    except duckdb.ConstraintException as e:
        raise DuplicateMarket(f"Market already exists: {market.market_id}", market_id=market.market_id) from e


def get_market(conn: DuckDBPyConnection, market_id: str) -> Market | None:
    row = conn.execute(f"{_SELECT} WHERE market_id = ?", [market_id]).fetchone()
    return _row_to_market(row) if row else None


def list_markets(conn: DuckDBPyConnection, state: MarketState | None = None) -> list[Market]:
    """List markets, newest first. Optional filter by state."""
    if state is not None:
        rows = conn.execute(
            f"{_SELECT} WHERE state = ? ORDER BY created_at DESC, market_id", [state.value]
        ).fetchall()
    else:
        rows = conn.execute(f"{_SELECT} ORDER BY created_at DESC, market_id").fetchall()
    return [_row_to_market(r) for r in rows]


def update_totals(conn: DuckDBPyConnection, market_id: str, total_yes: int, total_no: int) -> None:
    conn.execute(
        "UPDATE markets SET total_yes = ?, total_no = ? WHERE market_id = ?",
        [total_yes, total_no, market_id],
    )


def mark_resolved(conn: DuckDBPyConnection, market_id: str, winner: Outcome, resolved_at: int) -> None:
    conn.execute(
        "UPDATE markets SET state = ?, winner = ?, resolved_at = ? WHERE market_id = ?",
        [MarketState.RESOLVED.value, winner.value, resolved_at, market_id],
    )
