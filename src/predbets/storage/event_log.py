"""BetPlaced event append and query - display feed log."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from predbets.models import BetPlaced, Outcome

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = ["event_id", "market_id", "user_id", "amount", "vote", "new_total_yes", "new_total_no", "emitted_at"]


def _row_to_event(row: tuple[Any, ...]) -> BetPlaced:
    d = dict(zip(_COLUMNS, row))
    return BetPlaced(
        event_id=d["event_id"],
        market_id=d["market_id"],
        user=d["user_id"],
        amount=int(d["amount"]),
        vote=Outcome(d["vote"]),
        new_total_yes=int(d["new_total_yes"]),
        new_total_no=int(d["new_total_no"]),
        emitted_at=d["emitted_at"],
    )


def append_bet_event(conn: DuckDBPyConnection, event: BetPlaced) -> BetPlaced:
    """Append one event and return it with event_id filled in."""
    row = conn.execute(
        """
        INSERT INTO bet_events (market_id, user_id, amount, vote, new_total_yes, new_total_no, emitted_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        RETURNING event_id
        """,
        [
            event.market_id,
            event.user,
            event.amount,
            event.vote.value,
            event.new_total_yes,
            event.new_total_no,
            event.emitted_at,
        ],
    ).fetchone()
    return event.model_copy(update={"event_id": row[0]})


def list_bet_events(
    conn: DuckDBPyConnection,
    market_id: str | None = None,
    since_id: int | None = None,
    limit: int = 500,
) -> list[BetPlaced]:
    """Events in emission order, optionally after since_id (for polling consumers)."""
    conditions = ["1=1"]
    params: list[Any] = []
    if market_id is not None:
        conditions.append("market_id = ?")
        params.append(market_id)
    if since_id is not None:
        conditions.append("event_id > ?")
        params.append(since_id)
    where = " AND ".join(conditions)
    params.append(limit)
    rows = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM bet_events WHERE {where} ORDER BY event_id ASC LIMIT ?",
        params,
    ).fetchall()
    return [_row_to_event(r) for r in rows]


def last_bet_event(conn: DuckDBPyConnection, market_id: str) -> BetPlaced | None:
    row = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM bet_events WHERE market_id = ? ORDER BY event_id DESC LIMIT 1",
        [market_id],
    ).fetchone()
    return _row_to_event(row) if row else None


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return event log statistics: total count, min/max emitted_at, count and volume by market_id."""
    total = conn.execute("SELECT COUNT(*) FROM bet_events").fetchone()[0]
    range_row = conn.execute("SELECT MIN(emitted_at), MAX(emitted_at) FROM bet_events").fetchone()
    min_ts, max_ts = range_row[0], range_row[1]
    by_market = conn.execute(
        """
        SELECT market_id, COUNT(*) AS cnt, SUM(amount) AS volume
        FROM bet_events GROUP BY market_id ORDER BY cnt DESC LIMIT 20
        """
    ).fetchall()
    return {
        "total_events": total,
        "min_emitted_at": min_ts,
        "max_emitted_at": max_ts,
        "by_market": [{"market_id": r[0], "count": r[1], "volume": int(r[2])} for r in by_market],
    }
