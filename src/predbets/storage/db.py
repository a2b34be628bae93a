"""DuckDB connection, schema init, and transaction scope."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

import duckdb

from predbets.errors import ConcurrentModification

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS ledger_seq START 1;
CREATE SEQUENCE IF NOT EXISTS bet_event_seq START 1;

-- One row per market. market_id uniqueness backs DuplicateMarket.
CREATE TABLE IF NOT EXISTS markets (
    market_id        VARCHAR PRIMARY KEY,
    admin            VARCHAR NOT NULL,
    state            VARCHAR NOT NULL,
    winner           VARCHAR,
    total_yes        UBIGINT NOT NULL DEFAULT 0,
    total_no         UBIGINT NOT NULL DEFAULT 0,
    fee_basis_points INTEGER NOT NULL CHECK (fee_basis_points BETWEEN 0 AND 10000),
    created_at       BIGINT NOT NULL,
    resolved_at      BIGINT
);

-- At most one bet per (market_id, user_id). Composite key backs DuplicateBet.
CREATE TABLE IF NOT EXISTS bets (
    market_id       VARCHAR NOT NULL,
    user_id         VARCHAR NOT NULL,
    amount          UBIGINT NOT NULL CHECK (amount > 0),
    vote            VARCHAR NOT NULL,
    claimed         BOOLEAN NOT NULL DEFAULT FALSE,
    payout          UBIGINT,
    created_at      BIGINT NOT NULL,
    claimed_at      BIGINT,
    PRIMARY KEY (market_id, user_id)
);

-- Holding accounts (user:<id>, escrow:<market_id>)
CREATE TABLE IF NOT EXISTS accounts (
    account_id      VARCHAR PRIMARY KEY,
    balance         UBIGINT NOT NULL DEFAULT 0,
    updated_at      BIGINT NOT NULL
);

-- Append-only transfer journal. Entries sharing a tx_id sum to zero.
CREATE TABLE IF NOT EXISTS ledger_entries (
    entry_id        BIGINT PRIMARY KEY DEFAULT nextval('ledger_seq'),
    tx_id           VARCHAR NOT NULL,
    account_id      VARCHAR NOT NULL,
    delta           HUGEINT NOT NULL,
    reason          VARCHAR NOT NULL,
    market_id       VARCHAR,
    created_at      BIGINT NOT NULL
);

-- BetPlaced notifications (display feed, not a source of truth)
CREATE TABLE IF NOT EXISTS bet_events (
    event_id        BIGINT PRIMARY KEY DEFAULT nextval('bet_event_seq'),
    market_id       VARCHAR NOT NULL,
    user_id         VARCHAR NOT NULL,
    amount          UBIGINT NOT NULL,
    vote            VARCHAR NOT NULL,
    new_total_yes   UBIGINT NOT NULL,
    new_total_no    UBIGINT NOT NULL,
    emitted_at      BIGINT NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use read_only=True for dashboards that must not take the write lock."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


@contextmanager
def transaction(conn: DuckDBPyConnection) -> Iterator[DuckDBPyConnection]:
    """BEGIN/COMMIT around the block. Any exception rolls back and propagates.
    DuckDB write-write conflicts surface as ConcurrentModification."""
    conn.execute("BEGIN TRANSACTION")
    try:
        yield conn
    except duckdb.TransactionException as e:
        conn.execute("ROLLBACK")
        raise ConcurrentModification(str(e)) from e
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    try:
        conn.execute("COMMIT")
    except duckdb.TransactionException as e:
        raise ConcurrentModification(str(e)) from e
