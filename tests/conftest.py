"""Shared fixtures: temporary DuckDB and a settlement service on it."""

import pytest

from predbets.settlement import SettlementService
from predbets.storage.db import get_connection, init_schema


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.duckdb"


@pytest.fixture
def temp_db(db_path):
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def service(temp_db):
    return SettlementService(temp_db, default_fee_basis_points=200)


@pytest.fixture
def fund(service):
    """fund("alice", "bob", amount=...) deposits into each user's balance."""

    def _fund(*users: str, amount: int = 10_000) -> None:
        for user in users:
            service.deposit(user, amount)

    return _fund
