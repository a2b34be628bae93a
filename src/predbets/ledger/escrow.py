"""Holding-account balances with a zero-sum journal.

Every value movement goes through ``EscrowLedger``. A transfer writes one
negative and one positive journal entry under the same ``tx_id``; a deposit
books the negative side against ``MINT_ACCOUNT``, which has no balance row.
So ``SUM(delta)`` over the whole journal is always zero, and
``balance(account)`` always equals the sum of that account's entries.

The ledger never opens transactions itself. Callers wrap related calls in
``storage.db.transaction`` so a failed operation leaves no partial movement.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from predbets.errors import AmountOverflow, InsufficientFunds, InvalidAmount
from predbets.models import U64_MAX

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

MINT_ACCOUNT = "mint"


def user_account(identity: str) -> str:
    """Holding account for a participant."""
    return f"user:{identity}"


def escrow_account(market_id: str) -> str:
    """Holding account for a market's pooled stakes."""
    return f"escrow:{market_id}"


def check_amount(amount: Any) -> int:
    """Return amount if it is an int in (0, U64_MAX], else raise InvalidAmount."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(amount=amount)
    if amount <= 0 or amount > U64_MAX:
        raise InvalidAmount(amount=amount)
    return amount


def _now_ms() -> int:
    return int(time.time() * 1000)


class EscrowLedger:
    """Debit/credit/transfer over the accounts and ledger_entries tables."""

    def __init__(self, conn: DuckDBPyConnection) -> None:
        self.conn = conn

    def balance(self, account_id: str) -> int:
        row = self.conn.execute("SELECT balance FROM accounts WHERE account_id = ?", [account_id]).fetchone()
        return int(row[0]) if row else 0

    def _set_balance(self, account_id: str, balance: int) -> None:
        self.conn.execute(
            """
            INSERT INTO accounts (account_id, balance, updated_at) VALUES (?, ?, ?)
            ON CONFLICT (account_id) DO UPDATE SET balance = excluded.balance, updated_at = excluded.updated_at
            """,
            [account_id, balance, _now_ms()],
        )

    def _journal(self, tx_id: str, account_id: str, delta: int, reason: str, market_id: str | None) -> None:
        self.conn.execute(
            """
            INSERT INTO ledger_entries (tx_id, account_id, delta, reason, market_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [tx_id, account_id, delta, reason, market_id, _now_ms()],
        )

    def debit(
        self,
        account_id: str,
        amount: int,
        *,
        tx_id: str,
        reason: str,
        market_id: str | None = None,
    ) -> int:
        """Remove amount from account. Returns the new balance."""
        amount = check_amount(amount)
        current = self.balance(account_id)
        if current < amount:
            raise InsufficientFunds(
                f"Insufficient balance in {account_id}: have {current}, need {amount}",
                account_id=account_id,
            )
        new_balance = current - amount
        self._set_balance(account_id, new_balance)
        self._journal(tx_id, account_id, -amount, reason, market_id)
        return new_balance

    def credit(
        self,
        account_id: str,
        amount: int,
        *,
        tx_id: str,
        reason: str,
        market_id: str | None = None,
    ) -> int:
        """Add amount to account. Returns the new balance."""
        amount = check_amount(amount)
        new_balance = self.balance(account_id) + amount
        if new_balance > U64_MAX:
            raise AmountOverflow(f"Balance of {account_id} would exceed u64", account_id=account_id)
        self._set_balance(account_id, new_balance)
        self._journal(tx_id, account_id, amount, reason, market_id)
        return new_balance

    def transfer(
        self,
        src: str,
        dst: str,
        amount: int,
        *,
        reason: str,
        market_id: str | None = None,
    ) -> str:
        """Move amount from src to dst under one tx_id. Returns the tx_id."""
        tx_id = uuid.uuid4().hex
        self.debit(src, amount, tx_id=tx_id, reason=reason, market_id=market_id)
        self.credit(dst, amount, tx_id=tx_id, reason=reason, market_id=market_id)
        log.debug("ledger_transfer", tx_id=tx_id, src=src, dst=dst, amount=amount, reason=reason)
        return tx_id

    def deposit(self, account_id: str, amount: int) -> int:
        """Fund an external balance from the mint. Returns the new balance."""
        tx_id = uuid.uuid4().hex
        new_balance = self.credit(account_id, amount, tx_id=tx_id, reason="deposit")
        self._journal(tx_id, MINT_ACCOUNT, -amount, "deposit", None)
        log.info("ledger_deposit", account_id=account_id, amount=amount, balance=new_balance)
        return new_balance

    def journal_sum(self, tx_id: str | None = None) -> int:
        """Sum of journal deltas, overall or for one tx_id. Zero when the books balance."""
        if tx_id is not None:
            row = self.conn.execute("SELECT COALESCE(SUM(delta), 0) FROM ledger_entries WHERE tx_id = ?", [tx_id]).fetchone()
        else:
            row = self.conn.execute("SELECT COALESCE(SUM(delta), 0) FROM ledger_entries").fetchone()
        return int(row[0])

    def account_journal_sum(self, account_id: str) -> int:
        row = self.conn.execute(
            "SELECT COALESCE(SUM(delta), 0) FROM ledger_entries WHERE account_id = ?", [account_id]
        ).fetchone()
        return int(row[0])

    def entries(self, account_id: str | None = None, market_id: str | None = None) -> list[dict[str, Any]]:
        """Journal rows in insertion order, optionally filtered."""
        conditions = ["1=1"]
        params: list[Any] = []
        if account_id is not None:
            conditions.append("account_id = ?")
            params.append(account_id)
        if market_id is not None:
            conditions.append("market_id = ?")
            params.append(market_id)
        where = " AND ".join(conditions)
        rows = self.conn.execute(
            f"SELECT entry_id, tx_id, account_id, delta, reason, market_id, created_at FROM ledger_entries WHERE {where} ORDER BY entry_id",
            params,
        ).fetchall()
        cols = ["entry_id", "tx_id", "account_id", "delta", "reason", "market_id", "created_at"]
        return [dict(zip(cols, r)) for r in rows]
